"""Public course catalogue endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.courses.curriculum import get_curriculum, sorted_modules
from shikhi.courses.schemas import (
    CourseCategory,
    CourseDetail,
    CourseLevel,
    CourseListResponse,
    CourseSummary,
    CurriculumResponse,
)
from shikhi.courses.service import get_course, get_course_by_slug, list_courses
from shikhi.database import get_session
from shikhi.db.models import Course

router = APIRouter(prefix="/api/v1/courses", tags=["Courses"])


def public_detail(course: Course) -> CourseDetail:
    """Course detail as a student sees it: unpublished modules and items removed."""
    detail = CourseDetail.model_validate(course)
    return detail.model_copy(
        update={"curriculum": {"modules": sorted_modules(course.curriculum, include_unpublished=False)}}
    )


@router.get("", response_model=CourseListResponse)
async def list_published_courses(
    level: CourseLevel | None = None,
    category: CourseCategory | None = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),
) -> CourseListResponse:
    """Published courses, newest first."""
    courses, total = await list_courses(db, level=level, category=category, limit=limit, offset=offset)
    return CourseListResponse(
        courses=[CourseSummary.model_validate(c) for c in courses],
        total=total,
    )


@router.get("/slug/{slug}", response_model=CourseDetail)
async def get_published_course_by_slug(slug: str, db: AsyncSession = Depends(get_session)) -> CourseDetail:
    return public_detail(await get_course_by_slug(db, slug))


@router.get("/{course_id}", response_model=CourseDetail)
async def get_published_course(course_id: str, db: AsyncSession = Depends(get_session)) -> CourseDetail:
    return public_detail(await get_course(db, course_id))


@router.get("/{course_id}/curriculum", response_model=CurriculumResponse)
async def get_published_curriculum(course_id: str, db: AsyncSession = Depends(get_session)) -> dict:
    """Modules sorted by ``order``; unpublished modules and items are hidden."""
    return await get_curriculum(db, course_id, include_unpublished=False)
