"""Admin course management and curriculum editor endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.auth.dependencies import require_admin
from shikhi.courses import curriculum as editor
from shikhi.courses.schemas import (
    AdminCourseDetail,
    CourseCreate,
    CourseListResponse,
    CourseSummary,
    CourseUpdate,
    CurriculumResponse,
    ItemAddedResponse,
    ModuleAddedResponse,
    ModuleCreate,
    PublishToggle,
)
from shikhi.courses.service import (
    create_course,
    delete_course,
    get_course,
    list_courses,
    set_published,
    update_course,
)
from shikhi.database import get_session
from shikhi.db.models import User

router = APIRouter(
    prefix="/api/v1/admin/courses",
    tags=["Admin: Courses"],
    dependencies=[Depends(require_admin)],
)


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@router.get("", response_model=CourseListResponse)
async def list_all_courses(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),
) -> CourseListResponse:
    """Every course, published or not."""
    courses, total = await list_courses(db, published_only=False, limit=limit, offset=offset)
    return CourseListResponse(courses=[CourseSummary.model_validate(c) for c in courses], total=total)


@router.post("", response_model=AdminCourseDetail, status_code=201)
async def create(
    body: CourseCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminCourseDetail:
    course = await create_course(db, body, created_by=admin.external_id)
    await db.commit()
    return AdminCourseDetail.model_validate(course)


@router.get("/{course_id}", response_model=AdminCourseDetail)
async def get_any_course(course_id: str, db: AsyncSession = Depends(get_session)) -> AdminCourseDetail:
    return AdminCourseDetail.model_validate(await get_course(db, course_id, include_unpublished=True))


@router.patch("/{course_id}", response_model=AdminCourseDetail)
async def update(
    course_id: str,
    body: CourseUpdate,
    db: AsyncSession = Depends(get_session),
) -> AdminCourseDetail:
    """Partial update. Rating stats and enrollment counts are ignored if sent."""
    course = await update_course(db, course_id, body)
    await db.commit()
    return AdminCourseDetail.model_validate(course)


@router.post("/{course_id}/publish", response_model=AdminCourseDetail)
async def publish(
    course_id: str,
    body: PublishToggle,
    db: AsyncSession = Depends(get_session),
) -> AdminCourseDetail:
    course = await set_published(db, course_id, body.is_published)
    await db.commit()
    return AdminCourseDetail.model_validate(course)


@router.delete("/{course_id}")
async def delete(course_id: str, db: AsyncSession = Depends(get_session)) -> dict[str, Any]:
    await delete_course(db, course_id)
    await db.commit()
    return {"success": True, "course_id": course_id}


# ---------------------------------------------------------------------------
# Curriculum editor
# ---------------------------------------------------------------------------


@router.get("/{course_id}/curriculum", response_model=CurriculumResponse)
async def get_full_curriculum(course_id: str, db: AsyncSession = Depends(get_session)) -> dict:
    """Modules sorted by ``order``, unpublished parts included."""
    return await editor.get_curriculum(db, course_id, include_unpublished=True)


@router.put("/{course_id}/curriculum", response_model=CurriculumResponse)
async def replace_curriculum(
    course_id: str,
    modules: list[dict[str, Any]] = Body(..., embed=True),
    db: AsyncSession = Depends(get_session),
) -> dict:
    curriculum = await editor.replace_curriculum(db, course_id, modules)
    await db.commit()
    return curriculum


@router.post("/{course_id}/curriculum/modules", response_model=ModuleAddedResponse, status_code=201)
async def add_module(
    course_id: str,
    body: ModuleCreate,
    db: AsyncSession = Depends(get_session),
) -> dict:
    module, curriculum = await editor.add_module(db, course_id, body.name, body.description)
    await db.commit()
    return {"module": module, "curriculum": curriculum}


@router.patch("/{course_id}/curriculum/modules/{module_index}", response_model=CurriculumResponse)
async def toggle_module(
    course_id: str,
    module_index: int,
    body: PublishToggle,
    db: AsyncSession = Depends(get_session),
) -> dict:
    curriculum = await editor.set_module_published(db, course_id, module_index, body.is_published)
    await db.commit()
    return curriculum


@router.post(
    "/{course_id}/curriculum/modules/{module_index}/items",
    response_model=ItemAddedResponse,
    status_code=201,
)
async def add_item(
    course_id: str,
    module_index: int,
    item: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Append any item type. The body is validated against its ``type``."""
    stored, item_index, curriculum = await editor.add_item(db, course_id, module_index, item)
    await db.commit()
    return {"item": stored, "module_index": module_index, "item_index": item_index, "curriculum": curriculum}


@router.post(
    "/{course_id}/curriculum/modules/{module_index}/links",
    response_model=ItemAddedResponse,
    status_code=201,
)
async def add_link(
    course_id: str,
    module_index: int,
    link: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
) -> dict:
    stored, item_index, curriculum = await editor.add_link(db, course_id, module_index, link)
    await db.commit()
    return {"item": stored, "module_index": module_index, "item_index": item_index, "curriculum": curriculum}


@router.patch(
    "/{course_id}/curriculum/modules/{module_index}/items/{item_index}",
    response_model=CurriculumResponse,
)
async def toggle_item(
    course_id: str,
    module_index: int,
    item_index: int,
    body: PublishToggle,
    db: AsyncSession = Depends(get_session),
) -> dict:
    curriculum = await editor.set_item_published(db, course_id, module_index, item_index, body.is_published)
    await db.commit()
    return curriculum
