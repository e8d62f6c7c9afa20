"""User router: all /api/v1/users/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.auth.dependencies import get_current_user
from shikhi.auth.service import list_admins
from shikhi.database import get_session
from shikhi.db.models import User
from shikhi.users.schemas import (
    AdminContact,
    EnrolledCourseResponse,
    StreakRequest,
    StreakResponse,
    UserResponse,
    XPRequest,
    XPResponse,
)
from shikhi.users.service import add_xp, enrolled_courses, update_streak

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    """Own profile. First call provisions the user from the token claims."""
    return UserResponse.model_validate(user)


@router.get("/me/courses", response_model=list[EnrolledCourseResponse])
async def my_courses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[EnrolledCourseResponse]:
    rows = await enrolled_courses(db, user)
    return [
        EnrolledCourseResponse(
            course_id=course.id,
            slug=course.slug,
            title=course.title,
            thumbnail_url=course.thumbnail_url,
            enrolled_at=enrollment.enrolled_at,
            completed_lessons=enrollment.completed_lessons,
            total_lessons=enrollment.total_lessons,
            progress_percentage=enrollment.progress_percentage,
            last_accessed_at=enrollment.last_accessed_at,
            completed_at=enrollment.completed_at,
            certificate_id=enrollment.certificate_id,
        )
        for enrollment, course in rows
    ]


@router.post("/me/streak", response_model=StreakResponse)
async def post_streak(
    body: StreakRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StreakResponse:
    user = await update_streak(db, user, body.action)
    await db.commit()
    return StreakResponse(learning_streak=user.learning_streak, last_active_date=user.last_active_date)


@router.post("/me/xp", response_model=XPResponse)
async def post_xp(
    body: XPRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> XPResponse:
    user = await add_xp(db, user, body.points)
    await db.commit()
    return XPResponse(total_xp=user.total_xp, added=body.points)


@router.get("/admins", response_model=list[AdminContact])
async def admins(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[AdminContact]:
    """Admins a student can message."""
    return [AdminContact.model_validate(a) for a in await list_admins(db)]
