"""Rating endpoints: public listing, student reviews, admin moderation."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.auth.dependencies import get_current_user, require_admin
from shikhi.courses.service import get_course
from shikhi.database import get_session
from shikhi.db.models import Course, User
from shikhi.ratings.schemas import (
    AdminRatingListResponse,
    AdminRatingResponse,
    RatingCreate,
    RatingListResponse,
    RatingResponse,
    RatingStats,
    RatingWriteResponse,
    SeedRatingCreate,
)
from shikhi.ratings.service import add_rating, delete_rating, list_ratings, seed_rating

router = APIRouter(prefix="/api/v1", tags=["Ratings"])
admin_router = APIRouter(prefix="/api/v1/admin/ratings", tags=["Admin: Ratings"])


def _stats(course: Course) -> RatingStats:
    return RatingStats(average_rating=course.average_rating, total_ratings=course.total_ratings)


@router.get("/courses/{course_id}/ratings", response_model=RatingListResponse)
async def course_ratings(
    course_id: str,
    limit: int = Query(100, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> RatingListResponse:
    """Public reviews of a published course, newest first."""
    course = await get_course(db, course_id)
    ratings = await list_ratings(db, course_id=course_id, limit=limit)
    return RatingListResponse(
        ratings=[RatingResponse.model_validate(r) for r in ratings],
        stats=_stats(course),
    )


@router.post("/courses/{course_id}/ratings", response_model=RatingWriteResponse, status_code=201)
async def rate_course(
    course_id: str,
    body: RatingCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RatingWriteResponse:
    rating, course = await add_rating(db, course_id, user, body.rating, body.review)
    await db.commit()
    return RatingWriteResponse(rating=RatingResponse.model_validate(rating), stats=_stats(course))


@router.delete("/ratings/{rating_id}", response_model=RatingWriteResponse)
async def remove_own_rating(
    rating_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RatingWriteResponse:
    """Authors delete their own rating; admins may delete any."""
    course = await delete_rating(db, rating_id, user)
    await db.commit()
    return RatingWriteResponse(stats=_stats(course))


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@admin_router.get("", response_model=AdminRatingListResponse)
async def all_ratings(
    course_id: str | None = None,
    limit: int = Query(100, ge=1, le=500),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminRatingListResponse:
    ratings = await list_ratings(db, course_id=course_id, limit=limit)
    return AdminRatingListResponse(ratings=[AdminRatingResponse.model_validate(r) for r in ratings])


@admin_router.post("", response_model=RatingWriteResponse, status_code=201)
async def seed(
    body: SeedRatingCreate,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RatingWriteResponse:
    rating, course = await seed_rating(
        db,
        body.course_id,
        user_name=body.user_name,
        user_email=body.user_email,
        rating=body.rating,
        review=body.review,
    )
    await db.commit()
    return RatingWriteResponse(rating=RatingResponse.model_validate(rating), stats=_stats(course))


@admin_router.delete("/{rating_id}", response_model=RatingWriteResponse)
async def admin_delete(
    rating_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RatingWriteResponse:
    course = await delete_rating(db, rating_id, admin)
    await db.commit()
    return RatingWriteResponse(stats=_stats(course))
