"""
Course ratings and the running average stored on the course.

Every write locks the course row first (``SELECT ... FOR UPDATE``), changes
the rating rows, then recounts from scratch. Concurrent writes for one course
therefore serialize and the stored stats always match the live rows.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from shikhi.db.models import Course, Rating, User, utcnow
from shikhi.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

MIN_RATING = 1
MAX_RATING = 5


def rating_stats(values: Iterable[int]) -> tuple[float, int]:
    """(average rounded half-up to 1 decimal, count). No ratings -> (0.0, 0)."""
    values = list(values)
    if not values:
        return 0.0, 0
    mean = Decimal(sum(values)) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)), len(values)


def _validate(rating: int, review: str) -> str:
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    review = (review or "").strip()
    if not review:
        raise ValidationError("Review is required")
    return review


async def _lock_course(db: AsyncSession, course_id: str) -> Course:
    result = await db.execute(select(Course).where(Course.id == course_id).with_for_update())
    course = result.scalar_one_or_none()
    if course is None:
        raise NotFoundError("Course not found", course_id=course_id)
    return course


async def recompute_course_rating(db: AsyncSession, course: Course) -> Course:
    """Recount ``average_rating`` and ``total_ratings``. The caller holds the row lock."""
    result = await db.execute(select(Rating.rating).where(Rating.course_id == course.id))
    course.average_rating, course.total_ratings = rating_stats(result.scalars().all())
    course.updated_at = utcnow()
    await db.flush()
    return course


async def _insert(db: AsyncSession, rating: Rating) -> None:
    db.add(rating)
    try:
        await db.flush()
    except IntegrityError as e:
        raise ConflictError("You have already rated this course", course_id=rating.course_id) from e


async def add_rating(
    db: AsyncSession,
    course_id: str,
    user: User,
    rating: int,
    review: str,
) -> tuple[Rating, Course]:
    """
    Rate a course as the calling user.

    Raises:
        NotFoundError: Course missing or unpublished.
        ConflictError: The user already rated this course.
        ValidationError: Rating outside 1..5 or empty review.
    """
    review = _validate(rating, review)
    course = await _lock_course(db, course_id)
    if not course.is_published:
        raise NotFoundError("Course not found", course_id=course_id)

    existing = await db.execute(
        select(Rating.id).where(Rating.course_id == course_id, Rating.user_id == user.external_id)
    )
    if existing.first() is not None:
        raise ConflictError("You have already rated this course", course_id=course_id)

    row = Rating(
        course_id=course_id,
        user_id=user.external_id,
        user_name=user.display_name,
        user_email=user.email or None,
        rating=rating,
        review=review,
        is_fake_rating=False,
        is_verified=True,
    )
    await _insert(db, row)
    await recompute_course_rating(db, course)
    logger.info("rating_added", rating_id=row.id, course_id=course_id, rating=rating)
    return row, course


async def seed_rating(
    db: AsyncSession,
    course_id: str,
    *,
    user_name: str,
    rating: int,
    review: str,
    user_email: str | None = None,
) -> tuple[Rating, Course]:
    """Admin-authored rating. Gets a synthetic unique ``user_id``."""
    review = _validate(rating, review)
    if not user_name or not user_name.strip():
        raise ValidationError("user_name is required")
    course = await _lock_course(db, course_id)

    row = Rating(
        course_id=course_id,
        user_id=f"fake_{uuid.uuid4().hex}",
        user_name=user_name.strip(),
        user_email=user_email,
        rating=rating,
        review=review,
        is_fake_rating=True,
        is_verified=False,
    )
    await _insert(db, row)
    await recompute_course_rating(db, course)
    logger.info("rating_seeded", rating_id=row.id, course_id=course_id, rating=rating)
    return row, course


async def delete_rating(db: AsyncSession, rating_id: str, user: User) -> Course:
    """
    Delete a rating and recount its course.

    Raises:
        NotFoundError: No such rating.
        ForbiddenError: Caller is neither the author nor an admin.
    """
    rating = await db.get(Rating, rating_id)
    if rating is None:
        raise NotFoundError("Rating not found", rating_id=rating_id)
    if rating.user_id != user.external_id and not user.is_admin:
        raise ForbiddenError("You can only delete your own rating")

    course = await _lock_course(db, rating.course_id)
    await db.delete(rating)
    await db.flush()
    await recompute_course_rating(db, course)
    logger.info("rating_deleted", rating_id=rating_id, course_id=course.id)
    return course


async def list_ratings(db: AsyncSession, *, course_id: str | None = None, limit: int = 100) -> list[Rating]:
    """Ratings newest first."""
    query = select(Rating).order_by(Rating.created_at.desc()).limit(limit)
    if course_id is not None:
        query = query.where(Rating.course_id == course_id)
    result = await db.execute(query)
    return list(result.scalars().all())
