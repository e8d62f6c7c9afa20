"""Lesson progress and course completion for enrolled students."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from shikhi.db.models import CourseEnrollment, User, utcnow
from shikhi.errors import NotFoundError, PreconditionFailedError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

COMPLETE = 100.0


def compute_percentage(completed_lessons: int, total_lessons: int) -> float:
    """Share of lessons done, 0..100, rounded to 2 decimals. No lessons -> 0."""
    if total_lessons <= 0:
        return 0.0
    pct = completed_lessons / total_lessons * 100
    return round(min(max(pct, 0.0), COMPLETE), 2)


async def get_enrollment(db: AsyncSession, user: User, course_id: str) -> CourseEnrollment:
    result = await db.execute(
        select(CourseEnrollment).where(
            CourseEnrollment.user_id == user.id,
            CourseEnrollment.course_id == course_id,
        )
    )
    enrollment = result.scalar_one_or_none()
    if enrollment is None:
        raise NotFoundError("Not enrolled in this course", course_id=course_id)
    return enrollment


async def update_progress(
    db: AsyncSession,
    user: User,
    course_id: str,
    completed_lessons: int,
    total_lessons: int | None = None,
) -> CourseEnrollment:
    """
    Record lesson progress for a course.

    ``total_lessons`` defaults to the count stored at enrollment. The first
    time the percentage reaches 100, ``completed_at`` is stamped.

    Raises:
        NotFoundError: Not enrolled.
        ValidationError: Negative counts or completed above total.
    """
    enrollment = await get_enrollment(db, user, course_id)
    total = enrollment.total_lessons if total_lessons is None else total_lessons
    if completed_lessons < 0 or total < 0:
        raise ValidationError("Lesson counts cannot be negative")
    if completed_lessons > total:
        raise ValidationError("completed_lessons cannot exceed total_lessons")

    enrollment.completed_lessons = completed_lessons
    enrollment.total_lessons = total
    enrollment.progress_percentage = compute_percentage(completed_lessons, total)
    enrollment.last_accessed_at = utcnow()
    if enrollment.progress_percentage >= COMPLETE and enrollment.completed_at is None:
        enrollment.completed_at = utcnow()
        logger.info("course_completed", user_id=user.id, course_id=course_id)
    await db.flush()
    return enrollment


async def mark_complete(db: AsyncSession, user: User, course_id: str) -> CourseEnrollment:
    """
    Mark a fully-progressed course as completed.

    Idempotent: ``completed_at`` is set on the first call and returned
    unchanged afterwards.

    Raises:
        NotFoundError: Not enrolled.
        PreconditionFailedError: Progress below 100 (carries ``progress``).
    """
    enrollment = await get_enrollment(db, user, course_id)
    if enrollment.progress_percentage < COMPLETE:
        raise PreconditionFailedError(
            "Course progress must reach 100% before it can be completed",
            progress=enrollment.progress_percentage,
        )
    if enrollment.completed_at is None:
        enrollment.completed_at = utcnow()
        await db.flush()
        logger.info("course_completed", user_id=user.id, course_id=course_id)
    return enrollment
