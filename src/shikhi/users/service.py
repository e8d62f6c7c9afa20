"""Streak and XP counters on the user profile."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.db.models import Course, CourseEnrollment, User
from shikhi.errors import ValidationError
from shikhi.users.streak import StreakAction, next_streak

logger = logging.getLogger(__name__)

MIN_XP_GRANT = 1
MAX_XP_GRANT = 1000


async def update_streak(db: AsyncSession, user: User, action: StreakAction, now: datetime | None = None) -> User:
    """Apply a streak action and stamp ``last_active_date``."""
    if action not in ("increment", "reset"):
        raise ValidationError("action must be 'increment' or 'reset'")
    if now is None:
        now = datetime.now(timezone.utc)

    user.learning_streak = next_streak(user.learning_streak, user.last_active_date, action, now)
    user.last_active_date = now
    await db.flush()
    logger.info("Streak %s for user %s -> %d", action, user.id, user.learning_streak)
    return user


async def add_xp(db: AsyncSession, user: User, points: int) -> User:
    """
    Add XP to a user's total.

    Raises:
        ValidationError: points outside 1..1000.
    """
    if not MIN_XP_GRANT <= points <= MAX_XP_GRANT:
        raise ValidationError(f"points must be between {MIN_XP_GRANT} and {MAX_XP_GRANT}")
    user.total_xp = (user.total_xp or 0) + points
    await db.flush()
    logger.info("Granted %d XP to user %s (total %d)", points, user.id, user.total_xp)
    return user


async def enrolled_courses(db: AsyncSession, user: User) -> list[tuple[CourseEnrollment, Course]]:
    """The user's enrollments with their courses, most recent first."""
    result = await db.execute(
        select(CourseEnrollment, Course)
        .join(Course, Course.id == CourseEnrollment.course_id)
        .where(CourseEnrollment.user_id == user.id)
        .order_by(CourseEnrollment.enrolled_at.desc())
    )
    return [(enrollment, course) for enrollment, course in result.all()]
