"""Deterministic course leaderboard ranking.

Students ranked by progress_percentage DESC, then by earliest completion,
then by earliest enrollment. Students who have not completed sort after
those who have at the same progress.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.courses.service import get_course
from shikhi.db.models import CourseEnrollment, User

_NEVER = float("inf")


def _ts(value: datetime | None) -> float:
    return value.timestamp() if value is not None else _NEVER


def rank_students(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort leaderboard entries and number them.

    Input: dicts with at least ``progress_percentage``, ``completed_at`` and
    ``enrolled_at``. Output: the same dicts sorted, each with a 1-based ``rank``.
    """
    if not entries:
        return []

    def sort_key(e: dict[str, Any]) -> tuple[float, float, float]:
        return (
            -float(e.get("progress_percentage", 0.0)),
            _ts(e.get("completed_at")),
            _ts(e.get("enrolled_at")),
        )

    ranked = sorted(entries, key=sort_key)
    for idx, entry in enumerate(ranked):
        entry["rank"] = idx + 1
    return ranked


async def course_leaderboard(
    db: AsyncSession,
    course_id: str,
    *,
    user_id: str | None = None,
    include_unpublished: bool = False,
    top: int = 10,
) -> dict[str, Any]:
    """
    Top ``top`` students of a course plus the caller's own rank.

    Raises:
        NotFoundError: Course missing, or unpublished for a non-admin.
    """
    await get_course(db, course_id, include_unpublished=include_unpublished)
    result = await db.execute(
        select(CourseEnrollment, User)
        .join(User, User.id == CourseEnrollment.user_id)
        .where(CourseEnrollment.course_id == course_id)
    )
    entries = [
        {
            "user_id": user.id,
            "display_name": user.display_name,
            "profile_image_url": user.profile_image_url,
            "progress_percentage": enrollment.progress_percentage,
            "completed_at": enrollment.completed_at,
            "enrolled_at": enrollment.enrolled_at,
        }
        for enrollment, user in result.all()
    ]
    ranked = rank_students(entries)

    my_rank = None
    if user_id is not None:
        my_rank = next((e["rank"] for e in ranked if e["user_id"] == user_id), None)

    return {
        "course_id": course_id,
        "total": len(ranked),
        "my_rank": my_rank,
        "entries": ranked[:top],
    }
