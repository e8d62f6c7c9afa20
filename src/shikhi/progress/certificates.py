"""Completion certificates: issuing ids and public verification."""

from __future__ import annotations

import secrets
import string
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from shikhi.config import get_settings
from shikhi.db.models import Course, CourseEnrollment, User, utcnow
from shikhi.errors import NotFoundError, PreconditionFailedError
from shikhi.progress.service import COMPLETE, get_enrollment

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_ALPHABET = string.ascii_uppercase + string.digits
_ID_LENGTH = 12


def generate_certificate_id(prefix: str | None = None) -> str:
    """``CERT-`` followed by 12 random upper-case letters and digits."""
    if prefix is None:
        prefix = get_settings().certificate_prefix
    return prefix + "".join(secrets.choice(_ALPHABET) for _ in range(_ID_LENGTH))


async def _id_taken(db: AsyncSession, certificate_id: str) -> bool:
    result = await db.execute(select(CourseEnrollment.id).where(CourseEnrollment.certificate_id == certificate_id))
    return result.first() is not None


async def issue_certificate(db: AsyncSession, user: User, course_id: str) -> CourseEnrollment:
    """
    Give a completed enrollment its certificate id.

    Repeat calls return the id issued the first time.

    Raises:
        NotFoundError: Not enrolled.
        PreconditionFailedError: Progress below 100 (carries ``progress``).
    """
    enrollment = await get_enrollment(db, user, course_id)
    if enrollment.certificate_id:
        return enrollment
    if enrollment.progress_percentage < COMPLETE:
        raise PreconditionFailedError(
            "Course not completed yet",
            progress=enrollment.progress_percentage,
        )

    certificate_id = generate_certificate_id()
    while await _id_taken(db, certificate_id):
        certificate_id = generate_certificate_id()

    enrollment.certificate_id = certificate_id
    if enrollment.completed_at is None:
        enrollment.completed_at = utcnow()
    await db.flush()
    logger.info("certificate_issued", user_id=user.id, course_id=course_id, certificate_id=certificate_id)
    return enrollment


async def verify_certificate(db: AsyncSession, certificate_id: str) -> dict[str, Any]:
    """
    Look up a certificate for the public verification page.

    Raises:
        NotFoundError: Unknown id. The error carries ``valid=False``.
    """
    result = await db.execute(
        select(CourseEnrollment, User, Course)
        .join(User, User.id == CourseEnrollment.user_id)
        .join(Course, Course.id == CourseEnrollment.course_id)
        .where(CourseEnrollment.certificate_id == certificate_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Certificate not found", valid=False)

    enrollment, user, course = row
    return {
        "valid": True,
        "certificate": {
            "certificate_id": certificate_id,
            "student_name": user.display_name,
            "course_name": course.title,
            "completed_at": enrollment.completed_at,
            "progress_percentage": enrollment.progress_percentage,
        },
    }
