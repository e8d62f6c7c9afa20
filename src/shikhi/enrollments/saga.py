"""
Secondary writes that follow an enrollment decision.

Approving or deleting an enrollment request commits the request first; that
row is the source of truth. The matching change to the student's enrolled
courses is a second transaction, retried with exponential backoff. If it
still fails, a ReconciliationTask row is written for the worker to replay and
the caller gets a warning string instead of an error.

Both steps are idempotent so they can be replayed any number of times.
"""

from __future__ import annotations

import asyncio

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.auth.service import get_user_by_external_id
from shikhi.config import get_settings
from shikhi.db.models import Course, CourseEnrollment, EnrollmentRequest, ReconciliationTask, utcnow
from shikhi.enrollments.state_machine import APPROVED
from shikhi.errors import NotFoundError, ServiceError

logger = structlog.get_logger()

ENROLL_USER = "enroll_user"
UNENROLL_USER = "unenroll_user"

TASK_OPEN = "open"
TASK_RESOLVED = "resolved"
TASK_ABANDONED = "abandoned"


def _count_lessons(course: Course) -> int:
    modules = (course.curriculum or {}).get("modules", [])
    return sum(len(m.get("items", [])) for m in modules)


async def enroll_user(db: AsyncSession, user_external_id: str, course_id: str) -> bool:
    """Add the course to the user's enrolled courses. Returns False if already there."""
    user = await get_user_by_external_id(db, user_external_id)
    if user is None:
        raise NotFoundError("User not found", user_id=user_external_id)
    course = await db.get(Course, course_id)
    if course is None:
        raise NotFoundError("Course not found", course_id=course_id)

    existing = await db.execute(
        select(CourseEnrollment.id).where(
            CourseEnrollment.user_id == user.id,
            CourseEnrollment.course_id == course_id,
        )
    )
    if existing.first() is not None:
        return False

    db.add(CourseEnrollment(user_id=user.id, course_id=course_id, total_lessons=_count_lessons(course)))
    course.enrolled_students = (course.enrolled_students or 0) + 1
    await db.flush()
    return True


async def unenroll_user(db: AsyncSession, user_external_id: str, course_id: str) -> bool:
    """Remove the course from the user's enrolled courses. Returns False if absent."""
    user = await get_user_by_external_id(db, user_external_id)
    if user is None:
        return False
    result = await db.execute(
        delete(CourseEnrollment).where(
            CourseEnrollment.user_id == user.id,
            CourseEnrollment.course_id == course_id,
        )
    )
    if not result.rowcount:
        return False

    course = await db.get(Course, course_id)
    if course is not None:
        course.enrolled_students = max(0, (course.enrolled_students or 0) - 1)
    await db.flush()
    return True


def _step(kind: str):
    if kind == ENROLL_USER:
        return enroll_user
    if kind == UNENROLL_USER:
        return unenroll_user
    msg = f"Unknown secondary write: {kind}"
    raise ValueError(msg)


async def run_secondary_write(
    db: AsyncSession,
    kind: str,
    *,
    user_id: str,
    course_id: str,
    enrollment_request_id: str | None = None,
) -> str | None:
    """
    Run one secondary write with retry and backoff.

    The primary write must already be committed. On final failure the
    session is rolled back, a reconciliation task is committed and a
    warning is returned.

    Returns:
        None on success, otherwise a warning for the API response.
    """
    settings = get_settings()
    step = _step(kind)
    last_error = ""

    for attempt in range(settings.saga_max_attempts):
        try:
            await step(db, user_id, course_id)
            await db.commit()
            return None
        except (SQLAlchemyError, ServiceError) as e:
            await db.rollback()
            last_error = str(e)
            logger.warning(
                "secondary_write_failed",
                kind=kind,
                attempt=attempt + 1,
                user_id=user_id,
                course_id=course_id,
                error=last_error,
            )
            if attempt + 1 < settings.saga_max_attempts:
                await asyncio.sleep(settings.saga_backoff_seconds * (2**attempt))

    task = ReconciliationTask(
        kind=kind,
        enrollment_request_id=enrollment_request_id,
        user_id=user_id,
        course_id=course_id,
        attempts=settings.saga_max_attempts,
        last_error=last_error[:2000],
    )
    db.add(task)
    await db.commit()
    logger.error("reconciliation_recorded", task_id=task.id, kind=kind, user_id=user_id, course_id=course_id)

    if kind == ENROLL_USER:
        return "Request approved, but adding the course to the student's account failed. It will be retried."
    return "Request deleted, but removing the course from the student's account failed. It will be retried."


async def has_approved_request(db: AsyncSession, user_id: str, course_id: str) -> bool:
    """Whether any approved request still grants this course to the user."""
    approved = await db.execute(
        select(EnrollmentRequest.id).where(
            EnrollmentRequest.user_id == user_id,
            EnrollmentRequest.course_id == course_id,
            EnrollmentRequest.status == APPROVED,
        )
    )
    return approved.first() is not None


async def _still_wanted(db: AsyncSession, task: ReconciliationTask) -> bool:
    """Whether the task's effect still matches the current request state."""
    has_approved = await has_approved_request(db, task.user_id, task.course_id)
    return has_approved if task.kind == ENROLL_USER else not has_approved


async def replay_task(db: AsyncSession, task: ReconciliationTask, max_attempts: int) -> str:
    """
    Replay one open task once and commit its new status.

    Returns:
        The task's status afterwards.
    """
    task_id = task.id
    try:
        if await _still_wanted(db, task):
            await _step(task.kind)(db, task.user_id, task.course_id)
        task.status = TASK_RESOLVED
        task.resolved_at = utcnow()
        await db.commit()
        logger.info("reconciliation_resolved", task_id=task_id, kind=task.kind)
    except (SQLAlchemyError, ServiceError) as e:
        await db.rollback()
        await db.refresh(task)
        task.attempts += 1
        task.last_error = str(e)[:2000]
        if task.attempts >= max_attempts:
            task.status = TASK_ABANDONED
        await db.commit()
        logger.warning("reconciliation_retry_failed", task_id=task_id, attempts=task.attempts, status=task.status)
    return task.status
