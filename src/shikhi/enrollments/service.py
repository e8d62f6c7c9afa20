"""Manual-payment enrollment workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from shikhi.courses.service import course_price, get_course
from shikhi.db.models import EnrollmentRequest, User, utcnow
from shikhi.enrollments import saga
from shikhi.enrollments.schemas import EnrollmentRequestResponse
from shikhi.enrollments.state_machine import APPROVED, OPEN_STATUSES, REJECTED, validate_transition
from shikhi.errors import ConflictError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from shikhi.enrollments.schemas import EnrollmentSubmitRequest

logger = structlog.get_logger()

MAX_REJECTION_REASON = 500


async def get_request(db: AsyncSession, request_id: str, *, for_update: bool = False) -> EnrollmentRequest:
    query = select(EnrollmentRequest).where(EnrollmentRequest.id == request_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    req = result.scalar_one_or_none()
    if req is None:
        raise NotFoundError("Enrollment request not found", request_id=request_id)
    return req


async def submit_request(db: AsyncSession, user: User, body: EnrollmentSubmitRequest) -> EnrollmentRequest:
    """
    File a pending request for a published course.

    Course name and price are copied onto the request and never change after.

    Raises:
        NotFoundError: Course missing or unpublished.
        ConflictError: The student already has a pending or approved request.
    """
    course = await get_course(db, body.course_id)

    existing = await db.execute(
        select(EnrollmentRequest.id, EnrollmentRequest.status).where(
            EnrollmentRequest.user_id == user.external_id,
            EnrollmentRequest.course_id == course.id,
            EnrollmentRequest.status.in_(OPEN_STATUSES),
        )
    )
    row = existing.first()
    if row is not None:
        raise ConflictError(
            "You already have an enrollment request for this course",
            request_id=row.id,
            status=row.status,
        )

    req = EnrollmentRequest(
        user_id=user.external_id,
        user_email=user.email,
        user_name=user.display_name,
        course_id=course.id,
        course_name=course.title,
        course_price=course_price(course),
        payment_method=body.payment_method,
        transaction_id=body.transaction_id.strip(),
        sender_number=body.sender_number.strip(),
        payment_screenshot=body.payment_screenshot,
    )
    db.add(req)
    await db.flush()
    logger.info("enrollment_requested", request_id=req.id, user_id=user.external_id, course_id=course.id)
    return req


async def approve_request(
    db: AsyncSession,
    request_id: str,
    admin: User,
) -> tuple[EnrollmentRequestResponse, str | None]:
    """
    Approve a pending request, then enroll the student.

    The status change is committed before the enrollment is attempted.

    Returns:
        Tuple of (request snapshot, warning or None).
    """
    req = await get_request(db, request_id, for_update=True)
    validate_transition(req.status, APPROVED)

    req.status = APPROVED
    req.approved_by = admin.external_id
    req.approved_at = utcnow()
    req.updated_at = utcnow()
    await db.commit()
    snapshot = EnrollmentRequestResponse.model_validate(req)
    logger.info("enrollment_approved", request_id=req.id, approved_by=admin.external_id)

    warning = await saga.run_secondary_write(
        db,
        saga.ENROLL_USER,
        user_id=snapshot.user_id,
        course_id=snapshot.course_id,
        enrollment_request_id=snapshot.id,
    )
    return snapshot, warning


async def reject_request(db: AsyncSession, request_id: str, reason: str, admin: User) -> EnrollmentRequest:
    """
    Reject a pending request with a reason for the student.

    Raises:
        NotFoundError: Unknown request.
        ValidationError: Reason missing or longer than 500 characters.
        ConflictError: The request is no longer pending.
    """
    req = await get_request(db, request_id, for_update=True)
    validate_transition(req.status, REJECTED)

    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required")
    if len(reason) > MAX_REJECTION_REASON:
        raise ValidationError(f"Rejection reason must be at most {MAX_REJECTION_REASON} characters")

    req.status = REJECTED
    req.rejection_reason = reason
    req.updated_at = utcnow()
    await db.flush()
    logger.info("enrollment_rejected", request_id=req.id, rejected_by=admin.external_id)
    return req


async def unenroll(db: AsyncSession, request_id: str) -> tuple[EnrollmentRequestResponse, str | None]:
    """
    Delete a request in any status and remove the matching enrollment.

    The enrollment stays when another approved request for the same course
    still covers it.

    Returns:
        Tuple of (snapshot of the deleted request, warning or None).
    """
    req = await get_request(db, request_id, for_update=True)
    snapshot = EnrollmentRequestResponse.model_validate(req)
    await db.delete(req)
    await db.commit()
    logger.info("enrollment_request_deleted", request_id=snapshot.id, status=snapshot.status)

    if await saga.has_approved_request(db, snapshot.user_id, snapshot.course_id):
        logger.info("enrollment_kept", user_id=snapshot.user_id, course_id=snapshot.course_id)
        return snapshot, None

    warning = await saga.run_secondary_write(
        db,
        saga.UNENROLL_USER,
        user_id=snapshot.user_id,
        course_id=snapshot.course_id,
        enrollment_request_id=snapshot.id,
    )
    return snapshot, warning


async def list_requests(
    db: AsyncSession,
    *,
    status: str | None = None,
    user_external_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[EnrollmentRequest], int]:
    """Requests newest first, optionally filtered by status or student."""
    filters = []
    if status:
        filters.append(EnrollmentRequest.status == status)
    if user_external_id:
        filters.append(EnrollmentRequest.user_id == user_external_id)

    total = (
        await db.execute(select(func.count()).select_from(EnrollmentRequest).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(EnrollmentRequest)
        .where(*filters)
        .order_by(EnrollmentRequest.submitted_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total
