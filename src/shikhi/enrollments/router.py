"""Enrollment request endpoints for students and admins."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.auth.dependencies import get_current_user, require_admin
from shikhi.database import get_session
from shikhi.db.models import User
from shikhi.enrollments.schemas import (
    EnrollmentActionResponse,
    EnrollmentRequestListResponse,
    EnrollmentRequestResponse,
    EnrollmentSubmitRequest,
    RejectRequest,
    RequestStatus,
)
from shikhi.enrollments.service import (
    approve_request,
    list_requests,
    reject_request,
    submit_request,
    unenroll,
)

router = APIRouter(prefix="/api/v1/enrollments", tags=["Enrollments"])
admin_router = APIRouter(prefix="/api/v1/admin/enrollments", tags=["Admin: Enrollments"])


# ---------------------------------------------------------------------------
# Student
# ---------------------------------------------------------------------------


@router.post("/requests", response_model=EnrollmentActionResponse, status_code=201)
async def submit(
    body: EnrollmentSubmitRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentActionResponse:
    """Submit payment details for a course. An admin verifies and decides."""
    req = await submit_request(db, user, body)
    await db.commit()
    return EnrollmentActionResponse(request=EnrollmentRequestResponse.model_validate(req))


@router.get("/requests/me", response_model=EnrollmentRequestListResponse)
async def my_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentRequestListResponse:
    requests, total = await list_requests(db, user_external_id=user.external_id, limit=100)
    return EnrollmentRequestListResponse(
        requests=[EnrollmentRequestResponse.model_validate(r) for r in requests],
        total=total,
    )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@admin_router.get("", response_model=EnrollmentRequestListResponse)
async def list_all(
    status: RequestStatus | None = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentRequestListResponse:
    requests, total = await list_requests(db, status=status, limit=limit, offset=offset)
    return EnrollmentRequestListResponse(
        requests=[EnrollmentRequestResponse.model_validate(r) for r in requests],
        total=total,
    )


@admin_router.post("/{request_id}/approve", response_model=EnrollmentActionResponse)
async def approve(
    request_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentActionResponse:
    """Approve and enroll. A failed enrollment still returns 200 with a warning."""
    snapshot, warning = await approve_request(db, request_id, admin)
    return EnrollmentActionResponse(request=snapshot, warning=warning)


@admin_router.post("/{request_id}/reject", response_model=EnrollmentActionResponse)
async def reject(
    request_id: str,
    body: RejectRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentActionResponse:
    req = await reject_request(db, request_id, body.reason, admin)
    await db.commit()
    return EnrollmentActionResponse(request=EnrollmentRequestResponse.model_validate(req))


@admin_router.delete("/{request_id}", response_model=EnrollmentActionResponse)
async def delete_and_unenroll(
    request_id: str,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentActionResponse:
    """Delete a request in any status and take the course away from the student."""
    snapshot, warning = await unenroll(db, request_id)
    return EnrollmentActionResponse(request=snapshot, warning=warning)
