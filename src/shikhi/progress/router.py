"""Progress, completion, certificate and leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.auth.dependencies import get_current_user
from shikhi.database import get_session
from shikhi.db.models import User
from shikhi.progress.certificates import issue_certificate, verify_certificate
from shikhi.progress.ranking import course_leaderboard
from shikhi.progress.schemas import (
    CertificateIssuedResponse,
    CertificateVerification,
    CompletionResponse,
    EnrollmentProgressResponse,
    LeaderboardResponse,
    ProgressUpdateRequest,
)
from shikhi.progress.service import get_enrollment, mark_complete, update_progress

router = APIRouter(prefix="/api/v1", tags=["Progress"])


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@router.get("/progress/{course_id}", response_model=EnrollmentProgressResponse)
async def get_progress(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentProgressResponse:
    return EnrollmentProgressResponse.model_validate(await get_enrollment(db, user, course_id))


@router.put("/progress/{course_id}", response_model=EnrollmentProgressResponse)
async def put_progress(
    course_id: str,
    body: ProgressUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentProgressResponse:
    enrollment = await update_progress(db, user, course_id, body.completed_lessons, body.total_lessons)
    await db.commit()
    return EnrollmentProgressResponse.model_validate(enrollment)


@router.post("/progress/{course_id}/complete", response_model=CompletionResponse)
async def complete_course(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompletionResponse:
    """Mark the course completed. 412 with ``progress`` while below 100%."""
    enrollment = await mark_complete(db, user, course_id)
    await db.commit()
    return CompletionResponse(
        completed_at=enrollment.completed_at,
        enrollment=EnrollmentProgressResponse.model_validate(enrollment),
    )


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


@router.post("/certificates/{course_id}", response_model=CertificateIssuedResponse)
async def issue(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CertificateIssuedResponse:
    enrollment = await issue_certificate(db, user, course_id)
    await db.commit()
    return CertificateIssuedResponse(
        certificate_id=enrollment.certificate_id,
        course_id=course_id,
        completed_at=enrollment.completed_at,
    )


@router.get("/certificates/verify/{certificate_id}", response_model=CertificateVerification)
async def verify(certificate_id: str, db: AsyncSession = Depends(get_session)) -> dict:
    """Public. 404 with ``valid: false`` for unknown ids."""
    return await verify_certificate(db, certificate_id)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------


@router.get("/courses/{course_id}/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    course_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return await course_leaderboard(db, course_id, user_id=user.id, include_unpublished=user.is_admin)
