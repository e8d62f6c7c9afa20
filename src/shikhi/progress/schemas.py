"""Pydantic models for progress, certificates and leaderboards."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProgressUpdateRequest(BaseModel):
    completed_lessons: int = Field(..., ge=0)
    total_lessons: int | None = Field(None, ge=0)


class EnrollmentProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: str
    enrolled_at: datetime
    completed_lessons: int
    total_lessons: int
    progress_percentage: float
    last_accessed_at: datetime
    completed_at: datetime | None = None
    certificate_id: str | None = None


class CompletionResponse(BaseModel):
    success: bool = True
    completed_at: datetime
    enrollment: EnrollmentProgressResponse


class CertificateIssuedResponse(BaseModel):
    certificate_id: str
    course_id: str
    completed_at: datetime | None = None


class CertificateDetails(BaseModel):
    certificate_id: str
    student_name: str
    course_name: str
    completed_at: datetime | None = None
    progress_percentage: float


class CertificateVerification(BaseModel):
    valid: bool
    certificate: CertificateDetails


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    display_name: str
    profile_image_url: str | None = None
    progress_percentage: float
    completed_at: datetime | None = None
    enrolled_at: datetime


class LeaderboardResponse(BaseModel):
    course_id: str
    total: int
    my_rank: int | None = None
    entries: list[LeaderboardEntry]
