"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from shikhi.users.streak import StreakAction


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str
    email: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    full_name: str
    profile_image_url: str | None = None
    is_admin: bool
    learning_streak: int
    last_active_date: datetime | None = None
    total_xp: int
    created_at: datetime


class AdminContact(BaseModel):
    """Who a student can message."""

    model_config = ConfigDict(from_attributes=True)

    external_id: str
    display_name: str
    email: str
    profile_image_url: str | None = None


class EnrolledCourseResponse(BaseModel):
    course_id: str
    slug: str
    title: str
    thumbnail_url: str | None = None
    enrolled_at: datetime
    completed_lessons: int
    total_lessons: int
    progress_percentage: float
    last_accessed_at: datetime
    completed_at: datetime | None = None
    certificate_id: str | None = None


class StreakRequest(BaseModel):
    action: StreakAction


class StreakResponse(BaseModel):
    learning_streak: int
    last_active_date: datetime | None = None


class XPRequest(BaseModel):
    points: int


class XPResponse(BaseModel):
    total_xp: int
    added: int
