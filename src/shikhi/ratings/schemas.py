"""Request/response schemas for ratings."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RatingCreate(BaseModel):
    rating: int
    review: str = ""


class SeedRatingCreate(BaseModel):
    """Admin-authored rating shown under a made-up reviewer name."""

    course_id: str
    user_name: str
    user_email: str | None = None
    rating: int
    review: str = ""


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    course_id: str
    user_id: str
    user_name: str
    rating: int
    review: str
    is_verified: bool
    created_at: datetime


class AdminRatingResponse(RatingResponse):
    user_email: str | None = None
    is_fake_rating: bool


class RatingStats(BaseModel):
    average_rating: float
    total_ratings: int


class RatingWriteResponse(BaseModel):
    success: bool = True
    rating: RatingResponse | None = None
    stats: RatingStats


class RatingListResponse(BaseModel):
    ratings: list[RatingResponse]
    stats: RatingStats


class AdminRatingListResponse(BaseModel):
    ratings: list[AdminRatingResponse]
