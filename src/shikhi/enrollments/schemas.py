"""Request/response schemas for enrollment requests."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PaymentMethod = Literal["bkash", "nagad", "upay", "rocket"]
RequestStatus = Literal["pending", "approved", "rejected"]


class EnrollmentSubmitRequest(BaseModel):
    """A student's claim to have paid for a course."""

    course_id: str = Field(..., min_length=1)
    payment_method: PaymentMethod
    transaction_id: str = Field(..., min_length=1, max_length=128)
    sender_number: str = Field(..., min_length=1, max_length=32)
    payment_screenshot: str | None = None


class RejectRequest(BaseModel):
    reason: str = ""


class EnrollmentRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    user_email: str
    user_name: str
    course_id: str
    course_name: str
    course_price: float
    payment_method: str
    transaction_id: str
    sender_number: str
    payment_screenshot: str | None = None
    status: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    submitted_at: datetime
    updated_at: datetime


class EnrollmentActionResponse(BaseModel):
    success: bool = True
    request: EnrollmentRequestResponse
    warning: str | None = None


class EnrollmentRequestListResponse(BaseModel):
    requests: list[EnrollmentRequestResponse]
    total: int
