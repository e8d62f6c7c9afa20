"""Request/response schemas for messaging."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from shikhi.courses.schemas import Attachment

MessageType = Literal["text", "image", "video", "audio", "file", "voice"]
ContextType = Literal["course", "assignment", "quiz", "general"]
MessageBox = Literal["inbox", "sent", "thread"]


class SendMessageRequest(BaseModel):
    receiver_id: str
    subject: str = ""
    message: str = ""
    message_type: MessageType = "text"
    context_type: ContextType | None = None
    context_id: str | None = None
    context_title: str | None = None
    reply_to_id: str | None = None
    attachments: list[Attachment] = []


class BroadcastRequest(BaseModel):
    subject: str = ""
    message: str = ""
    course_id: str | None = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    sender_name: str
    receiver_id: str
    receiver_name: str
    subject: str
    message: str
    message_type: str
    context_type: str | None = None
    context_id: str | None = None
    context_title: str | None = None
    thread_id: str | None = None
    reply_to_id: str | None = None
    attachments: list[dict] = []
    is_read: bool
    read_at: datetime | None = None
    sent_at: datetime


class SendMessageResponse(BaseModel):
    success: bool = True
    sent_count: int
    data: MessageResponse
    warning: str | None = None


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
    unread_count: int


class BroadcastResponse(BaseModel):
    success: bool = True
    sent_count: int
    thread_id: str
