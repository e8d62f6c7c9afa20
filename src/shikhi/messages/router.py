"""Messaging endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shikhi.auth.dependencies import get_current_user, require_admin
from shikhi.database import get_session
from shikhi.db.models import User
from shikhi.messages.schemas import (
    BroadcastRequest,
    BroadcastResponse,
    MessageBox,
    MessageListResponse,
    MessageResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from shikhi.messages.service import broadcast, delete_message, list_messages, mark_read, send_message

router = APIRouter(prefix="/api/v1/messages", tags=["Messages"])


@router.post("", response_model=SendMessageResponse, status_code=201)
async def send(
    body: SendMessageRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SendMessageResponse:
    """Send to one user, or to every admin with ``receiver_id="admin"``."""
    messages, warning = await send_message(
        db,
        user,
        receiver_id=body.receiver_id,
        subject=body.subject,
        message=body.message,
        message_type=body.message_type,
        context_type=body.context_type,
        context_id=body.context_id,
        context_title=body.context_title,
        reply_to_id=body.reply_to_id,
        attachments=[a.model_dump() for a in body.attachments],
    )
    await db.commit()
    return SendMessageResponse(
        sent_count=len(messages),
        data=MessageResponse.model_validate(messages[0]),
        warning=warning,
    )


@router.get("", response_model=MessageListResponse)
async def list_my_messages(
    type: MessageBox = Query("inbox"),  # noqa: A002
    thread_id: str | None = None,
    student_id: str | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageListResponse:
    messages, unread = await list_messages(db, user, box=type, thread_id=thread_id, student_id=student_id)
    return MessageListResponse(
        messages=[MessageResponse.model_validate(m) for m in messages],
        unread_count=unread,
    )


@router.patch("/{message_id}/read", response_model=MessageResponse)
async def read(
    message_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    msg = await mark_read(db, user, message_id)
    await db.commit()
    return MessageResponse.model_validate(msg)


@router.delete("/{message_id}")
async def delete(
    message_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Unsend. The message disappears for both sides."""
    await delete_message(db, user, message_id)
    await db.commit()
    return {"success": True, "message_id": message_id}


@router.post("/broadcast", response_model=BroadcastResponse, status_code=201)
async def send_broadcast(
    body: BroadcastRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> BroadcastResponse:
    sent, thread_id = await broadcast(db, admin, subject=body.subject, message=body.message, course_id=body.course_id)
    await db.commit()
    return BroadcastResponse(sent_count=sent, thread_id=thread_id)
