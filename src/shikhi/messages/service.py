"""
Direct messages between students and admins.

Students may only write to admins. ``receiver_id == "admin"`` fans the
message out to every admin; with no admin registered yet it is parked on the
shared ``ADMIN_TEAM`` inbox that every admin reads. Deleting a message hides
it for both sides.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import and_, func, or_, select

from shikhi.auth.service import get_user_by_external_id, list_admins
from shikhi.courses.service import get_course
from shikhi.db.models import CourseEnrollment, Message, User, utcnow
from shikhi.errors import ForbiddenError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ALL_ADMINS = "admin"
ADMIN_TEAM = "ADMIN_TEAM"
MAX_SUBJECT = 200
MAX_MESSAGE = 5000
LIST_LIMIT = 100


def new_thread_id(prefix: str = "thread") -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def _validate_text(subject: str, message: str) -> tuple[str, str]:
    subject = (subject or "").strip()
    message = (message or "").strip()
    if not subject or not message:
        raise ValidationError("subject and message are required")
    if len(subject) > MAX_SUBJECT:
        raise ValidationError(f"subject must be at most {MAX_SUBJECT} characters")
    if len(message) > MAX_MESSAGE:
        raise ValidationError(f"message must be at most {MAX_MESSAGE} characters")
    return subject, message


def _inboxes(user: User) -> list[str]:
    return [user.external_id, ADMIN_TEAM] if user.is_admin else [user.external_id]


async def _thread_for_reply(db: AsyncSession, user: User, reply_to_id: str | None) -> str:
    if not reply_to_id:
        return new_thread_id()
    original = await db.get(Message, reply_to_id)
    if original is None or original.is_deleted:
        raise NotFoundError("Message to reply to not found", message_id=reply_to_id)
    if not user.is_admin and user.external_id not in (original.sender_id, original.receiver_id):
        raise NotFoundError("Message to reply to not found", message_id=reply_to_id)
    return original.thread_id or new_thread_id()


async def send_message(
    db: AsyncSession,
    sender: User,
    *,
    receiver_id: str,
    subject: str,
    message: str,
    message_type: str = "text",
    context_type: str | None = None,
    context_id: str | None = None,
    context_title: str | None = None,
    reply_to_id: str | None = None,
    attachments: list[dict[str, Any]] | None = None,
) -> tuple[list[Message], str | None]:
    """
    Send a message, fanning out when addressed to ``"admin"``.

    Returns:
        Tuple of (messages created, warning or None).

    Raises:
        ValidationError: Missing or oversized subject/message.
        NotFoundError: Unknown receiver or reply target.
        ForbiddenError: A student writing to another student.
    """
    subject, message = _validate_text(subject, message)
    if not receiver_id:
        raise ValidationError("receiver_id is required")

    if receiver_id == ALL_ADMINS:
        receivers = [a for a in await list_admins(db) if a.id != sender.id]
    else:
        receiver = await get_user_by_external_id(db, receiver_id)
        if receiver is None:
            raise NotFoundError("Receiver not found", receiver_id=receiver_id)
        if not sender.is_admin and not receiver.is_admin:
            raise ForbiddenError("Students can only message admins")
        receivers = [receiver]

    thread_id = await _thread_for_reply(db, sender, reply_to_id)
    common = {
        "sender_id": sender.external_id,
        "sender_name": sender.display_name,
        "sender_email": sender.email,
        "subject": subject,
        "message": message,
        "message_type": message_type,
        "context_type": context_type,
        "context_id": context_id,
        "context_title": context_title,
        "thread_id": thread_id,
        "reply_to_id": reply_to_id or None,
        "attachments": attachments or [],
    }

    warning = None
    if receivers:
        messages = [
            Message(
                receiver_id=r.external_id,
                receiver_name=r.display_name,
                receiver_email=r.email,
                **common,
            )
            for r in receivers
        ]
    else:
        messages = [Message(receiver_id=ADMIN_TEAM, receiver_name="Admin Team", receiver_email="", **common)]
        warning = "No admins are registered yet. The message will be shown to the first admin."

    db.add_all(messages)
    await db.flush()
    logger.info(
        "message_sent",
        sender_id=sender.external_id,
        receivers=len(messages),
        thread_id=thread_id,
        fan_out=receiver_id == ALL_ADMINS,
    )
    return messages, warning


async def list_messages(
    db: AsyncSession,
    user: User,
    *,
    box: str = "inbox",
    thread_id: str | None = None,
    student_id: str | None = None,
) -> tuple[list[Message], int]:
    """
    List non-deleted messages newest first, capped at 100.

    ``student_id`` narrows to the conversation between the caller and that
    student and takes precedence over ``box``.

    Returns:
        Tuple of (messages, unread count of the caller's inbox).
    """
    me = user.external_id
    if student_id:
        condition = or_(
            and_(Message.sender_id == me, Message.receiver_id == student_id),
            and_(Message.sender_id == student_id, Message.receiver_id.in_(_inboxes(user))),
        )
    elif box == "inbox":
        condition = Message.receiver_id.in_(_inboxes(user))
    elif box == "sent":
        condition = Message.sender_id == me
    elif box == "thread":
        if not thread_id:
            raise ValidationError("thread_id is required for thread listing")
        condition = Message.thread_id == thread_id
        if not user.is_admin:
            condition = and_(condition, or_(Message.sender_id == me, Message.receiver_id == me))
    else:
        raise ValidationError("type must be inbox, sent or thread")

    result = await db.execute(
        select(Message)
        .where(condition, Message.is_deleted.is_(False))
        .order_by(Message.sent_at.desc())
        .limit(LIST_LIMIT)
    )
    return list(result.scalars().all()), await unread_count(db, user)


async def unread_count(db: AsyncSession, user: User) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Message)
        .where(
            Message.receiver_id.in_(_inboxes(user)),
            Message.is_read.is_(False),
            Message.is_deleted.is_(False),
        )
    )
    return result.scalar_one()


async def mark_read(db: AsyncSession, user: User, message_id: str) -> Message:
    """Only the receiver can mark a message read."""
    msg = await db.get(Message, message_id)
    if msg is None or msg.is_deleted or msg.receiver_id not in _inboxes(user):
        raise NotFoundError("Message not found", message_id=message_id)
    if not msg.is_read:
        msg.is_read = True
        msg.read_at = utcnow()
        await db.flush()
    return msg


async def delete_message(db: AsyncSession, user: User, message_id: str) -> Message:
    """Soft-delete for both sides. Sender or receiver only."""
    msg = await db.get(Message, message_id)
    if msg is None or msg.is_deleted:
        raise NotFoundError("Message not found", message_id=message_id)
    if msg.sender_id != user.external_id and msg.receiver_id not in _inboxes(user):
        raise NotFoundError("Message not found", message_id=message_id)
    msg.is_deleted = True
    msg.deleted_at = utcnow()
    msg.deleted_by = user.external_id
    await db.flush()
    logger.info("message_deleted", message_id=message_id, deleted_by=user.external_id)
    return msg


async def broadcast(
    db: AsyncSession,
    admin: User,
    *,
    subject: str,
    message: str,
    course_id: str | None = None,
) -> tuple[int, str]:
    """
    Send one copy of a message to each student.

    With ``course_id`` only students enrolled in that course receive it.

    Returns:
        Tuple of (messages sent, thread id shared by the copies).

    Raises:
        NotFoundError: Unknown course, or nobody to send to.
    """
    subject, message = _validate_text(subject, message)

    query = select(User).where(User.is_admin.is_(False))
    if course_id is not None:
        course = await get_course(db, course_id, include_unpublished=True)
        query = query.join(CourseEnrollment, CourseEnrollment.user_id == User.id).where(
            CourseEnrollment.course_id == course.id
        )
    students = list((await db.execute(query.order_by(User.created_at))).scalars().all())
    if not students:
        raise NotFoundError("No students found to send message to", sent_count=0)

    thread_id = new_thread_id("broadcast")
    db.add_all(
        Message(
            sender_id=admin.external_id,
            sender_name=admin.display_name,
            sender_email=admin.email,
            receiver_id=s.external_id,
            receiver_name=s.display_name,
            receiver_email=s.email,
            subject=f"[Broadcast] {subject}"[:MAX_SUBJECT],
            message=message,
            context_type="broadcast" if course_id is None else "course",
            context_id=course_id,
            thread_id=thread_id,
        )
        for s in students
    )
    await db.flush()
    logger.info("broadcast_sent", sender_id=admin.external_id, course_id=course_id, sent_count=len(students))
    return len(students), thread_id
