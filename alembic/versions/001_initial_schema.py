"""Initial schema: users, courses, enrollments, ratings, messages.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_ts = sa.DateTime(timezone=True)


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("external_id", sa.String(128), nullable=False, unique=True),
        sa.Column("email", sa.String(320), nullable=False, server_default=""),
        sa.Column("username", sa.String(30)),
        sa.Column("first_name", sa.String(50)),
        sa.Column("last_name", sa.String(50)),
        sa.Column("profile_image_url", sa.Text),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("learning_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_active_date", _ts),
        sa.Column("total_xp", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", _ts, nullable=False, server_default=sa.text("NOW()")),
    )

    # --- Courses ---
    op.create_table(
        "courses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("slug", sa.String(220), nullable=False, unique=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("title_jp", sa.String(200)),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("description_jp", sa.Text),
        sa.Column("level", sa.String(16), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("tags", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("estimated_duration", sa.Integer, nullable=False),
        sa.Column("difficulty", sa.Integer, nullable=False),
        sa.Column("is_premium", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_published", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("thumbnail_url", sa.Text),
        sa.Column("actual_price", sa.Float),
        sa.Column("discounted_price", sa.Float),
        sa.Column("instructor_notes", sa.Text),
        sa.Column("learning_objectives", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("prerequisites", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("enrolled_students", sa.Integer, nullable=False, server_default="0"),
        sa.Column("average_rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_ratings", sa.Integer, nullable=False, server_default="0"),
        sa.Column("curriculum", postgresql.JSONB, nullable=False, server_default='{"modules": []}'),
        sa.Column("created_by", sa.String(128), nullable=False),
        sa.Column("created_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", _ts, nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_course_published", "courses", ["is_published", "is_premium"])
    op.create_index("idx_course_level_category", "courses", ["level", "category"])

    # --- Course enrollments ---
    op.create_table(
        "course_enrollments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("enrolled_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.Column("completed_lessons", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_lessons", sa.Integer, nullable=False, server_default="0"),
        sa.Column("progress_percentage", sa.Float, nullable=False, server_default="0"),
        sa.Column("last_accessed_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.Column("completed_at", _ts),
        sa.Column("certificate_id", sa.String(32), unique=True),
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )
    op.create_index("idx_enrollment_course", "course_enrollments", ["course_id"])

    # --- Enrollment requests ---
    op.create_table(
        "enrollment_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False),
        sa.Column("user_name", sa.String(128), nullable=False),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_name", sa.String(200), nullable=False),
        sa.Column("course_price", sa.Float, nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("transaction_id", sa.String(128), nullable=False),
        sa.Column("sender_number", sa.String(32), nullable=False),
        sa.Column("payment_screenshot", sa.Text),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("approved_by", sa.String(128)),
        sa.Column("approved_at", _ts),
        sa.Column("rejection_reason", sa.String(500)),
        sa.Column("submitted_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.Column("created_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", _ts, nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_enrollment_request_user_course", "enrollment_requests", ["user_id", "course_id"])
    op.create_index("idx_enrollment_request_status", "enrollment_requests", ["status"])
    op.create_index("idx_enrollment_request_submitted", "enrollment_requests", ["submitted_at"])

    # --- Reconciliation tasks ---
    op.create_table(
        "reconciliation_tasks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("enrollment_request_id", sa.String(36)),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("course_id", sa.String(36), nullable=False),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),
        sa.Column("created_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.Column("resolved_at", _ts),
    )
    op.create_index("idx_reconciliation_status", "reconciliation_tasks", ["status", "created_at"])

    # --- Ratings ---
    op.create_table(
        "ratings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_name", sa.String(128), nullable=False),
        sa.Column("user_email", sa.String(320)),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("review", sa.Text, nullable=False),
        sa.Column("is_fake_rating", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", _ts, nullable=False, server_default=sa.text("NOW()")),
        sa.UniqueConstraint("user_id", "course_id", name="uq_rating_user_course"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_rating_range"),
    )
    op.create_index("idx_rating_course", "ratings", ["course_id", "created_at"])

    # --- Messages ---
    op.create_table(
        "messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("sender_id", sa.String(128), nullable=False),
        sa.Column("sender_name", sa.String(128), nullable=False),
        sa.Column("sender_email", sa.String(320), nullable=False, server_default=""),
        sa.Column("receiver_id", sa.String(128), nullable=False),
        sa.Column("receiver_name", sa.String(128), nullable=False),
        sa.Column("receiver_email", sa.String(320), nullable=False, server_default=""),
        sa.Column("subject", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("message_type", sa.String(16), nullable=False, server_default="text"),
        sa.Column("context_type", sa.String(16)),
        sa.Column("context_id", sa.String(36)),
        sa.Column("context_title", sa.String(200)),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("read_at", _ts),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("deleted_at", _ts),
        sa.Column("deleted_by", sa.String(128)),
        sa.Column("thread_id", sa.String(64)),
        sa.Column("reply_to_id", sa.String(36), sa.ForeignKey("messages.id")),
        sa.Column("attachments", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("sent_at", _ts, nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_message_sender", "messages", ["sender_id", "sent_at"])
    op.create_index("idx_message_receiver", "messages", ["receiver_id", "sent_at"])
    op.create_index("idx_message_thread", "messages", ["thread_id", "sent_at"])
    op.create_index("idx_message_unread", "messages", ["receiver_id", "is_read"])


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("ratings")
    op.drop_table("reconciliation_tasks")
    op.drop_table("enrollment_requests")
    op.drop_table("course_enrollments")
    op.drop_table("courses")
    op.drop_table("users")
