"""Enrollment request lifecycle: pending -> approved | rejected."""

from __future__ import annotations

from shikhi.errors import ConflictError

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

VALID_TRANSITIONS: dict[str, list[str]] = {
    PENDING: [APPROVED, REJECTED],
    APPROVED: [],
    REJECTED: [],
}

# Statuses that block a new request for the same course.
OPEN_STATUSES = (PENDING, APPROVED)


def is_terminal(status: str) -> bool:
    return not VALID_TRANSITIONS.get(status)


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a state transition. Raises ConflictError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise ConflictError(
            f"Invalid transition: {current_status} -> {target_status}",
            status=current_status,
        )
