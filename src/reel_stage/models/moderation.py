"""Models tracking user reports and the moderation audit log."""

from __future__ import annotations

from pydantic import field_validator

from .base import Record, to_choice, to_int, to_optional_id, to_optional_text, to_text, to_timestamp

REPORT_STATUS_OPEN = "open"
REPORT_STATUS_IN_REVIEW = "in_review"
REPORT_STATUS_RESOLVED = "resolved"
REPORT_STATUS_DISMISSED = "dismissed"
REPORT_STATUSES = (
    REPORT_STATUS_OPEN,
    REPORT_STATUS_IN_REVIEW,
    REPORT_STATUS_RESOLVED,
    REPORT_STATUS_DISMISSED,
)
# Statuses a report may be closed with.
REPORT_TERMINAL_STATUSES = (REPORT_STATUS_RESOLVED, REPORT_STATUS_DISMISSED)

TARGET_POST = "post"
TARGET_COMMENT = "comment"
TARGET_USER = "user"
REPORT_TARGETS = (TARGET_POST, TARGET_COMMENT, TARGET_USER)


class Report(Record):
    """State machine: open -> in_review -> resolved | dismissed."""

    id: int = 0
    reporter_user_id: int = 0
    target_type: str = TARGET_POST
    target_id: int = 0
    reason_code: str = "other"
    reason_text: str = ""
    status: str = REPORT_STATUS_OPEN
    assigned_to_user_id: int | None = None
    created_at: str = ""
    resolved_at: str | None = None

    @field_validator("id", "reporter_user_id", "target_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: object) -> int:
        return to_int(value)

    @field_validator("target_type", mode="before")
    @classmethod
    def _coerce_target(cls, value: object) -> str:
        return to_choice(value, REPORT_TARGETS, TARGET_POST)

    @field_validator("reason_code", mode="before")
    @classmethod
    def _coerce_reason_code(cls, value: object) -> str:
        return to_text(value) or "other"

    @field_validator("reason_text", mode="before")
    @classmethod
    def _coerce_reason_text(cls, value: object) -> str:
        return to_text(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> str:
        return to_choice(value, REPORT_STATUSES, REPORT_STATUS_OPEN)

    @field_validator("assigned_to_user_id", mode="before")
    @classmethod
    def _coerce_assignee(cls, value: object) -> int | None:
        return to_optional_id(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: object) -> str:
        return to_timestamp(value)

    @field_validator("resolved_at", mode="before")
    @classmethod
    def _coerce_resolved_at(cls, value: object) -> str | None:
        return to_optional_text(value)


class ModerationAction(Record):
    """Append-only audit entry written by every moderation mutation."""

    id: int = 0
    actor_user_id: int = 0
    action_type: str = "unknown"
    target_type: str = "unknown"
    target_id: int = 0
    notes: str = ""
    created_at: str = ""

    @field_validator("id", "actor_user_id", "target_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: object) -> int:
        return to_int(value)

    @field_validator("action_type", "target_type", mode="before")
    @classmethod
    def _coerce_label(cls, value: object) -> str:
        return to_text(value) or "unknown"

    @field_validator("notes", mode="before")
    @classmethod
    def _coerce_notes(cls, value: object) -> str:
        return to_text(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: object) -> str:
        return to_timestamp(value)
