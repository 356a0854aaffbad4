"""Moderation queue and audit log read models."""


from pydantic import BaseModel


class ReportView(BaseModel):
    """Report row for the moderation queue."""

    id: int
    reporter_user_id: int
    target_type: str
    target_id: int
    reason_code: str
    reason_text: str
    status: str
    assigned_to_user_id: int | None
    created_at: str
    resolved_at: str | None
    reporter_username: str
    assignee_username: str


class AuditEntry(BaseModel):
    """Audit log entry annotated with the acting user's name."""

    id: int
    actor_user_id: int
    action_type: str
    target_type: str
    target_id: int
    notes: str
    created_at: str
    actor_username: str
