"""User records and role/status vocabularies."""

from __future__ import annotations

from pydantic import field_validator

from reel_stage.utils.text import normalize_text

from .base import Record, to_choice, to_int, to_optional_text, to_text, to_timestamp

ROLE_USER = "user"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_MODERATOR, ROLE_ADMIN)

STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"
STATUS_BANNED = "banned"
USER_STATUSES = (STATUS_ACTIVE, STATUS_SUSPENDED, STATUS_BANNED)


class User(Record):
    """Registered account.

    Usernames are unique case-insensitively and emails are stored normalized.
    Accounts are never deleted; moderation only changes ``role`` and ``status``.
    """

    id: int = 0
    username: str = ""
    email: str = ""
    password_hash: str = ""
    bio: str = ""
    avatar_url: str = ""
    created_at: str = ""
    role: str = ROLE_USER
    status: str = STATUS_ACTIVE
    # Accounts stored before verification existed carry no flag and count as verified.
    email_verified: bool = True
    verification_token_hash: str | None = None
    verification_expires_at: str | None = None
    reset_token_hash: str | None = None
    reset_expires_at: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> int:
        return to_int(value)

    @field_validator("username", mode="before")
    @classmethod
    def _coerce_username(cls, value: object) -> str:
        return to_text(value).strip()

    @field_validator("email", mode="before")
    @classmethod
    def _coerce_email(cls, value: object) -> str:
        return normalize_text(value)

    @field_validator("password_hash", "bio", "avatar_url", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return to_text(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: object) -> str:
        return to_timestamp(value)

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value: object) -> str:
        return to_choice(value, ROLES, ROLE_USER)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> str:
        return to_choice(value, USER_STATUSES, STATUS_ACTIVE)

    @field_validator("email_verified", mode="before")
    @classmethod
    def _coerce_verified(cls, value: object) -> bool:
        return value if isinstance(value, bool) else True

    @field_validator(
        "verification_token_hash",
        "verification_expires_at",
        "reset_token_hash",
        "reset_expires_at",
        mode="before",
    )
    @classmethod
    def _coerce_token(cls, value: object) -> str | None:
        return to_optional_text(value)
