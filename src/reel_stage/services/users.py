"""Account lifecycle: registration, lookups, tokens and profile.

Role and status changes go through :class:`~reel_stage.services.moderation.ModerationService`
so each one is audited.
"""
from __future__ import annotations

from datetime import datetime

from reel_stage.db.store import Store
from reel_stage.db.time import now_iso, parse_timestamp, utcnow
from reel_stage.models import User
from reel_stage.models.user import ROLE_ADMIN, ROLE_USER
from reel_stage.schemas import AdminUserRow, PublicUser
from reel_stage.utils.text import normalize_text

__all__ = ["UserService", "to_public_user"]


def to_public_user(user: User | None) -> PublicUser | None:
    """Project a stored user onto the fields safe to expose."""
    if user is None:
        return None
    return PublicUser.model_validate(user, from_attributes=True)


def _as_timestamp(value: datetime | str) -> str:
    return value.isoformat() if isinstance(value, datetime) else str(value)


def _token_matches(token_hash: str | None, expires_at: str | None, candidate: str) -> bool:
    if not token_hash or token_hash != candidate or not expires_at:
        return False
    return parse_timestamp(expires_at) >= utcnow()


class UserService:
    """CRUD-style operations over user records."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def get(self, user_id: int | None) -> User | None:
        """Return a user by id, or ``None``."""
        if not user_id:
            return None
        with self.store.lock:
            return next((u for u in self.store.state.users if u.id == user_id), None)

    def get_by_email(self, email: str) -> User | None:
        wanted = normalize_text(email)
        with self.store.lock:
            return next((u for u in self.store.state.users if u.email == wanted), None)

    def get_by_username(self, username: str) -> User | None:
        """Case-insensitive username lookup."""
        wanted = normalize_text(username)
        with self.store.lock:
            return next(
                (u for u in self.store.state.users if u.username.lower() == wanted),
                None,
            )

    def list_users(self) -> list[User]:
        """Return all users sorted by username."""
        with self.store.lock:
            return sorted(self.store.state.users, key=lambda u: u.username.lower())

    def create_user(self, username: str, email: str, password_hash: str) -> User | None:
        """Register an account.

        The first account ever created becomes an admin. Returns ``None`` when
        the username or email is empty or already taken.
        """
        username = str(username or "").strip()
        email = normalize_text(email)
        if not username or not email:
            return None
        with self.store.lock:
            if self.get_by_username(username) or self.get_by_email(email):
                return None
            state = self.store.state
            user = User(
                id=self.store.next_id("users"),
                username=username,
                email=email,
                password_hash=password_hash,
                created_at=now_iso(),
                role=ROLE_ADMIN if not state.users else ROLE_USER,
                email_verified=False,
            )
            state.users.append(user)
            self.store.commit()
            return user

    def set_verification_token(
        self, user_id: int, token_hash: str, expires_at: datetime | str
    ) -> User | None:
        with self.store.lock:
            user = self.get(user_id)
            if user is None:
                return None
            user.verification_token_hash = token_hash
            user.verification_expires_at = _as_timestamp(expires_at)
            self.store.commit()
            return user

    def verify_by_token_hash(self, token_hash: str) -> User | None:
        """Mark the account holding an unexpired matching token as verified."""
        with self.store.lock:
            user = next(
                (
                    u
                    for u in self.store.state.users
                    if _token_matches(u.verification_token_hash, u.verification_expires_at, token_hash)
                ),
                None,
            )
            if user is None:
                return None
            user.email_verified = True
            user.verification_token_hash = None
            user.verification_expires_at = None
            self.store.commit()
            return user

    def set_reset_token(
        self, user_id: int, token_hash: str, expires_at: datetime | str
    ) -> User | None:
        with self.store.lock:
            user = self.get(user_id)
            if user is None:
                return None
            user.reset_token_hash = token_hash
            user.reset_expires_at = _as_timestamp(expires_at)
            self.store.commit()
            return user

    def get_by_reset_token_hash(self, token_hash: str) -> User | None:
        with self.store.lock:
            return next(
                (
                    u
                    for u in self.store.state.users
                    if _token_matches(u.reset_token_hash, u.reset_expires_at, token_hash)
                ),
                None,
            )

    def reset_password_by_token_hash(self, token_hash: str, password_hash: str) -> User | None:
        """Replace the password hash and consume the reset token."""
        with self.store.lock:
            user = self.get_by_reset_token_hash(token_hash)
            if user is None:
                return None
            user.password_hash = password_hash
            user.reset_token_hash = None
            user.reset_expires_at = None
            self.store.commit()
            return user

    def update_profile(self, user_id: int, bio: str = "", avatar_url: str = "") -> PublicUser | None:
        with self.store.lock:
            user = self.get(user_id)
            if user is None:
                return None
            user.bio = str(bio or "")
            user.avatar_url = str(avatar_url or "")
            self.store.commit()
            return to_public_user(user)

    def admin_user_list(self) -> list[AdminUserRow]:
        """Public user rows with post and filed-report counts, sorted by username."""
        with self.store.lock:
            state = self.store.state
            rows = []
            for user in self.list_users():
                public = to_public_user(user)
                rows.append(
                    AdminUserRow(
                        **public.model_dump(),
                        post_count=sum(1 for p in state.posts if p.user_id == user.id),
                        report_count=sum(1 for r in state.reports if r.reporter_user_id == user.id),
                    )
                )
            return rows
