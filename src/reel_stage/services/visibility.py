"""Role predicates and the hidden-record visibility rule."""

from __future__ import annotations

from reel_stage.models import User
from reel_stage.models.user import ROLE_ADMIN, ROLE_MODERATOR


def is_moderator_role(role: str | None) -> bool:
    return role in (ROLE_MODERATOR, ROLE_ADMIN)


def is_admin_role(role: str | None) -> bool:
    return role == ROLE_ADMIN


def can_moderate(user: User | None) -> bool:
    """Return True when ``user`` holds moderator or admin capability."""
    return user is not None and is_moderator_role(user.role)


def can_admin(user: User | None) -> bool:
    return user is not None and is_admin_role(user.role)


def can_view_hidden(viewer: User | None, author_id: int) -> bool:
    """Return True when ``viewer`` may see a hidden record written by ``author_id``.

    Authors always see their own records; moderators and admins see everything.
    Anonymous viewers never see hidden records.
    """
    if viewer is None:
        return False
    if viewer.id == author_id:
        return True
    return is_moderator_role(viewer.role)


def is_visible(is_hidden: bool, author_id: int, viewer: User | None) -> bool:
    """Visibility predicate shared by posts and comments."""
    return not is_hidden or can_view_hidden(viewer, author_id)
