"""Comment records and per-comment reactions."""

from __future__ import annotations

from pydantic import field_validator

from .base import Record, to_choice, to_int, to_optional_id, to_text, to_timestamp

REACTIONS = ("like", "heart", "fire", "clap")


class Comment(Record):
    """Node of a per-post comment tree.

    ``path`` is the dot-joined, zero-padded chain of ancestor ids ending in the
    comment's own id, so sorting by path yields a pre-order walk of the tree.
    """

    id: int = 0
    user_id: int = 0
    post_id: int = 0
    parent_comment_id: int | None = None
    depth: int = 0
    path: str = ""
    body: str = ""
    is_hidden: bool = False
    hidden_reason: str = ""
    created_at: str = ""

    @field_validator("id", "user_id", "post_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: object) -> int:
        return to_int(value)

    @field_validator("parent_comment_id", mode="before")
    @classmethod
    def _coerce_parent(cls, value: object) -> int | None:
        return to_optional_id(value)

    @field_validator("depth", mode="before")
    @classmethod
    def _coerce_depth(cls, value: object) -> int:
        if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            return value
        return 0

    @field_validator("path", "body", "hidden_reason", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return to_text(value)

    @field_validator("is_hidden", mode="before")
    @classmethod
    def _coerce_hidden(cls, value: object) -> bool:
        return bool(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: object) -> str:
        return to_timestamp(value)


class CommentReaction(Record):
    """One reaction type from one user on one comment."""

    id: int = 0
    comment_id: int = 0
    user_id: int = 0
    reaction_type: str = "like"
    created_at: str = ""

    @field_validator("id", "comment_id", "user_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: object) -> int:
        return to_int(value)

    @field_validator("reaction_type", mode="before")
    @classmethod
    def _coerce_reaction(cls, value: object) -> str:
        return to_choice(value, REACTIONS, "like")

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: object) -> str:
        return to_timestamp(value)
