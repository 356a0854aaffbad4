"""The persisted document: schema version, id counters and one list per entity kind."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import to_int, to_optional_text
from .comment import Comment, CommentReaction
from .moderation import ModerationAction, Report
from .post import Bookmark, Like, Post
from .taxonomy import Category, PostTag, Tag
from .user import User

SCHEMA_VERSION = 2

# Entity kinds that draw identifiers from a counter.
ENTITY_KINDS = (
    "users",
    "categories",
    "posts",
    "likes",
    "comments",
    "tags",
    "bookmarks",
    "comment_reactions",
    "reports",
    "moderation_actions",
)


class Counters(BaseModel):
    """Last identifier handed out per entity kind; never decreases."""

    model_config = ConfigDict(extra="ignore", validate_default=True)

    users: int = 0
    categories: int = 0
    posts: int = 0
    likes: int = 0
    comments: int = 0
    tags: int = 0
    bookmarks: int = 0
    comment_reactions: int = 0
    reports: int = 0
    moderation_actions: int = 0

    @field_validator(*ENTITY_KINDS, mode="before")
    @classmethod
    def _coerce_counter(cls, value: object) -> int:
        return max(to_int(value), 0)


class SearchIndexMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    last_rebuild_at: str | None = None

    @field_validator("last_rebuild_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: object) -> str | None:
        return to_optional_text(value)


class Snapshot(BaseModel):
    """Complete in-memory state, written whole to the backing file on every commit."""

    model_config = ConfigDict(extra="ignore")

    schema_version: int = SCHEMA_VERSION
    counters: Counters = Field(default_factory=Counters)
    users: list[User] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    posts: list[Post] = Field(default_factory=list)
    likes: list[Like] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    post_tags: list[PostTag] = Field(default_factory=list)
    bookmarks: list[Bookmark] = Field(default_factory=list)
    comment_reactions: list[CommentReaction] = Field(default_factory=list)
    reports: list[Report] = Field(default_factory=list)
    moderation_actions: list[ModerationAction] = Field(default_factory=list)
    search_index_meta: SearchIndexMeta = Field(default_factory=SearchIndexMeta)

    def serialize(self) -> str:
        """Return the snapshot as the JSON document stored on disk."""
        return self.model_dump_json(indent=2)
