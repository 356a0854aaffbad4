"""Post records and the per-user like/bookmark relations."""

from __future__ import annotations

from pydantic import field_validator, model_validator

from reel_stage.utils.text import compute_reading_time, summarize

from .base import Record, to_choice, to_int, to_text, to_timestamp

MEDIA_NONE = "none"
MEDIA_IMAGE = "image"
MEDIA_VIDEO = "video"
MEDIA_TYPES = (MEDIA_NONE, MEDIA_IMAGE, MEDIA_VIDEO)


class Post(Record):
    """Primary content entity, owned by exactly one user.

    ``rendered_html`` is a cache of the sanitized Markdown produced by the
    caller; the engine never renders Markdown itself.
    """

    id: int = 0
    user_id: int = 0
    category_id: int = 0
    title: str = ""
    markdown_body: str = ""
    rendered_html: str = ""
    excerpt: str = ""
    reading_time_minutes: int = 0
    media_url: str = ""
    media_type: str = MEDIA_NONE
    is_hidden: bool = False
    hidden_reason: str = ""
    created_at: str = ""

    @field_validator("id", "user_id", "category_id", "reading_time_minutes", mode="before")
    @classmethod
    def _coerce_int(cls, value: object) -> int:
        return to_int(value)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: object) -> str:
        return to_text(value).strip()

    @field_validator(
        "markdown_body", "rendered_html", "excerpt", "media_url", "hidden_reason", mode="before"
    )
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return to_text(value)

    @field_validator("media_type", mode="before")
    @classmethod
    def _coerce_media_type(cls, value: object) -> str:
        return to_choice(value, MEDIA_TYPES, MEDIA_NONE)

    @field_validator("is_hidden", mode="before")
    @classmethod
    def _coerce_hidden(cls, value: object) -> bool:
        return bool(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: object) -> str:
        return to_timestamp(value)

    @model_validator(mode="after")
    def _derive_summary(self) -> "Post":
        if not self.excerpt:
            self.excerpt = summarize(self.markdown_body)
        if self.reading_time_minutes <= 0:
            self.reading_time_minutes = compute_reading_time(self.markdown_body)
        return self


class Like(Record):
    """At most one row per (user, post); removed again when toggled off."""

    id: int = 0
    user_id: int = 0
    post_id: int = 0
    created_at: str = ""

    @field_validator("id", "user_id", "post_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: object) -> int:
        return to_int(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: object) -> str:
        return to_timestamp(value)


class Bookmark(Like):
    """Saved post; same shape and toggle rules as a like."""
