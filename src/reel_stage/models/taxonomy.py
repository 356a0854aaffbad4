"""Category and tag records."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator, model_validator

from reel_stage.utils.text import slugify

from .base import Record, to_int, to_text, to_timestamp


class Category(Record):
    """Top-level grouping for posts; slugs are unique across the set."""

    id: int = 0
    name: str = ""
    slug: str = ""
    description: str = ""
    sort_order: int = 0

    @model_validator(mode="before")
    @classmethod
    def _derive_slug(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            data["slug"] = slugify(data.get("slug") or data.get("name"))
        return data

    @field_validator("id", "sort_order", mode="before")
    @classmethod
    def _coerce_int(cls, value: object) -> int:
        return to_int(value)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return to_text(value)


class Tag(Record):
    """Free-form label created lazily the first time a post uses it."""

    id: int = 0
    slug: str = ""
    name: str = ""
    created_at: str = ""

    @model_validator(mode="before")
    @classmethod
    def _derive_slug(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            name = to_text(data.get("name")).strip()
            slug = slugify(data.get("slug") or name)
            data["name"] = name or slug
            data["slug"] = slug
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> int:
        return to_int(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: object) -> str:
        return to_timestamp(value)


class PostTag(Record):
    """Many-to-many relation row between a post and a tag."""

    post_id: int = 0
    tag_id: int = 0

    @field_validator("post_id", "tag_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: object) -> int:
        return to_int(value)


# Categories created on first boot when none exist.
CATEGORY_SEED = (
    ("Videography", "videography", "Filmmaking, reels, edits, and camera movement."),
    ("Photography", "photography", "Portraits, street, studio, and color grading."),
    ("Creators", "creators", "Creator economy, growth, and production workflows."),
    ("Post-Production", "post-production", "Editing, sound design, VFX, and finishing."),
    ("Gear", "gear", "Cameras, lenses, lights, drones, and reviews."),
    ("Industry", "industry", "Media business, agencies, and production trends."),
    ("Inspiration", "inspiration", "Reference projects and visual storytelling ideas."),
)
