"""Shared read-side shapes."""
from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of an ordered result set.

    ``page`` and ``page_size`` are the clamped values actually used.
    """

    model_config = ConfigDict(frozen=True)

    items: list[T] = Field(default_factory=list)
    total: int = 0
    pages: int = 1
    page: int = 1
    page_size: int = 10


class TagRef(BaseModel):
    """Tag as attached to a post."""

    id: int
    name: str
    slug: str


class TagUsage(TagRef):
    """Tag with the number of posts using it."""

    usage_count: int
