"""Offset pagination with silent clamping."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TypeVar

from reel_stage.schemas.common import Page

T = TypeVar("T")

MAX_PAGE_SIZE = 30
DEFAULT_PAGE_SIZE = 10


def paginate(
    items: Sequence[T],
    page: int | None = 1,
    page_size: int | None = DEFAULT_PAGE_SIZE,
    *,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Page[T]:
    """Slice ``items`` into a page.

    ``page_size`` is clamped to ``[1, max_page_size]`` and ``page`` to
    ``[1, pages]``, so an out-of-range page returns the nearest valid page
    instead of an error or an empty list.
    """
    size = DEFAULT_PAGE_SIZE if page_size is None else int(page_size)
    size = min(max(size, 1), max(max_page_size, 1))
    total = len(items)
    pages = max(1, math.ceil(total / size))
    current = 1 if page is None else int(page)
    current = min(max(current, 1), pages)
    start = (current - 1) * size
    return Page(
        items=list(items[start:start + size]),
        total=total,
        pages=pages,
        page=current,
        page_size=size,
    )
