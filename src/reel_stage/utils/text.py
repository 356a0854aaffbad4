"""Text helpers shared by the record models and services."""

from __future__ import annotations

import math
import re

PATH_ID_WIDTH = 10
EXCERPT_LENGTH = 220
WORDS_PER_MINUTE = 200

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")
_MARKDOWN_NOISE = re.compile(r"[`*_#>\-\[\]()!]")
_WHITESPACE = re.compile(r"\s+")


def slugify(value: object) -> str:
    """Lower-case ``value`` and collapse every non-alphanumeric run to a hyphen."""
    text = str(value or "").lower().strip()
    return _SLUG_STRIP.sub("-", text).strip("-")


def normalize_text(value: object) -> str:
    """Return a trimmed, lower-cased string for case-insensitive comparison."""
    return str(value or "").lower().strip()


def pad_id(value: object) -> str:
    """Zero-pad an identifier to the fixed width used in comment paths."""
    try:
        number = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        number = 0
    return str(number).zfill(PATH_ID_WIDTH)


def summarize(text: object, max_length: int = EXCERPT_LENGTH) -> str:
    """Collapse whitespace and truncate to ``max_length`` characters."""
    if not text:
        return ""
    cleaned = _WHITESPACE.sub(" ", str(text)).strip()
    if len(cleaned) <= max_length:
        return cleaned
    return f"{cleaned[:max_length]}..."


def compute_reading_time(markdown_body: object) -> int:
    """Estimate reading time in whole minutes, never less than one."""
    words = [word for word in _MARKDOWN_NOISE.sub(" ", str(markdown_body or "")).split() if word]
    return max(1, math.ceil(len(words) / WORDS_PER_MINUTE))
