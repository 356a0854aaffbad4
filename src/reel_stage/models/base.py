"""Shared base class and coercion helpers for stored records.

Every stored record passes through these coercers when it is loaded, so a
missing or malformed field is replaced by a typed default instead of failing
validation.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from reel_stage.db.time import now_iso


class Record(BaseModel):
    """Base class for every flat record kept in the snapshot."""

    model_config = ConfigDict(extra="ignore", validate_default=True)


def to_int(value: object) -> int:
    """Return ``value`` as an integer, or 0 when it is not integral."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if not number.is_integer():
        return 0
    return int(number)


def to_optional_id(value: object) -> int | None:
    """Return a positive identifier or ``None`` for empty and invalid references."""
    number = to_int(value) if value else 0
    return number if number > 0 else None


def to_text(value: object) -> str:
    """Return ``value`` as a string, treating falsy values as empty."""
    return str(value) if value else ""


def to_timestamp(value: object) -> str:
    """Keep a stored timestamp, stamping the current time when it is missing."""
    return str(value) if value else now_iso()


def to_optional_text(value: object) -> str | None:
    return str(value) if value else None


def to_choice(value: object, choices: Iterable[str], default: str) -> str:
    """Return ``value`` when it is one of ``choices``, otherwise ``default``."""
    return value if isinstance(value, str) and value in choices else default
