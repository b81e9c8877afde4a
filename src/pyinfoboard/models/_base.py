"""Base model for pyinfoboard data-source records.

Every record model inherits from :class:`InfoboardBaseModel` which
provides:

* ``alias_generator=to_pascal`` so the PascalCase keys used by the
  student sources (``FamilyName``, ``BirthDay``...) map automatically
  to snake_case fields.
* A ``model_validator(mode="before")`` that strips empty-string
  placeholders so the field default is used.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_pascal

# Placeholder strings that mean "not set" in hand-maintained sources.
_SENTINELS = frozenset({"", "undefined", "null"})

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_epoch(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime.

    Strings are parsed as ISO 8601; naive results are taken as UTC.
    Returns ``None`` when the value is ``None``. Anything else that cannot
    become an instant raises ``ValueError`` so pydantic reports it as a
    validation error.
    """
    if value is None:
        return value
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            value = int(text)
        else:
            parsed = datetime.fromisoformat(text)
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")
    try:
        ts = int(value)
        if abs(ts) >= _MS_THRESHOLD:
            ts = ts // 1000
        return datetime.fromtimestamp(ts, tz=UTC)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"Timestamp out of range: {value!r}") from exc


EpochDatetime = Annotated[datetime, BeforeValidator(parse_epoch)]
"""Annotated type that coerces epoch ints (seconds or ms) and ISO strings to UTC datetimes."""


def normalize_id(value: Any) -> str | None:
    """Identifiers arrive as ints or strings; compare them as stripped strings."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("identifier must not be a boolean")
    text = str(value).strip()
    return text or None


class InfoboardBaseModel(BaseModel):
    """Base for records read from the student data sources."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_pascal,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original source dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_placeholders(cls, values: Any) -> Any:
        """Strip placeholder values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = InfoboardBaseModel._clean_dict(original)

        # Keep a caller-supplied raw= (model construction from kwargs).
        if "raw" not in values and "Raw" not in values:
            cleaned["raw"] = original
        return cleaned
