"""Student record models: official, custom and unified."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import field_validator

from pyinfoboard.models._base import InfoboardBaseModel, normalize_id


class RecordSource(StrEnum):
    OFFICIAL = "official"
    CUSTOM = "custom"


class StudentFields(InfoboardBaseModel):
    """The display fields a custom record is allowed to set."""

    OVERRIDE_FIELDS: ClassVar[tuple[str, ...]] = ("family_name", "personal_name", "birth_day", "direct_image")

    family_name: str | None = None
    """Family name, e.g. ``"Sunohara"``."""
    personal_name: str | None = None
    """Personal name, e.g. ``"Kokona"``."""
    birth_day: str | None = None
    """Birthday in ``"M/D"`` form, e.g. ``"3/5"``."""
    direct_image: str | None = None
    """Explicit image URL; falls back to the collection image when absent."""

    def override_values(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.OVERRIDE_FIELDS}


class OfficialRecord(StudentFields):
    """A record from the bulk student collection."""

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        normalized = normalize_id(value)
        if normalized is None:
            raise ValueError("official record id must be non-empty")
        return normalized


class CustomRecord(StudentFields):
    """An entry from the custom list.

    With ``id`` set it overrides the matching official record; without
    it the entry is added as a new record.
    """

    id: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str | None:
        return normalize_id(value)


class UnifiedRecord(StudentFields):
    """Merged record; ``raw`` keeps the fields a custom override may not touch."""

    id: str
    source: RecordSource = RecordSource.OFFICIAL

    @classmethod
    def from_official(cls, record: OfficialRecord) -> UnifiedRecord:
        return cls(id=record.id, source=RecordSource.OFFICIAL, raw=record.raw, **record.override_values())

    @classmethod
    def from_custom(cls, record_id: str, record: CustomRecord) -> UnifiedRecord:
        return cls(id=record_id, source=RecordSource.CUSTOM, raw=record.raw, **record.override_values())

    def with_override(self, record: CustomRecord) -> UnifiedRecord:
        """Return a copy whose display fields come from *record*."""
        return self.model_copy(update=record.override_values())
