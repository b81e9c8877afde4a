"""Event models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyinfoboard.models._base import EpochDatetime, normalize_id


class RawEvent(BaseModel):
    """A current-event entry as listed by the events config."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    event: str
    """Event id; rerun events carry an extra ``"10"`` prefix."""
    start: EpochDatetime
    end: EpochDatetime

    @field_validator("event", mode="before")
    @classmethod
    def _normalize_event(cls, value: Any) -> str:
        normalized = normalize_id(value)
        if normalized is None:
            raise ValueError("event id must be non-empty")
        return normalized


class CurrentEvent(BaseModel):
    """An event ready for display, paired with its countdown target."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    name: str
    start: datetime
    end: datetime
    target_id: str = Field(..., description="Lookup key of the countdown display target")
    is_rerun: bool = False
    image_url: str = ""
