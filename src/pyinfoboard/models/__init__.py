"""Data models for pyinfoboard."""

from pyinfoboard.models._base import EpochDatetime, InfoboardBaseModel, parse_epoch
from pyinfoboard.models.display import DateBucketIndex, DisplayEntry
from pyinfoboard.models.events import CurrentEvent, RawEvent
from pyinfoboard.models.records import (
    CustomRecord,
    OfficialRecord,
    RecordSource,
    StudentFields,
    UnifiedRecord,
)

__all__ = [
    "CurrentEvent",
    "CustomRecord",
    "DateBucketIndex",
    "DisplayEntry",
    "EpochDatetime",
    "InfoboardBaseModel",
    "OfficialRecord",
    "RawEvent",
    "RecordSource",
    "StudentFields",
    "UnifiedRecord",
    "parse_epoch",
]
