"""Presentation-facing structures built from unified records."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from datetime import date, timedelta
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict


class DisplayEntry(BaseModel):
    """One name shown under a date, with every image known for it."""

    model_config = ConfigDict(frozen=True)

    name: str
    images: tuple[str, ...]
    """Distinct image URLs in first-seen order."""


class DateBucketIndex:
    """Read-only mapping of month -> day -> display entries.

    Instances are built once by :func:`pyinfoboard.indexer.build_index`
    and never patched; a refresh publishes a new instance.
    """

    __slots__ = ("_months",)

    def __init__(self, buckets: Mapping[int, Mapping[int, Sequence[DisplayEntry]]] | None = None) -> None:
        frozen: dict[int, Mapping[int, tuple[DisplayEntry, ...]]] = {}
        for month, days in (buckets or {}).items():
            frozen[month] = MappingProxyType({day: tuple(entries) for day, entries in days.items() if entries})
        self._months: Mapping[int, Mapping[int, tuple[DisplayEntry, ...]]] = MappingProxyType(
            {month: days for month, days in frozen.items() if days}
        )

    def get(self, month: int, day: int) -> tuple[DisplayEntry, ...]:
        days = self._months.get(month)
        if days is None:
            return ()
        return days.get(day, ())

    def months(self) -> list[int]:
        return sorted(self._months)

    def days(self, month: int) -> list[int]:
        return sorted(self._months.get(month, {}))

    def as_dict(self) -> dict[int, dict[int, list[DisplayEntry]]]:
        return {month: {day: list(entries) for day, entries in days.items()} for month, days in self._months.items()}

    def __iter__(self) -> Iterator[tuple[int, int, tuple[DisplayEntry, ...]]]:
        for month in self.months():
            for day in self.days(month):
                yield month, day, self._months[month][day]

    def __len__(self) -> int:
        return sum(len(entries) for days in self._months.values() for entries in days.values())

    def __bool__(self) -> bool:
        return bool(self._months)

    def __repr__(self) -> str:
        return f"DateBucketIndex(months={len(self._months)}, entries={len(self)})"

    def upcoming(self, start: date, days: int) -> list[tuple[date, tuple[DisplayEntry, ...]]]:
        """Entries for ``start`` through ``start + days`` inclusive, skipping empty days."""
        result: list[tuple[date, tuple[DisplayEntry, ...]]] = []
        for offset in range(days + 1):
            current = start + timedelta(days=offset)
            entries = self.get(current.month, current.day)
            if entries:
                result.append((current, entries))
        return result
