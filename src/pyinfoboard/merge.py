"""Merge the official student collection with the custom override list.

Parsing helpers validate the two payloads at the data-source boundary;
:func:`merge_records` then applies the custom list to the official set in
list order, so later overrides win.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from pyinfoboard.exceptions import InfoboardDataError, MergeReferenceError
from pyinfoboard.models.records import CustomRecord, OfficialRecord, UnifiedRecord

_logger = logging.getLogger(__name__)

DEFAULT_SYNTHETIC_PREFIX = "custom:"


def parse_official(payload: Any) -> dict[str, UnifiedRecord]:
    """Validate the bulk collection into unified records keyed by id.

    Accepts an object keyed by id or a list of records carrying ``Id``.
    For keyed objects the key is the identifier when the record has none.
    """
    if isinstance(payload, Mapping):
        items: Iterable[tuple[Any, Any]] = payload.items()
    elif isinstance(payload, list):
        items = ((None, item) for item in payload)
    else:
        raise InfoboardDataError(f"Official data must be an object or list, got {type(payload).__name__}")

    records: dict[str, UnifiedRecord] = {}
    for key, item in items:
        if not isinstance(item, Mapping):
            _logger.warning("Skipping non-object official record at key %r", key)
            continue
        data = dict(item)
        if data.get("Id") in (None, "") and key is not None:
            data["Id"] = key
        try:
            official = OfficialRecord.model_validate(data)
        except ValidationError:
            _logger.warning("Skipping invalid official record at key %r", key, exc_info=True)
            continue
        records[official.id] = UnifiedRecord.from_official(official)
    return records


def parse_customs(payload: Any) -> list[CustomRecord]:
    """Validate the custom list, preserving its order."""
    if not isinstance(payload, list):
        raise InfoboardDataError(f"Custom data must be a list, got {type(payload).__name__}")

    customs: list[CustomRecord] = []
    for position, item in enumerate(payload):
        if not isinstance(item, Mapping):
            _logger.warning("Skipping non-object custom record at position %d", position)
            continue
        try:
            customs.append(CustomRecord.model_validate(dict(item)))
        except ValidationError:
            _logger.warning("Skipping invalid custom record at position %d", position, exc_info=True)
    return customs


def _allocate_id(working: Mapping[str, UnifiedRecord], prefix: str) -> str:
    counter = len(working)
    candidate = f"{prefix}{counter}"
    while candidate in working:
        counter += 1
        candidate = f"{prefix}{counter}"
    return candidate


def merge_records(
    official_by_id: Mapping[str, UnifiedRecord],
    customs: Iterable[CustomRecord],
    *,
    skipped: list[MergeReferenceError] | None = None,
    id_prefix: str = DEFAULT_SYNTHETIC_PREFIX,
) -> dict[str, UnifiedRecord]:
    """Apply *customs* to a shallow copy of *official_by_id*.

    A custom record with an id overwrites the display fields of the
    matching record; one without an id is inserted under a fresh
    synthetic id. References to unknown ids, and to ids inside the
    synthetic namespace, are logged, appended to *skipped* and dropped.
    Neither input is mutated.
    """
    working: dict[str, UnifiedRecord] = dict(official_by_id)

    for custom in customs:
        record_id = custom.id
        if record_id is None:
            new_id = _allocate_id(working, id_prefix)
            working[new_id] = UnifiedRecord.from_custom(new_id, custom)
            continue

        target = None if record_id.startswith(id_prefix) else working.get(record_id)
        if target is None:
            _logger.warning("Custom data references nonexistent record ID: %s", record_id)
            if skipped is not None:
                skipped.append(MergeReferenceError(record_id))
            continue
        working[record_id] = target.with_override(custom)

    return working
