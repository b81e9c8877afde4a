"""Current-event processing: rerun detection, localisation, expiry."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from pyinfoboard.countdown import CountdownRegistry, TimerHandle, TimerWindow
from pyinfoboard.exceptions import InfoboardDataError
from pyinfoboard.models.events import CurrentEvent, RawEvent

_logger = logging.getLogger(__name__)

RERUN_PREFIX = "10"
RERUN_SUFFIX = "(Rerun)"
UNKNOWN_EVENT_NAME = "Unknown Event"
DEFAULT_EVENT_LOGO_BASE = "https://schaledb.com/images/eventlogo"

_LOGO_SUFFIX = {"en": "En", "jp": "Jp"}


def timer_target_id(position: str) -> str:
    return f"event-timer-{position}"


def select_region_events(config_payload: Any, region: str) -> list[Any]:
    """Pull ``CurrentEvents`` for *region* out of the events config document."""
    if not isinstance(config_payload, Mapping):
        raise InfoboardDataError("Events config must be an object")
    regions = config_payload.get("Regions")
    if not isinstance(regions, list):
        raise InfoboardDataError("Events config has no Regions list")
    wanted = region.strip().lower()
    for entry in regions:
        if isinstance(entry, Mapping) and str(entry.get("Name", "")).lower() == wanted:
            events = entry.get("CurrentEvents") or []
            if not isinstance(events, list):
                raise InfoboardDataError(f"CurrentEvents for region {region!r} is not a list")
            return events
    raise InfoboardDataError(f"Region {region!r} not found in events config")


def has_expired(end: datetime, now: datetime) -> bool:
    return end <= now


def process_events(
    raw_events: Mapping[str, Any] | Iterable[Any],
    localization: Mapping[str, Any],
    *,
    lang: str = "en",
    now: datetime | None = None,
    image_base: str = DEFAULT_EVENT_LOGO_BASE,
) -> list[CurrentEvent]:
    """Turn raw current-event entries into display-ready events.

    *raw_events* is either a list (positions become the target keys) or a
    mapping of position key to entry. Expired and malformed entries are
    skipped.
    """
    if now is None:
        now = datetime.now(UTC)
    if isinstance(raw_events, Mapping):
        entries = [(str(key), value) for key, value in raw_events.items()]
    else:
        entries = [(str(position), value) for position, value in enumerate(raw_events)]

    names = localization.get("EventName") if isinstance(localization, Mapping) else None
    if not isinstance(names, Mapping):
        names = {}
    logo_suffix = _LOGO_SUFFIX.get(lang, _LOGO_SUFFIX["en"])

    processed: list[CurrentEvent] = []
    for position, value in entries:
        try:
            raw = RawEvent.model_validate(value)
        except ValidationError:
            _logger.warning("Skipping malformed event at position %s", position, exc_info=True)
            continue

        if has_expired(raw.end, now):
            _logger.info("Event has expired, skipping display: %s", position)
            continue

        is_rerun = raw.event.startswith(RERUN_PREFIX)
        event_id = raw.event[len(RERUN_PREFIX) :] if is_rerun else raw.event
        name = str(names.get(event_id) or UNKNOWN_EVENT_NAME)
        if is_rerun:
            name = f"{name} {RERUN_SUFFIX}"

        processed.append(
            CurrentEvent(
                event_id=event_id,
                name=name,
                start=raw.start,
                end=raw.end,
                target_id=timer_target_id(position),
                is_rerun=is_rerun,
                image_url=f"{image_base}/{event_id}_{logo_suffix}.webp",
            )
        )
    return processed


def register_event_timers(
    events: Iterable[CurrentEvent],
    registry: CountdownRegistry,
    *,
    tick_interval: float | None = None,
) -> list[tuple[CurrentEvent, TimerHandle]]:
    """Register one countdown per event, writing to the event's target id."""
    return [
        (event, registry.register(TimerWindow(event.start, event.end, event.target_id), tick_interval))
        for event in events
    ]
