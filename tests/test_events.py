from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from pyinfoboard.countdown import CountdownRegistry
from pyinfoboard.events import process_events, register_event_timers, select_region_events
from pyinfoboard.exceptions import InfoboardDataError

NOW = datetime(2025, 1, 15, tzinfo=UTC)
START = int(datetime(2025, 1, 10, tzinfo=UTC).timestamp())
END = int(datetime(2025, 1, 24, tzinfo=UTC).timestamp())

LOCALIZATION = {"EventName": {"801": "Sakura Flowing", "827": "Summer Special Ops"}}


def test_process_events_localizes_and_builds_targets() -> None:
    events = process_events(
        [{"event": 801, "start": START, "end": END}],
        LOCALIZATION,
        now=NOW,
    )

    assert len(events) == 1
    event = events[0]
    assert event.event_id == "801"
    assert event.name == "Sakura Flowing"
    assert event.is_rerun is False
    assert event.target_id == "event-timer-0"
    assert event.image_url == "https://schaledb.com/images/eventlogo/801_En.webp"
    assert event.start == datetime(2025, 1, 10, tzinfo=UTC)


def test_rerun_prefix_is_stripped_and_labelled() -> None:
    events = process_events(
        {"3": {"event": "10827", "start": START, "end": END}},
        LOCALIZATION,
        lang="jp",
        now=NOW,
    )

    assert events[0].event_id == "827"
    assert events[0].name == "Summer Special Ops (Rerun)"
    assert events[0].is_rerun is True
    assert events[0].target_id == "event-timer-3"


@pytest.mark.parametrize(
    "bad_bound",
    [[1], {"seconds": 1}, 10**30, "1" * 30, float("inf"), True],
)
def test_one_unreadable_bound_does_not_hide_other_events(bad_bound: object) -> None:
    events = process_events(
        [
            {"event": 802, "start": bad_bound, "end": END},
            {"event": 801, "start": START, "end": END},
        ],
        LOCALIZATION,
        now=NOW,
    )

    assert [e.event_id for e in events] == ["801"]
    assert events[0].target_id == "event-timer-1"
    assert events[0].image_url.endswith("/827_Jp.webp")


def test_unknown_event_name_falls_back() -> None:
    events = process_events([{"event": 999, "start": START, "end": END}], {}, now=NOW)
    assert events[0].name == "Unknown Event"


def test_expired_and_malformed_events_are_skipped() -> None:
    expired_end = int(datetime(2025, 1, 15, tzinfo=UTC).timestamp())
    events = process_events(
        [
            {"event": 801, "start": START, "end": expired_end},
            {"event": 801},
            "garbage",
            {"event": 827, "start": START * 1000, "end": END * 1000},
        ],
        LOCALIZATION,
        now=NOW,
    )

    assert [e.event_id for e in events] == ["827"]
    assert events[0].target_id == "event-timer-3"


def test_select_region_events_matches_case_insensitively() -> None:
    payload = {
        "Regions": [
            {"Name": "Jp", "CurrentEvents": [{"event": 1}]},
            {"Name": "Global", "CurrentEvents": [{"event": 2}]},
        ]
    }

    assert select_region_events(payload, "global") == [{"event": 2}]
    assert select_region_events(payload, "JP") == [{"event": 1}]


@pytest.mark.parametrize(
    "payload",
    [[], {"Regions": "x"}, {"Regions": [{"Name": "Cn", "CurrentEvents": []}]}],
)
def test_select_region_events_rejects_bad_documents(payload: object) -> None:
    with pytest.raises(InfoboardDataError):
        select_region_events(payload, "Global")


class _Page:
    def __init__(self) -> None:
        self.texts: dict[str, str] = {}

    def exists(self, target_id: str) -> bool:
        return True

    def write(self, target_id: str, text: str) -> None:
        self.texts[target_id] = text


@pytest.mark.asyncio
async def test_register_event_timers_pairs_each_event_with_a_timer() -> None:
    page = _Page()
    now_ms = int(NOW.timestamp() * 1000)
    events = process_events(
        [{"event": 801, "start": START, "end": END}, {"event": 827, "start": START, "end": END}],
        LOCALIZATION,
        now=NOW,
    )

    async with CountdownRegistry(page, clock=lambda: now_ms, setup_delay=0, tick_interval=0.01) as registry:
        pairs = register_event_timers(events, registry)
        await asyncio.sleep(0.02)

        assert [event.target_id for event, _ in pairs] == ["event-timer-0", "event-timer-1"]
        assert [handle.window.target_id for _, handle in pairs] == ["event-timer-0", "event-timer-1"]
        assert page.texts["event-timer-0"] == "Time Left: 9d 0h 0m"

    assert len(registry) == 0
