"""High-level async client driving the birthday and event widgets."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

import aiohttp

from pyinfoboard._cache import TTLCache
from pyinfoboard._transport import HttpTransport, Transport
from pyinfoboard.config import InfoboardConfig
from pyinfoboard.countdown import CountdownRegistry, DisplayTarget, TimerHandle
from pyinfoboard.events import process_events, register_event_timers, select_region_events
from pyinfoboard.exceptions import (
    InfoboardDataError,
    InfoboardError,
    InfoboardTransportError,
    MergeReferenceError,
)
from pyinfoboard.fetch import CachedFetcher
from pyinfoboard.indexer import build_index
from pyinfoboard.merge import merge_records, parse_customs, parse_official
from pyinfoboard.models.display import DateBucketIndex, DisplayEntry
from pyinfoboard.models.events import CurrentEvent

_logger = logging.getLogger(__name__)

NO_BIRTHDAY_DATA = "No birthday data available"

_FALLBACK_CONNECTION = "Unable to connect to the server. Please check your internet connection."
_FALLBACK_UNAVAILABLE = "Birthday information is temporarily unavailable."
_FALLBACK_DEFAULT = "An unexpected error occurred while loading birthday information."


def fallback_message(error: BaseException) -> str:
    """User-facing text shown in place of the birthday table after a failure."""
    if isinstance(error, InfoboardTransportError):
        return _FALLBACK_CONNECTION
    if isinstance(error, InfoboardDataError):
        return _FALLBACK_UNAVAILABLE
    return _FALLBACK_DEFAULT


class _NullTarget:
    """Display target used when the caller runs no countdowns."""

    def exists(self, target_id: str) -> bool:
        return False

    def write(self, target_id: str, text: str) -> None:
        return None


class InfoboardClient:
    """Async client for the widget data sources.

    Usage::

        async with InfoboardClient(config, target=page) as client:
            index = await client.refresh_birthdays()
            events = await client.get_current_events()
            client.start_event_timers(events)
    """

    def __init__(
        self,
        config: InfoboardConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        cache: TTLCache | None = None,
        timers: CountdownRegistry | None = None,
        target: DisplayTarget | None = None,
    ) -> None:
        self._config = config or InfoboardConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._cache = cache if cache is not None else TTLCache(
            enabled=self._config.cache_enabled,
            coalesce_in_flight=self._config.coalesce_in_flight,
        )
        self._timers = timers if timers is not None else CountdownRegistry(
            target or _NullTarget(),
            tick_interval=self._config.tick_interval,
            setup_delay=self._config.timer_setup_delay,
        )
        self._fetcher: CachedFetcher | None = None
        self._birthdays: DateBucketIndex | None = None
        self._retry_task: asyncio.Task[None] | None = None
        self._refresh_lock = asyncio.Lock()
        self.skipped_references: list[MergeReferenceError] = []

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> InfoboardClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, user_agent=self._config.user_agent)
        self._fetcher = CachedFetcher(self._transport, self._cache, ttl=self._config.cache_ttl)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._cancel_retry()
        await self._timers.aclose()
        self._cache.clear()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._fetcher = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> InfoboardConfig:
        return self._config

    @property
    def cache(self) -> TTLCache:
        return self._cache

    @property
    def timers(self) -> CountdownRegistry:
        return self._timers

    @property
    def birthdays(self) -> DateBucketIndex | None:
        """The last published index, or ``None`` before the first success."""
        return self._birthdays

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def _require_fetcher(self) -> CachedFetcher:
        if self._fetcher is None:
            raise InfoboardError("Client not initialized. Use 'async with InfoboardClient(...) as client:'")
        return self._fetcher

    # ------------------------------------------------------------------
    # Birthdays
    # ------------------------------------------------------------------

    async def refresh_birthdays(self) -> DateBucketIndex:
        """Fetch both sources, merge, index and publish a new index.

        Both fetches run concurrently and the first failure aborts the
        refresh; nothing is published unless every step succeeds.
        """
        fetcher = self._require_fetcher()
        async with self._refresh_lock:
            official_payload, custom_payload = await asyncio.gather(
                fetcher.fetch_json(self._config.student_data_url),
                fetcher.fetch_json(self._config.custom_data_url),
            )
            skipped: list[MergeReferenceError] = []
            unified = merge_records(
                parse_official(official_payload),
                parse_customs(custom_payload),
                skipped=skipped,
                id_prefix=self._config.synthetic_id_prefix,
            )
            index = build_index(unified, image_url_template=self._config.image_url_template)
            if not index:
                raise InfoboardDataError(NO_BIRTHDAY_DATA)

            self._birthdays = index
            self.skipped_references = skipped
            _logger.debug("Published birthday index: %r", index)
            return index

    async def run_birthdays(
        self,
        on_ready: Callable[[DateBucketIndex], None],
        on_fallback: Callable[[str], None],
    ) -> DateBucketIndex | None:
        """Refresh once, handing the result to the presentation callbacks.

        On failure the fallback text is shown and the whole pipeline is
        scheduled to run again after ``config.retry_delay`` seconds. Each
        failed re-run schedules the next one the same way.
        """
        try:
            index = await self.refresh_birthdays()
        except Exception as exc:
            _logger.error("Failed to initialize birthday display: %s", exc, exc_info=True)
            on_fallback(fallback_message(exc))
            self._schedule_retry(on_ready, on_fallback)
            return None
        on_ready(index)
        return index

    def _schedule_retry(
        self,
        on_ready: Callable[[DateBucketIndex], None],
        on_fallback: Callable[[str], None],
    ) -> None:
        # A running retry reschedules itself; any other pending retry wins.
        if self.retry_pending and self._retry_task is not asyncio.current_task():
            return

        async def _retry() -> None:
            await asyncio.sleep(self._config.retry_delay)
            if self._fetcher is None:
                return
            await self.run_birthdays(on_ready, on_fallback)

        self._retry_task = asyncio.get_running_loop().create_task(_retry(), name="pyinfoboard:retry")

    def _cancel_retry(self) -> None:
        task = self._retry_task
        self._retry_task = None
        if task is not None and not task.done():
            task.cancel()

    def upcoming_birthdays(self, today: date | None = None) -> list[tuple[date, tuple[DisplayEntry, ...]]]:
        """Birthdays from *today* through ``config.days_to_show`` days ahead."""
        if self._birthdays is None:
            return []
        start = today or date.today()
        return self._birthdays.upcoming(start, self._config.days_to_show)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def get_current_events(self, now: datetime | None = None) -> list[CurrentEvent]:
        """Fetch the configured region's current events and localise them."""
        fetcher = self._require_fetcher()
        config_payload, localization = await asyncio.gather(
            fetcher.fetch_json(self._config.events_config_url),
            fetcher.fetch_json(self._config.localization_url),
        )
        raw_events = select_region_events(config_payload, self._config.event_region)
        return process_events(
            raw_events,
            localization if isinstance(localization, dict) else {},
            lang=self._config.language,
            now=now,
            image_base=self._config.event_logo_base,
        )

    def start_event_timers(self, events: list[CurrentEvent]) -> list[tuple[CurrentEvent, TimerHandle]]:
        """Register a countdown for each event with the client's registry."""
        return register_event_timers(events, self._timers)

    def __repr__(self) -> str:
        return f"InfoboardClient(birthdays={self._birthdays!r}, timers={len(self._timers)})"
