"""Internal time-bounded cache for fetched JSON payloads."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pyinfoboard.exceptions import InfoboardTransportError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and the monotonic instant it was stored."""

    timestamp: float
    payload: Any


class TTLCache:
    """Map a request signature to a payload with lazy expiry.

    Entries are checked on lookup: an entry whose age is greater than or
    equal to the TTL is evicted by the access that discovers it.

    With ``coalesce_in_flight`` enabled, concurrent callers asking for the
    same key while a load is pending await that load instead of starting
    their own.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        coalesce_in_flight: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._enabled = enabled
        self._coalesce = coalesce_in_flight
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._pending: dict[str, asyncio.Future[Any]] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _lookup(self, key: str, ttl: float) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= ttl:
            _logger.debug("Cache entry expired: %s", key)
            del self._entries[key]
            return None
        return entry

    async def get_or_fetch(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: float,
    ) -> Any:
        """Return the cached payload for *key*, or load and store it.

        Loader failures propagate and leave the cache untouched.
        """
        if not self._enabled:
            return await loader()

        entry = self._lookup(key, ttl)
        if entry is not None:
            _logger.debug("Cache hit: %s", key)
            return entry.payload

        if self._coalesce:
            pending = self._pending.get(key)
            if pending is not None:
                _logger.debug("Joining in-flight load: %s", key)
                return await asyncio.shield(pending)
            return await self._load_shared(key, loader)

        _logger.debug("Cache miss: %s", key)
        payload = await loader()
        self._entries[key] = CacheEntry(timestamp=self._clock(), payload=payload)
        return payload

    async def _load_shared(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        _logger.debug("Cache miss: %s", key)
        try:
            payload = await loader()
        except asyncio.CancelledError:
            # Joined callers were not cancelled themselves; they see a load failure.
            future.set_exception(InfoboardTransportError(f"Shared load for {key} was cancelled"))
            future.exception()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unobserved failure is not reported at GC.
            future.exception()
            raise
        else:
            self._entries[key] = CacheEntry(timestamp=self._clock(), payload=payload)
            future.set_result(payload)
            return payload
        finally:
            self._pending.pop(key, None)

    def clear(self) -> None:
        """Drop every entry. Pending loads are left to finish."""
        self._entries.clear()
