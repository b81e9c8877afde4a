"""Cached JSON retrieval shared by every data-driven widget."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pyinfoboard._cache import TTLCache
from pyinfoboard._transport import Transport
from pyinfoboard.exceptions import InfoboardError

_logger = logging.getLogger(__name__)

#: Default time-to-live for fetched payloads (one hour).
DEFAULT_CACHE_TTL: float = 3600.0


def cache_key(url: str, options: Mapping[str, Any] | None = None) -> str:
    """Derive a deterministic cache key from a URL and its request options.

    Options are serialised with sorted keys so two equal option mappings
    always share a key and different ones never do.
    """
    encoded = json.dumps(dict(options or {}), sort_keys=True, separators=(",", ":"), default=str)
    return f"{url}{encoded}"


class CachedFetcher:
    """Fetch JSON through a :class:`TTLCache`.

    Failures are logged and re-raised; they are never cached and never
    retried here. Retry scheduling belongs to the refresh pipeline.
    """

    def __init__(self, transport: Transport, cache: TTLCache, *, ttl: float = DEFAULT_CACHE_TTL) -> None:
        self._transport = transport
        self._cache = cache
        self._ttl = ttl

    @property
    def cache(self) -> TTLCache:
        return self._cache

    async def fetch_json(self, url: str, options: Mapping[str, Any] | None = None) -> Any:
        opts: Mapping[str, Any] = options or {}

        async def _load() -> Any:
            return await self._transport.get_json(url, opts)

        try:
            return await self._cache.get_or_fetch(cache_key(url, opts), _load, self._ttl)
        except InfoboardError:
            _logger.error("Failed to fetch data from %s", url, exc_info=True)
            raise
