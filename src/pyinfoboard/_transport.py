"""HTTP transport returning decoded JSON documents."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyinfoboard.exceptions import InfoboardHttpError, InfoboardTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the fetcher.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, url: str, options: Mapping[str, Any]) -> Any:
        ...


class HttpTransport:
    """GET a URL with aiohttp and decode the body as JSON.

    The body is read as text and decoded with :mod:`json` rather than
    ``resp.json()`` because some sources (raw paste sites) serve JSON with
    a ``text/plain`` content type.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, user_agent: str = "pyinfoboard") -> None:
        self._http = http_session
        self._user_agent = user_agent

    async def get_json(self, url: str, options: Mapping[str, Any]) -> Any:
        headers: dict[str, str] = {"accept": "application/json", "user-agent": self._user_agent}
        extra_headers = options.get("headers")
        if isinstance(extra_headers, Mapping):
            headers.update({str(k): str(v) for k, v in extra_headers.items()})
        params = options.get("params")

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers, params=params) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise InfoboardHttpError(
                        f"HTTP error! status: {resp.status} from {url}",
                        status_code=resp.status,
                        url=url,
                    )
        except InfoboardTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise InfoboardTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise InfoboardTransportError(f"Invalid JSON from {url}: {text[:200]}", url=url) from exc
