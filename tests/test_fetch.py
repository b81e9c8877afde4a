from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from pyinfoboard._cache import TTLCache
from pyinfoboard._transport import HttpTransport
from pyinfoboard.exceptions import InfoboardHttpError, InfoboardTransportError
from pyinfoboard.fetch import CachedFetcher, cache_key


@dataclass
class FakeTransport:
    responses: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def get_json(self, url: str, options: Mapping[str, Any]) -> Any:
        self.calls.append((url, dict(options)))
        if url in self.errors:
            raise self.errors[url]
        return self.responses[url]


class FakeResponse:
    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self._body = body

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None

    async def text(self) -> str:
        return self._body


@dataclass
class FakeSession:
    status: int = 200
    body: str = "{}"
    error: Exception | None = None
    requests: list[dict[str, Any]] = field(default_factory=list)

    def get(self, url: str, *, headers: dict[str, str], params: Any = None) -> FakeResponse:
        self.requests.append({"url": url, "headers": headers, "params": params})
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status, self.body)


def test_cache_key_is_stable_across_option_order() -> None:
    a = cache_key("https://x/data", {"headers": {"a": "1"}, "params": {"q": "z"}})
    b = cache_key("https://x/data", {"params": {"q": "z"}, "headers": {"a": "1"}})
    assert a == b


def test_cache_key_distinguishes_options() -> None:
    assert cache_key("https://x/data") != cache_key("https://x/data", {"params": {"page": 2}})
    assert cache_key("https://x/data", None) == cache_key("https://x/data", {})


@pytest.mark.asyncio
async def test_fetch_json_caches_per_url_and_options() -> None:
    transport = FakeTransport(responses={"https://x/a": {"ok": True}})
    fetcher = CachedFetcher(transport, TTLCache())

    await fetcher.fetch_json("https://x/a")
    await fetcher.fetch_json("https://x/a")
    await fetcher.fetch_json("https://x/a", {"params": {"v": 1}})

    assert len(transport.calls) == 2
    assert transport.calls[1] == ("https://x/a", {"params": {"v": 1}})


@pytest.mark.asyncio
async def test_fetch_failure_propagates_and_is_not_cached(caplog: pytest.LogCaptureFixture) -> None:
    transport = FakeTransport(errors={"https://x/a": InfoboardHttpError("HTTP 503", status_code=503, url="https://x/a")})
    fetcher = CachedFetcher(transport, TTLCache())

    with pytest.raises(InfoboardHttpError) as excinfo:
        await fetcher.fetch_json("https://x/a")

    assert excinfo.value.status_code == 503
    assert len(fetcher.cache) == 0
    assert "Failed to fetch data from https://x/a" in caplog.text

    transport.errors.clear()
    transport.responses["https://x/a"] = [1, 2]
    assert await fetcher.fetch_json("https://x/a") == [1, 2]


@pytest.mark.asyncio
async def test_http_transport_decodes_text_body() -> None:
    session = FakeSession(body=json.dumps([{"Id": 1}]))
    transport = HttpTransport(session, user_agent="ua-test")  # type: ignore[arg-type]

    result = await transport.get_json("https://x/raw", {"headers": {"x-extra": "1"}, "params": {"a": "b"}})

    assert result == [{"Id": 1}]
    sent = session.requests[0]
    assert sent["headers"]["user-agent"] == "ua-test"
    assert sent["headers"]["x-extra"] == "1"
    assert sent["params"] == {"a": "b"}


@pytest.mark.asyncio
async def test_http_transport_non_2xx_raises_http_error() -> None:
    transport = HttpTransport(FakeSession(status=404, body="not found"))  # type: ignore[arg-type]

    with pytest.raises(InfoboardHttpError) as excinfo:
        await transport.get_json("https://x/missing", {})

    assert excinfo.value.status_code == 404
    assert excinfo.value.url == "https://x/missing"


@pytest.mark.asyncio
async def test_http_transport_accepts_other_2xx() -> None:
    transport = HttpTransport(FakeSession(status=203, body='{"a": 1}'))  # type: ignore[arg-type]
    assert await transport.get_json("https://x/a", {}) == {"a": 1}


@pytest.mark.asyncio
async def test_http_transport_invalid_json_raises_transport_error() -> None:
    transport = HttpTransport(FakeSession(body="<html>"))  # type: ignore[arg-type]

    with pytest.raises(InfoboardTransportError) as excinfo:
        await transport.get_json("https://x/a", {})

    assert not isinstance(excinfo.value, InfoboardHttpError)


@pytest.mark.asyncio
async def test_http_transport_wraps_client_errors() -> None:
    transport = HttpTransport(FakeSession(error=aiohttp.ClientConnectionError("refused")))  # type: ignore[arg-type]

    with pytest.raises(InfoboardTransportError) as excinfo:
        await transport.get_json("https://x/a", {})

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, aiohttp.ClientError)
