from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from imgbridge.tools.fetch import REFERER, FetchToolError, ImageFetcher


def _fetcher(handler) -> ImageFetcher:
    return ImageFetcher(user_agent="test-agent/1.0", timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_search_page_sends_browser_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="<html>ok</html>")

    html = await _fetcher(handler).fetch_search_page("https://www.google.com/search?q=cats")
    assert html == "<html>ok</html>"
    headers = seen[0].headers
    assert headers["User-Agent"] == "test-agent/1.0"
    assert headers["Accept"] == "text/html,application/xhtml+xml,application/xml"
    assert headers["Accept-Language"] == "en-US,en;q=0.9"
    assert headers["Referer"] == REFERER


@pytest.mark.asyncio
async def test_image_bytes_and_content_type() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Referer"] == REFERER
        return httpx.Response(200, content=b"\x89PNG....", headers={"content-type": "image/png"})

    data, content_type = await _fetcher(handler).fetch_image_bytes("https://img.example.com/a.png")
    assert data == b"\x89PNG...."
    assert content_type == "image/png"


@pytest.mark.asyncio
async def test_non_2xx_is_a_failure() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503)

    with pytest.raises(FetchToolError) as exc:
        await _fetcher(handler).fetch_search_page("https://www.google.com/search?q=cats")
    assert exc.value.status_code == 503
    assert exc.value.retryable is True
    assert "503" in str(exc.value)
    assert calls == 1


@pytest.mark.asyncio
async def test_not_found_not_retryable() -> None:
    fetcher = _fetcher(lambda request: httpx.Response(404))
    with pytest.raises(FetchToolError) as exc:
        await fetcher.fetch_image_bytes("https://img.example.com/missing.png")
    assert exc.value.status_code == 404
    assert exc.value.url == "https://img.example.com/missing.png"
    assert exc.value.retryable is False


@pytest.mark.asyncio
async def test_transport_error_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchToolError) as exc:
        await _fetcher(handler).fetch_image_bytes("https://img.example.com/a.png")
    assert exc.value.status_code is None
    assert exc.value.retryable is True


@pytest.mark.asyncio
async def test_malformed_url_wrapped_without_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"")

    with pytest.raises(FetchToolError) as exc:
        await _fetcher(handler).fetch_image_bytes("http://[::1")
    assert str(exc.value).startswith("Invalid URL:")
    assert exc.value.retryable is False
    assert seen == []
    assert exc.value.url == "http://[::1"


@pytest.mark.asyncio
async def test_request_timeout_status_is_retryable() -> None:
    fetcher = _fetcher(lambda request: httpx.Response(408))
    with pytest.raises(FetchToolError) as exc:
        await fetcher.fetch_search_page("https://www.google.com/search?q=cats")
    assert exc.value.status_code == 408
    assert exc.value.retryable is True
