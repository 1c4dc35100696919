from __future__ import annotations

import httpx

from ..config import DEFAULT_USER_AGENT
from .errors import ToolRequestError, is_retryable_status

REFERER = "https://www.google.com/"


class FetchToolError(ToolRequestError):
    pass


class ImageFetcher:
    """The two outbound GETs: the results page and the raw image bytes.

    One attempt per call.  Non-2xx responses and transport failures raise
    ``FetchToolError``; callers decide what to do with ``retryable``.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport

    def search_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": REFERER,
        }

    def image_headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Referer": REFERER}

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers=headers)
                response.raise_for_status()
                return response
        except httpx.HTTPError as exc:
            status = None
            retryable = False
            if isinstance(exc, httpx.HTTPStatusError):
                status = exc.response.status_code
                retryable = is_retryable_status(status)
                message = f"HTTP error! Status: {status}"
            else:
                retryable = isinstance(exc, (httpx.TimeoutException, httpx.TransportError))
                message = f"{type(exc).__name__}: {exc}"
            raise FetchToolError(message, url=url, status_code=status, retryable=retryable) from exc
        except (httpx.InvalidURL, ValueError) as exc:
            # Malformed URLs are rejected before any request is sent.
            raise FetchToolError(f"Invalid URL: {exc}", url=url, retryable=False) from exc

    async def fetch_search_page(self, url: str) -> str:
        response = await self._get(url, self.search_headers())
        return response.text

    async def fetch_image_bytes(self, url: str) -> tuple[bytes, str | None]:
        response = await self._get(url, self.image_headers())
        return response.content, response.headers.get("content-type")
