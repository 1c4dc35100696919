from __future__ import annotations

from typing import Any


class ToolRequestError(RuntimeError):
    """An outbound request made on behalf of a tool failed.

    ``url`` is the address that was requested, ``status_code`` the HTTP status
    when a response arrived at all.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.retryable = retryable


class ExtractionError(ValueError):
    """Raised by a strict extractor when a matched record cannot be built."""


# Statuses worth another attempt by the caller; the fetcher itself never retries.
RETRYABLE_HTTP_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

# Machine-readable codes carried in {"error": {"code": ..., "message": ...}}
INVALID_PARAMS = "invalid_params"
SEARCH_ERROR = "search_error"
DOWNLOAD_ERROR = "download_error"
UNSUPPORTED_TOOL = "unsupported_tool"
INTERNAL_ERROR = "internal_error"


def is_retryable_status(status_code: int | None) -> bool:
    return status_code is not None and status_code in RETRYABLE_HTTP_STATUSES


def error_payload(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}
