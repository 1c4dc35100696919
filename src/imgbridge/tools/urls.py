from __future__ import annotations

from urllib.parse import urlencode

SEARCH_ENDPOINT = "https://www.google.com/search"

_TYPE_TOKENS = {
    "photo": "itp:photo",
    "clipart": "itp:clipart",
    "lineart": "itp:lineart",
    "animated": "itp:animated",
}


def filter_tokens(safe_search: bool, image_type: str) -> list[str]:
    """Return the ``tbs`` tokens for the given filters, safe-search first.

    An unrecognised image type adds nothing.
    """
    tokens: list[str] = []
    if safe_search:
        tokens.append("safe:active")
    type_token = _TYPE_TOKENS.get(image_type)
    if type_token:
        tokens.append(type_token)
    return tokens


def build_search_url(
    query: str,
    page: int = 1,
    max_results: int = 20,
    safe_search: bool = True,
    image_type: str = "all",
    base_url: str = SEARCH_ENDPOINT,
) -> str:
    params: list[tuple[str, str]] = [
        ("q", query),
        ("tbm", "isch"),
        ("start", str((page - 1) * max_results)),
        ("sa", "N"),
    ]
    tokens = filter_tokens(safe_search, image_type)
    if tokens:
        params.append(("tbs", ",".join(tokens)))
    return f"{base_url}?{urlencode(params)}"
