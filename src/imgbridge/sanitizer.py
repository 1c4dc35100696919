from __future__ import annotations

import re

_ANGLE_RE = re.compile(r"[<>]")
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
# Inline event-handler attributes such as onclick= or onerror=
_EVENT_HANDLER_RE = re.compile(r"on\w+=", re.IGNORECASE)


def sanitize_input(text: str | None) -> str:
    """Strip markup-ish fragments from free text before it goes into a URL.

    A shallow filter, not a parser: angle brackets, ``javascript:`` and
    ``on<event>=`` are removed and the result is trimmed.
    """
    if not text:
        return ""
    cleaned = _ANGLE_RE.sub("", text)
    cleaned = _JS_PROTOCOL_RE.sub("", cleaned)
    cleaned = _EVENT_HANDLER_RE.sub("", cleaned)
    return cleaned.strip()
