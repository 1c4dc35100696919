"""
Image-record extraction from a Google Images results page.

The results page embeds per-image metadata as JSON-like fragments.  Three keys
are read, in this left-to-right order:

    "ou"  original image URL   -> ImageRecord.url (and .thumbnail)
    "pt"  page title           -> ImageRecord.title
    "ru"  referring page URL   -> ImageRecord.source

Only two escapes are undone on each captured value (\\u003d and \\u0026).
No HTML-entity or percent decoding is performed.

The page format belongs to a third party and changes without notice, so the
scan lives behind ``ExtractionStrategy``: swap the strategy, keep the
dispatcher.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any

from .errors import ExtractionError

log = logging.getLogger("imgbridge-extract")

_ESCAPES = (("\\u003d", "="), ("\\u0026", "&"))


@dataclass(frozen=True)
class ImageRecord:
    url: str
    title: str
    source: str
    thumbnail: str

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExtractionResult:
    records: list[ImageRecord] = field(default_factory=list)
    matched: int = 0
    skipped: int = 0
    # True when nothing came back and the page lacks the keys entirely,
    # i.e. the page format likely changed rather than the query found nothing.
    format_suspect: bool = False


def decode_field(value: str) -> str:
    for escaped, plain in _ESCAPES:
        value = value.replace(escaped, plain)
    return value


class ExtractionStrategy(ABC):
    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict

    @abstractmethod
    def extract(self, html: str, limit: int) -> ExtractionResult:
        ...


class RegexExtractionStrategy(ExtractionStrategy):
    # Lazy gaps never cross a line terminator (\n, \r, U+2028, U+2029).
    _GAP = r"[^\n\r\u2028\u2029]*?"
    PATTERN = re.compile(f'"ou":"({_GAP})"{_GAP}"pt":"({_GAP})"{_GAP}"ru":"({_GAP})"')
    MARKER = '"ou":'

    def extract(self, html: str, limit: int) -> ExtractionResult:
        records: list[ImageRecord] = []
        matched = 0
        skipped = 0
        if limit > 0:
            for match in self.PATTERN.finditer(html or ""):
                matched += 1
                try:
                    records.append(self.build_record(match))
                except Exception as exc:
                    if self.strict:
                        raise ExtractionError(
                            f"Malformed image record at offset {match.start()}: {exc}"
                        ) from exc
                    skipped += 1
                    log.warning("Skipping image record at offset %d: %s", match.start(), exc)
                    continue
                if len(records) >= limit:
                    break

        format_suspect = not records and self.MARKER not in (html or "")
        if not records:
            log.warning(
                "No image records extracted (matched=%d, skipped=%d, format_suspect=%s)",
                matched, skipped, format_suspect,
            )
        return ExtractionResult(
            records=records,
            matched=matched,
            skipped=skipped,
            format_suspect=format_suspect,
        )

    def build_record(self, match: re.Match[str]) -> ImageRecord:
        image_url = decode_field(match.group(1))
        return ImageRecord(
            url=image_url,
            title=decode_field(match.group(2)),
            source=decode_field(match.group(3)),
            thumbnail=image_url,
        )


def extract_images_from_html(html: str, max_results: int = 20) -> list[ImageRecord]:
    return RegexExtractionStrategy().extract(html, max_results).records
