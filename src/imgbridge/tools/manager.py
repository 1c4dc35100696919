from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from ..config import IMAGE_TYPES, SearchSettings, is_positive_int
from ..sanitizer import sanitize_input
from .errors import (
    DOWNLOAD_ERROR,
    INVALID_PARAMS,
    SEARCH_ERROR,
    UNSUPPORTED_TOOL,
    ExtractionError,
    ToolRequestError,
    error_payload,
)
from .extract import ExtractionStrategy, RegexExtractionStrategy
from .fetch import ImageFetcher
from .files import (
    default_filename,
    ensure_directory,
    format_file_size,
    now_ms,
    safe_filename,
)
from .urls import build_search_url

log = logging.getLogger("imgbridge-tools")


class ToolName(str, Enum):
    SEARCH = "google_images_search"
    DOWNLOAD = "google_images_download"
    CONFIG = "google_images_config"


class ToolManager:
    """Runs the three tools.  Every call returns a result dict or an
    ``{"error": {"code", "message"}}`` dict, never both.

    Search defaults are not held here: each call receives the caller's
    ``SearchSettings`` so one connection's ``configure`` cannot leak into
    another's searches.
    """

    def __init__(
        self,
        fetcher: ImageFetcher | None = None,
        *,
        downloads_dir: str | Path = "downloads",
        extractor: ExtractionStrategy | None = None,
    ) -> None:
        self.fetcher = fetcher or ImageFetcher()
        self.downloads_dir = Path(downloads_dir)
        self.extractor = extractor or RegexExtractionStrategy()

    async def dispatch(self, tool: str, params: dict[str, Any], settings: SearchSettings) -> dict[str, Any]:
        if tool == ToolName.SEARCH.value:
            return await self.search(params, settings)
        if tool == ToolName.DOWNLOAD.value:
            return await self.download(params)
        if tool == ToolName.CONFIG.value:
            return self.configure(params, settings)
        return error_payload(UNSUPPORTED_TOOL, f"Tool '{tool}' is not supported")

    # ------------------------------------------------------------------
    # google_images_search
    # ------------------------------------------------------------------

    async def search(self, params: dict[str, Any], settings: SearchSettings) -> dict[str, Any]:
        query = params.get("query")
        if not query or not isinstance(query, str):
            return error_payload(INVALID_PARAMS, "Search query is required")

        page = params.get("page", 1)
        if not is_positive_int(page):
            page = 1
        safe_search = params.get("safeSearch")
        if not isinstance(safe_search, bool):
            safe_search = settings.safe_search
        image_type = params.get("imageType")
        if not isinstance(image_type, str):
            image_type = settings.image_type
        max_results = params.get("maxResults")
        if not is_positive_int(max_results):
            max_results = settings.max_results

        sanitized = sanitize_input(query)
        url = build_search_url(
            sanitized,
            page=page,
            max_results=max_results,
            safe_search=safe_search,
            image_type=image_type,
        )
        try:
            html = await self.fetcher.fetch_search_page(url)
            extraction = self.extractor.extract(html, max_results)
        except (ToolRequestError, ExtractionError) as exc:
            log.error("Image search failed for %r: %s", sanitized, exc)
            return error_payload(SEARCH_ERROR, f"Failed to search Google Images: {exc}")

        images = extraction.records[:max_results]
        if extraction.format_suspect:
            log.warning("Results page for %r had no image metadata; page format may have changed", sanitized)
        log.info("search %r page=%d -> %d results", sanitized, page, len(images))
        return {
            "results": [image.as_dict() for image in images],
            "metadata": {
                "query": sanitized,
                "page": page,
                "totalResults": len(images),
                # Approximation: a full page is taken to mean more pages exist.
                "hasMore": len(images) == max_results,
                "filters": {
                    "safeSearch": safe_search,
                    "imageType": image_type,
                },
            },
        }

    # ------------------------------------------------------------------
    # google_images_download
    # ------------------------------------------------------------------

    async def download(self, params: dict[str, Any]) -> dict[str, Any]:
        url = params.get("url")
        if not url or not isinstance(url, str):
            return error_payload(INVALID_PARAMS, "Image URL is required")

        try:
            data, content_type = await self.fetcher.fetch_image_bytes(url)
            timestamp = now_ms()
            filename = params.get("filename")
            if filename and isinstance(filename, str):
                output_name = safe_filename(filename)
            else:
                output_name = default_filename(url, timestamp)
            directory = ensure_directory(self._downloads_path())
            output_path = directory / output_name
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, output_path.write_bytes, data)
        except (ToolRequestError, OSError, ValueError) as exc:
            log.error("Image download failed for %s: %s", url, exc)
            return error_payload(DOWNLOAD_ERROR, f"Failed to download image: {exc}")

        log.info("downloaded %s -> %s (%s)", url, output_path, format_file_size(len(data)))
        return {
            "success": True,
            "filename": output_name,
            "path": str(output_path),
            "size": len(data),
            "metadata": {
                "contentType": content_type,
                "timestamp": timestamp,
            },
        }

    def _downloads_path(self) -> Path:
        if self.downloads_dir.is_absolute():
            return self.downloads_dir
        return Path.cwd() / self.downloads_dir

    # ------------------------------------------------------------------
    # google_images_config
    # ------------------------------------------------------------------

    def configure(self, params: dict[str, Any], settings: SearchSettings) -> dict[str, Any]:
        safe_search = params.get("safeSearch")
        if isinstance(safe_search, bool):
            settings.safe_search = safe_search
        image_type = params.get("imageType")
        if image_type in IMAGE_TYPES:
            settings.image_type = image_type
        max_results = params.get("maxResults")
        if is_positive_int(max_results):
            settings.max_results = max_results
        return {"success": True, "config": settings.snapshot()}
