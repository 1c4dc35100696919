"""
WebSocket tool server for imgbridge.

Exposes three tools to a desktop assistant over one long-lived WebSocket per
client:

    google_images_search    scrape a Google Images results page
    google_images_download  save an image URL under ./downloads
    google_images_config    change this connection's search defaults

Protocol: one JSON object per WebSocket text frame.

    server -> client (once, on connect)
        {"type": "capabilities", "version": "1.0", "capabilities": {"tools": [...]}}
    client -> server
        {"type": "invoke", "id": <any>, "tool": "<name>", "params": {...}}
    server -> client
        {"type": "response", "id": <same id>, "result": {...}}
        {"type": "error", "error": {"code": "internal_error", "message": "..."}}

Invocations run as independent tasks, so replies may arrive out of order;
clients correlate on ``id``.

Usage
-----
    imgbridge serve            # PORT env var, default 8033
    python -m imgbridge.server
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, WebSocket
from starlette.websockets import WebSocketDisconnect

from .config import CONFIG_PATH, IMAGE_TYPES, SearchSettings, _validate, apply_env, load_config
from .tools.errors import INTERNAL_ERROR
from .tools.extract import RegexExtractionStrategy
from .tools.fetch import ImageFetcher
from .tools.manager import ToolManager, ToolName

log = logging.getLogger("imgbridge-server")

PROTOCOL_VERSION = "1.0"


# ---------------------------------------------------------------------------
# Capability advertisement: one entry per exposed tool
# ---------------------------------------------------------------------------

_TOOL_SCHEMAS: list[dict[str, Any]] = [
    {
        "name": ToolName.SEARCH.value,
        "description": "Search for images on Google Images",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query"},
                "page": {
                    "type": "integer",
                    "description": "Page number (starting from 1)",
                    "default": 1,
                },
                "safeSearch": {
                    "type": "boolean",
                    "description": "Enable or disable safe search",
                    "default": True,
                },
                "imageType": {
                    "type": "string",
                    "description": "Filter by image type",
                    "enum": list(IMAGE_TYPES),
                    "default": "all",
                },
                "maxResults": {
                    "type": "integer",
                    "description": "Maximum number of results to return",
                    "default": 20,
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": ToolName.DOWNLOAD.value,
        "description": "Download an image from a URL",
        "parameters": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "URL of the image to download"},
                "filename": {"type": "string", "description": "Name to save the file as (optional)"},
            },
            "required": ["url"],
        },
    },
    {
        "name": ToolName.CONFIG.value,
        "description": "Configure Google Images search settings",
        "parameters": {
            "type": "object",
            "properties": {
                "safeSearch": {"type": "boolean", "description": "Enable or disable safe search"},
                "imageType": {
                    "type": "string",
                    "description": "Filter by image type",
                    "enum": list(IMAGE_TYPES),
                },
                "maxResults": {"type": "integer", "description": "Maximum number of results per page"},
            },
        },
    },
]


def capabilities_message() -> dict[str, Any]:
    return {
        "type": "capabilities",
        "version": PROTOCOL_VERSION,
        "capabilities": {"tools": _TOOL_SCHEMAS},
    }


def _response(request_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"type": "response", "id": request_id, "result": result}


def _error(message: str, code: str = INTERNAL_ERROR) -> dict[str, Any]:
    return {"type": "error", "error": {"code": code, "message": message}}


# ---------------------------------------------------------------------------
# Per-connection session
# ---------------------------------------------------------------------------

class Session:
    """State for one connected client: its search settings and in-flight calls."""

    def __init__(self, websocket: WebSocket, manager: ToolManager, settings: SearchSettings) -> None:
        self.websocket = websocket
        self.manager = manager
        self.settings = settings
        self._send_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    async def send(self, payload: dict[str, Any]) -> None:
        async with self._send_lock:
            await self.websocket.send_text(json.dumps(payload))

    async def handle_message(self, raw: str) -> None:
        try:
            request = json.loads(raw)
        except json.JSONDecodeError as exc:
            log.warning("Malformed message: %s", exc)
            await self.send(_error(f"Invalid JSON: {exc}"))
            return
        if not isinstance(request, dict):
            await self.send(_error("Message must be a JSON object"))
            return
        if request.get("type") != "invoke":
            log.debug("Ignoring message of type %r", request.get("type"))
            return
        task = asyncio.create_task(self._invoke(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _invoke(self, request: dict[str, Any]) -> None:
        request_id = request.get("id")
        tool = request.get("tool")
        params = request.get("params")
        if not isinstance(params, dict):
            params = {}
        try:
            result = await self.manager.dispatch(tool, params, self.settings)
        except Exception as exc:
            log.error("Unhandled error in tool %r (id=%r): %s", tool, request_id, exc, exc_info=True)
            payload = _error(str(exc) or type(exc).__name__)
        else:
            payload = _response(request_id, result)
        try:
            await self.send(payload)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            log.info("Dropped reply for id=%r, client went away: %s", request_id, exc)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def build_manager(cfg: dict[str, Any]) -> ToolManager:
    fetcher = ImageFetcher(user_agent=cfg["user_agent"], timeout=cfg["request_timeout"])
    extractor = RegexExtractionStrategy(strict=cfg["extraction_mode"] == "strict")
    return ToolManager(fetcher, downloads_dir=cfg["downloads_dir"], extractor=extractor)


def create_app(cfg: dict[str, Any] | None = None, manager: ToolManager | None = None) -> FastAPI:
    config = _validate(cfg or {})
    tool_manager = manager or build_manager(config)
    app = FastAPI(title="imgbridge")
    app.state.config = config
    app.state.manager = tool_manager

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    async def _serve(websocket: WebSocket) -> None:
        await websocket.accept()
        session = Session(websocket, tool_manager, SearchSettings.from_config(config))
        log.info("Client connected")
        await session.send(capabilities_message())
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                await session.handle_message(raw)
        except WebSocketDisconnect:
            pass
        finally:
            await session.close()
            log.info("Client disconnected")

    app.add_api_websocket_route("/", _serve)
    app.add_api_websocket_route("/ws", _serve)
    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def main(host: str | None = None, port: int | None = None, config_path: Path | None = None) -> None:
    import uvicorn

    cfg = apply_env(load_config(config_path or CONFIG_PATH))
    if host:
        cfg["host"] = host
    if port:
        cfg["port"] = port
    configure_logging(cfg["log_level"])
    log.info("imgbridge server running on %s:%d", cfg["host"], cfg["port"])
    uvicorn.run(create_app(cfg), host=cfg["host"], port=cfg["port"], log_level=cfg["log_level"].lower())


if __name__ == "__main__":
    main()
