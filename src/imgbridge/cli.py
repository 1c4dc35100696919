from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from .config import CONFIG_PATH, IMAGE_TYPES, SearchSettings, load_config, save_config
from .server import build_manager
from .server import main as server_main

HELP_TEXT = """\
imgbridge: Google Images tools for desktop assistants

Tools exposed over the WebSocket server (default ws://localhost:8033/):
  google_images_search    query, page=1, safeSearch=true, imageType=all, maxResults=20
  google_images_download  url, filename (optional; default google-image-<ms><ext>)
  google_images_config    safeSearch, imageType, maxResults

Command line:
  imgbridge serve [--host H] [--port P]
  imgbridge search "sunset over mountains" [--page N] [--max-results N]
  imgbridge download https://example.com/cat.png [--filename cat.png]
  imgbridge config maxResults=30 safeSearch=true imageType=photo

Valid image types: all, photo, clipart, lineart, animated
Please respect copyright and usage rights for any images you download.
"""

_CONFIG_KEYS = {
    "maxresults": "maxResults",
    "max_results": "maxResults",
    "safesearch": "safeSearch",
    "safe_search": "safeSearch",
    "imagetype": "imageType",
    "image_type": "imageType",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imgbridge",
        description="Google Images search and download tools for desktop assistants.",
    )
    parser.add_argument("--config", type=Path, default=CONFIG_PATH, help="Path to config.yml")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the WebSocket tool server")
    serve_parser.add_argument("--host", help="Interface to bind (default from config / HOST)")
    serve_parser.add_argument("--port", type=int, help="Port to listen on (default from config / PORT)")
    serve_parser.set_defaults(func=serve_command)

    search_parser = subparsers.add_parser("search", help="Run one image search and print JSON")
    search_parser.add_argument("query", nargs="+", help="Search terms")
    search_parser.add_argument("--page", type=int, default=1)
    search_parser.add_argument("--max-results", type=int, dest="max_results")
    search_parser.add_argument("--image-type", choices=IMAGE_TYPES, dest="image_type")
    search_parser.add_argument("--no-safe-search", action="store_true", dest="no_safe_search")
    search_parser.set_defaults(func=search_command)

    download_parser = subparsers.add_parser("download", help="Download one image into the downloads directory")
    download_parser.add_argument("url")
    download_parser.add_argument("--filename")
    download_parser.set_defaults(func=download_command)

    config_parser = subparsers.add_parser("config", help="Show or change the default search settings")
    config_parser.add_argument("options", nargs="*", help="key=value pairs, e.g. maxResults=30")
    config_parser.set_defaults(func=config_command)

    help_parser = subparsers.add_parser("help", help="Show tool usage")
    help_parser.set_defaults(func=help_command)

    return parser


def parse_config_args(options: list[str]) -> dict[str, Any]:
    """Turn ``key=value`` strings into ``configure`` params.

    Values are coerced to the types ``configure`` accepts; anything it would
    reject is passed through unchanged and ignored there.
    """
    params: dict[str, Any] = {}
    for option in options:
        key, sep, value = option.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            continue
        name = _CONFIG_KEYS.get(key.lower(), key)
        if name == "safeSearch":
            params[name] = value.lower() == "true"
        elif name == "maxResults":
            params[name] = int(value) if value.isdigit() else value
        else:
            params[name] = value
    return params


def render_settings(settings: dict[str, Any]) -> str:
    return "\n".join(
        [
            "Current settings:",
            f"  Max Results: {settings['maxResults']} images per page",
            f"  Safe Search: {'Enabled' if settings['safeSearch'] else 'Disabled'}",
            f"  Image Type:  {settings['imageType']}",
        ]
    )


def _print_json(payload: dict[str, Any]) -> int:
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 1 if "error" in payload else 0


def serve_command(args: argparse.Namespace) -> int:
    server_main(host=args.host, port=args.port, config_path=args.config)
    return 0


def search_command(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    manager = build_manager(cfg)
    params: dict[str, Any] = {"query": " ".join(args.query), "page": args.page}
    if args.max_results is not None:
        params["maxResults"] = args.max_results
    if args.image_type:
        params["imageType"] = args.image_type
    if args.no_safe_search:
        params["safeSearch"] = False
    result = asyncio.run(manager.search(params, SearchSettings.from_config(cfg)))
    return _print_json(result)


def download_command(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    manager = build_manager(cfg)
    params: dict[str, Any] = {"url": args.url}
    if args.filename:
        params["filename"] = args.filename
    return _print_json(asyncio.run(manager.download(params)))


def config_command(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    settings = SearchSettings.from_config(cfg)
    if args.options:
        manager = build_manager(cfg)
        manager.configure(parse_config_args(args.options), settings)
        save_config(
            {
                **cfg,
                "safe_search": settings.safe_search,
                "image_type": settings.image_type,
                "max_results": settings.max_results,
            },
            args.config,
        )
    print(render_settings(settings.snapshot()))
    return 0


def help_command(args: argparse.Namespace) -> int:
    print(HELP_TEXT)
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(2)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
