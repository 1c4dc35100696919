from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger("imgbridge-config")

IMAGE_TYPES = ("all", "photo", "clipart", "lineart", "animated")
EXTRACTION_MODES = ("lenient", "strict")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

CONFIG_PATH = Path(
    os.environ.get("IMGBRIDGE_CONFIG", str(Path.home() / ".config" / "imgbridge" / "config.yml"))
)


@dataclass(frozen=True)
class AppConfig:
    host: str = "0.0.0.0"
    port: int = 8033
    # Search defaults handed to every new connection.
    max_results: int = 20
    safe_search: bool = True
    image_type: str = "all"
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 20.0      # seconds per outbound HTTP call
    downloads_dir: str = "downloads"   # relative paths resolve against the working directory
    extraction_mode: str = "lenient"   # "strict" raises on a malformed result record
    log_level: str = "INFO"
    config_version: int = 1


@dataclass
class SearchSettings:
    """Search defaults owned by one connection.

    ``configure`` mutates these; ``search`` reads them for every parameter the
    caller leaves out.
    """

    safe_search: bool = True
    image_type: str = "all"
    max_results: int = 20

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> "SearchSettings":
        return cls(
            safe_search=cfg["safe_search"],
            image_type=cfg["image_type"],
            max_results=cfg["max_results"],
        )

    def snapshot(self) -> dict[str, Any]:
        return {
            "safeSearch": self.safe_search,
            "imageType": self.image_type,
            "maxResults": self.max_results,
        }


def is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _validate(cfg: dict[str, Any]) -> dict[str, Any]:
    defaults = AppConfig().__dict__.copy()
    merged = {**defaults, **{k: v for k, v in cfg.items() if k in defaults}}
    if not isinstance(merged["host"], str) or not merged["host"].strip():
        merged["host"] = defaults["host"]
    raw_port = merged["port"]
    if isinstance(raw_port, str) and raw_port.isdigit():
        raw_port = int(raw_port)
    merged["port"] = raw_port if is_positive_int(raw_port) and raw_port < 65536 else defaults["port"]
    if not is_positive_int(merged["max_results"]):
        merged["max_results"] = defaults["max_results"]
    merged["safe_search"] = bool(merged["safe_search"])
    if merged["image_type"] not in IMAGE_TYPES:
        merged["image_type"] = defaults["image_type"]
    if not isinstance(merged["user_agent"], str) or not merged["user_agent"].strip():
        merged["user_agent"] = defaults["user_agent"]
    raw_timeout = merged["request_timeout"]
    merged["request_timeout"] = (
        float(raw_timeout)
        if isinstance(raw_timeout, (int, float)) and not isinstance(raw_timeout, bool) and raw_timeout > 0
        else defaults["request_timeout"]
    )
    if not isinstance(merged["downloads_dir"], str) or not merged["downloads_dir"].strip():
        merged["downloads_dir"] = defaults["downloads_dir"]
    if merged["extraction_mode"] not in EXTRACTION_MODES:
        merged["extraction_mode"] = defaults["extraction_mode"]
    level = str(merged["log_level"]).upper()
    merged["log_level"] = level if level in LOG_LEVELS else defaults["log_level"]
    merged["config_version"] = defaults["config_version"]
    return merged


def apply_env(cfg: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Overlay HOST / PORT from the environment and re-validate."""
    env = os.environ if environ is None else environ
    overlay = dict(cfg)
    if env.get("PORT"):
        overlay["port"] = env["PORT"]
    if env.get("HOST"):
        overlay["host"] = env["HOST"]
    return _validate(overlay)


def _read_raw(path: Path) -> dict[str, Any] | None:
    """Parsed mapping from ``path``, or None when there is nothing usable on disk."""
    if not path.exists():
        return None
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        log.warning("Config %s is not valid YAML, rewriting with defaults: %s", path, exc)
        return None
    return raw if isinstance(raw, dict) else None


def load_config(path: Path = CONFIG_PATH) -> dict[str, Any]:
    raw = _read_raw(path)
    cfg = _validate(raw or {})
    if raw != cfg:
        save_config(cfg, path)
    return cfg


def save_config(cfg: dict[str, Any], path: Path = CONFIG_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    body = yaml.safe_dump(_validate(cfg), sort_keys=True, default_flow_style=False)
    staging = path.with_name(path.name + ".tmp")
    staging.write_text(body, encoding="utf-8")
    staging.replace(path)
