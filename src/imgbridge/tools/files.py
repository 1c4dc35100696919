from __future__ import annotations

import posixpath
import time
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_EXTENSION = ".jpg"
_MAX_EXTENSION_LEN = 4  # including the dot, so ".png" passes and ".jpeg" does not


def get_file_extension(url: str) -> str:
    try:
        path = urlparse(url).path
    except ValueError:
        return DEFAULT_EXTENSION
    ext = posixpath.splitext(path)[1]
    if not ext or len(ext) > _MAX_EXTENSION_LEN:
        return DEFAULT_EXTENSION
    return ext


def now_ms() -> int:
    return int(time.time() * 1000)


def default_filename(url: str, timestamp: int) -> str:
    return f"google-image-{timestamp}{get_file_extension(url)}"


def safe_filename(name: str) -> str:
    # Keep writes inside the downloads directory.
    return Path(name).name or name


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    value = float(size)
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    return f"{round(value, 2):g} {units[idx]}"
