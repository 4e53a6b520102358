"""Local cache directory resolution and atomic JSON files."""

import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from trotd.domain.errors import CacheIoError, StateCorrupt

logger = logging.getLogger(__name__)

APP_NAME = "trotd"


def default_cache_dir() -> Path:
    """Resolve the per-user cache directory."""
    override = os.getenv("TROTD_CACHE_DIR")
    if override:
        return Path(override).expanduser()

    if sys.platform == "win32":
        local_app_data = os.getenv("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data) / APP_NAME / "cache"
        return Path.home() / "AppData" / "Local" / APP_NAME / "cache"

    xdg_cache_home = os.getenv("XDG_CACHE_HOME")
    if xdg_cache_home:
        return Path(xdg_cache_home) / APP_NAME

    return Path.home() / ".cache" / APP_NAME


def read_json(path: Path) -> Optional[Any]:
    """
    Read a JSON document.

    Returns:
        Parsed document, or None if the file does not exist

    Raises:
        CacheIoError: If the file exists but cannot be read
        StateCorrupt: If the file content is not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise CacheIoError(f"Failed to read {path}: {e}") from e

    try:
        return json.loads(content)
    except ValueError as e:
        raise StateCorrupt(f"Failed to parse {path}: {e}") from e


def write_json(path: Path, data: Any):
    """
    Atomically replace ``path`` with ``data`` serialized as JSON.

    The document is written to a sibling temp file first and moved into
    place, so readers never observe a partial write.

    Raises:
        CacheIoError: If the directory or file cannot be written
    """
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise CacheIoError(f"Failed to write {path}: {e}") from e


def remove_file(path: Path):
    """Delete ``path`` if present."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise CacheIoError(f"Failed to remove {path}: {e}") from e
