"""Short-lived cache of the user's starred repository names."""

import logging
import time
from pathlib import Path
from typing import Callable, Iterable, Optional, Set

from trotd.domain.errors import StateError
from trotd.infrastructure.storage import read_json, remove_file, write_json

logger = logging.getLogger(__name__)


class StarredCache:
    """Owns ``starred.json``; the whole set expires together after ``ttl_secs``."""

    FILE_NAME = "starred.json"
    DEFAULT_TTL_SECS = 3600

    def __init__(self, cache_dir: Path, ttl_secs: int = DEFAULT_TTL_SECS, clock: Callable[[], float] = time.time):
        self.cache_file = Path(cache_dir) / self.FILE_NAME
        self.ttl_secs = ttl_secs
        self._clock = clock

    def get_starred(self) -> Optional[Set[str]]:
        """Return the cached set, or None if absent, unreadable or expired."""
        try:
            data = read_json(self.cache_file)
        except StateError as e:
            logger.warning(f"Ignoring starred cache: {e}")
            return None

        if not isinstance(data, dict):
            return None

        try:
            timestamp = int(data["timestamp"])
            starred = set(data["starred_repos"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed starred cache: {e}")
            return None

        age = max(0, int(self._clock()) - timestamp)
        if age > self.ttl_secs:
            return None
        return starred

    def save_starred(self, starred_repos: Iterable[str]):
        """
        Overwrite the cache with a fresh timestamp.

        Raises:
            CacheIoError: If the file cannot be written
        """
        write_json(
            self.cache_file,
            {"timestamp": int(self._clock()), "starred_repos": sorted(set(starred_repos))},
        )

    def is_starred(self, repo_name: str) -> bool:
        starred = self.get_starred()
        return bool(starred) and repo_name in starred

    def clear(self):
        remove_file(self.cache_file)
