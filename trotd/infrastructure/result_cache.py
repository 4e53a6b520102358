"""TTL cache of raw provider results on disk."""

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from trotd.domain.errors import StateError
from trotd.domain.repository import Repo
from trotd.infrastructure.storage import read_json, write_json

logger = logging.getLogger(__name__)


class ResultCache:
    """One JSON file per provider id, valid for ``ttl_mins`` minutes."""

    def __init__(self, cache_dir: Path, ttl_mins: int = 60, clock: Callable[[], float] = time.time):
        self.results_dir = Path(cache_dir) / "results"
        self.ttl_secs = ttl_mins * 60
        self._clock = clock

    def _path(self, key: str) -> Path:
        safe_key = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return self.results_dir / f"{safe_key}.json"

    def get(self, key: str) -> Optional[List[Repo]]:
        """Return cached repos for ``key``, or None if absent, unreadable or expired."""
        try:
            data = read_json(self._path(key))
        except StateError as e:
            logger.warning(f"Ignoring result cache for {key}: {e}")
            return None

        if not isinstance(data, dict):
            return None

        try:
            age = self._clock() - float(data["timestamp"])
            if age > self.ttl_secs:
                logger.debug(f"Result cache for {key} expired ({age:.0f}s old)")
                return None
            return [Repo.from_dict(item) for item in data["repos"]]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed result cache for {key}: {e}")
            return None

    def set(self, key: str, repos: List[Repo]):
        """
        Store repos for ``key``.

        Raises:
            CacheIoError: If the file cannot be written
        """
        write_json(
            self._path(key),
            {"timestamp": int(self._clock()), "repos": [repo.to_dict() for repo in repos]},
        )
