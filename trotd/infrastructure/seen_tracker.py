"""Daily-scoped tracker of repositories already shown, with a pagination offset."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from trotd.domain.errors import StateError
from trotd.domain.repository import Repo
from trotd.infrastructure.storage import read_json, remove_file, write_json

logger = logging.getLogger(__name__)


def utc_today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


@dataclass
class SeenEntry:
    date: str
    seen_repos: Set[str] = field(default_factory=set)
    fetch_offset: int = 0


class SeenTracker:
    """
    Owns ``seen.json`` in the cache directory.

    The persisted entry is only meaningful on the UTC day it was written;
    an entry dated any other day is treated exactly like no entry, which
    resets both the seen set and the offset at midnight UTC.

    Every mutating call is one load/modify/write cycle. Concurrent
    processes are not coordinated; the last writer wins.
    """

    FILE_NAME = "seen.json"

    def __init__(self, cache_dir: Path, today: Callable[[], str] = utc_today):
        self.seen_file = Path(cache_dir) / self.FILE_NAME
        self._today = today

    def _get_entry(self) -> Optional[SeenEntry]:
        try:
            data = read_json(self.seen_file)
        except StateError as e:
            logger.warning(f"Ignoring seen state: {e}")
            return None

        if not isinstance(data, dict):
            return None

        try:
            seen_repos = data.get("seen_repos") or []
            if not isinstance(seen_repos, list):
                raise TypeError(f"seen_repos must be a list, got {type(seen_repos).__name__}")
            entry = SeenEntry(
                date=str(data["date"]),
                seen_repos=set(seen_repos),
                fetch_offset=max(0, int(data.get("fetch_offset", 0))),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed seen state: {e}")
            return None

        if entry.date != self._today():
            return None
        return entry

    def _save(self, seen_repos: Set[str], offset: int):
        write_json(
            self.seen_file,
            {"date": self._today(), "seen_repos": sorted(seen_repos), "fetch_offset": offset},
        )

    def get_seen(self) -> Set[str]:
        """Names shown earlier today; empty on a fresh day."""
        entry = self._get_entry()
        return set(entry.seen_repos) if entry else set()

    def get_fetch_offset(self) -> int:
        """Pagination offset for today; 0 on a fresh day."""
        entry = self._get_entry()
        return entry.fetch_offset if entry else 0

    def mark_seen(self, repos: Iterable[Repo]):
        """
        Add repo names to today's seen set, keeping the offset.

        Raises:
            CacheIoError: If the state file cannot be written
        """
        entry = self._get_entry()
        seen = set(entry.seen_repos) if entry else set()
        seen.update(repo.name for repo in repos)
        self._save(seen, entry.fetch_offset if entry else 0)

    def increment_fetch_offset(self, increment: int):
        """
        Advance today's offset by ``increment``, keeping the seen set.

        Raises:
            CacheIoError: If the state file cannot be written
        """
        if increment < 0:
            raise ValueError("increment must be non-negative")
        entry = self._get_entry()
        seen = set(entry.seen_repos) if entry else set()
        offset = entry.fetch_offset if entry else 0
        self._save(seen, offset + increment)

    def filter_unseen(self, repos: Iterable[Repo]) -> List[Repo]:
        """Drop repos already shown today, preserving input order."""
        seen = self.get_seen()
        return [repo for repo in repos if repo.name not in seen]

    def clear(self):
        """Forget everything recorded today."""
        remove_file(self.seen_file)
