"""Shared fixtures and fakes."""

import threading
import time
from typing import Dict, List, Optional

import pytest

from trotd.domain.errors import CacheIoError, ProviderFetchError
from trotd.domain.repository import LanguageFilter, ProviderConfig, Repo
from trotd.infrastructure.providers.registry import EnabledProvider


def make_repo(name: str, provider: str = "github", **kwargs) -> Repo:
    return Repo(
        provider=provider,
        name=name,
        url=f"https://example.com/{name}",
        language=kwargs.pop("language", "Rust"),
        description=kwargs.pop("description", "Test repository"),
        stars_total=kwargs.pop("stars_total", 100),
        **kwargs,
    )


class FakeProvider:
    """Blocking adapter returning canned repos after an optional delay."""

    def __init__(self, repos: Optional[List[Repo]] = None, delay: float = 0.0, error: Optional[Exception] = None):
        self.repos = repos or []
        self.delay = delay
        self.error = error
        self.calls = []
        self.finished = threading.Event()

    def top_today(self, cfg: ProviderConfig, offset: int, limit: int, lang_filter: LanguageFilter) -> List[Repo]:
        self.calls.append((offset, limit))
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.error:
                raise self.error
            return list(self.repos)
        finally:
            self.finished.set()


class MemoryCache:
    """In-memory stand-in for ResultCache."""

    def __init__(self, entries: Optional[Dict[str, List[Repo]]] = None, fail_writes: bool = False):
        self.entries = dict(entries or {})
        self.fail_writes = fail_writes
        self.writes = []

    def get(self, key: str) -> Optional[List[Repo]]:
        repos = self.entries.get(key)
        return list(repos) if repos is not None else None

    def set(self, key: str, repos: List[Repo]):
        self.writes.append(key)
        if self.fail_writes:
            raise CacheIoError("disk full")
        self.entries[key] = list(repos)


def enabled(provider_id: str, adapter, limit: int = 3) -> EnabledProvider:
    return EnabledProvider(provider_id=provider_id, adapter=adapter, cfg=ProviderConfig(), limit=limit)


@pytest.fixture
def failing_provider():
    return FakeProvider(error=ProviderFetchError("gitlab", "connection refused"))
