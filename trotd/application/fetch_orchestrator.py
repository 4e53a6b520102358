"""Concurrent multi-provider fetch with cache fallback."""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence, Set

from trotd.domain.errors import (
    AllProvidersFailed,
    ProviderError,
    ProviderFetchError,
    ProviderTimeout,
    ProviderUnavailable,
)
from trotd.domain.repository import LanguageFilter, ProviderRunResult, Repo
from trotd.infrastructure.providers.registry import EnabledProvider

logger = logging.getLogger(__name__)

PROVIDER_SLOW_WARN_SECS = 10
PROVIDER_FETCH_TIMEOUT_SECS = 30


class RepoCache(Protocol):
    """What the orchestrator needs from a result cache."""

    def get(self, key: str) -> Optional[List[Repo]]: ...

    def set(self, key: str, repos: List[Repo]) -> None: ...


class FetchMode(enum.Enum):
    """Cache policy, chosen once per run."""

    # Use a cache hit immediately and skip the live call
    PREFER_CACHE = "prefer-cache"
    # Always go live; fall back to cache only when the live call is slow
    RACE = "race"


@dataclass
class FetchReport:
    """Merged outcome of one run, in provider completion order."""

    results: List[ProviderRunResult] = field(default_factory=list)

    @property
    def repos(self) -> List[Repo]:
        return [repo for result in self.results if result.ok for repo in result.repos]

    @property
    def errors(self) -> List[ProviderError]:
        return [result.error for result in self.results if not result.ok]

    @property
    def succeeded(self) -> List[str]:
        return [result.provider_id for result in self.results if result.ok]

    @property
    def empty_providers(self) -> List[str]:
        """Providers that answered successfully but with no repositories."""
        return [result.provider_id for result in self.results if result.ok and not result.repos]

    @property
    def cached_providers(self) -> List[str]:
        return [result.provider_id for result in self.results if result.ok and result.from_cache]


class FetchOrchestrator:
    """
    Runs every enabled provider concurrently and merges what comes back.

    Each provider gets its own slot:
    - In PREFER_CACHE mode a cache hit resolves the slot without a live call.
    - Otherwise the live fetch starts as a background task. If it has not
      finished after ``slow_warn_secs`` a notice is logged and the cache is
      consulted; a hit resolves the slot while the live fetch keeps running
      and refreshes the cache when it eventually completes.
    - ``timeout_secs`` bounds the slot. Exceeding it yields ProviderTimeout
      for that provider only.

    Adapters are blocking, so live fetches run in worker threads. An
    abandoned fetch is never interrupted; it finishes on its own and its
    result only lands in the cache.
    """

    def __init__(
        self,
        cache: Optional[RepoCache] = None,
        mode: FetchMode = FetchMode.RACE,
        slow_warn_secs: float = PROVIDER_SLOW_WARN_SECS,
        timeout_secs: float = PROVIDER_FETCH_TIMEOUT_SECS,
    ):
        if slow_warn_secs >= timeout_secs:
            raise ValueError("slow_warn_secs must be shorter than timeout_secs")
        self.cache = cache
        self.mode = mode
        self.slow_warn_secs = slow_warn_secs
        self.timeout_secs = timeout_secs
        self._background: Set[asyncio.Task] = set()

    async def run(
        self,
        providers: Sequence[EnabledProvider],
        offset: int,
        lang_filter: LanguageFilter,
        unavailable: Iterable[ProviderUnavailable] = (),
    ) -> FetchReport:
        """
        Fetch from all providers concurrently.

        Args:
            providers: Providers to launch
            offset: Pagination offset passed to every provider
            lang_filter: Language filter passed to every provider
            unavailable: Providers that failed to construct, reported as errors

        Returns:
            FetchReport with results in completion order

        Raises:
            AllProvidersFailed: If no provider produced a result
        """
        report = FetchReport(
            results=[ProviderRunResult(error.provider_id, error=error) for error in unavailable]
        )

        tasks = [
            asyncio.ensure_future(self._run_slot(provider, offset, lang_filter))
            for provider in providers
        ]
        for next_done in asyncio.as_completed(tasks):
            result = await next_done
            if result.ok:
                source = "cached" if result.from_cache else "live"
                logger.debug(f"{result.provider_id}: {len(result.repos)} repos ({source})")
            else:
                logger.debug(f"Provider error: {result.error}")
            report.results.append(result)

        if not report.succeeded:
            raise AllProvidersFailed(report.errors)
        return report

    async def drain_background(self, timeout: Optional[float] = None) -> int:
        """
        Give abandoned live fetches a chance to finish and refresh the cache.

        Fetches still running after ``timeout`` keep going in their worker
        threads and write the cache when they complete; interpreter exit
        waits for them.

        Returns:
            Number of background fetches still running afterwards
        """
        pending = set(self._background)
        if not pending:
            return 0
        logger.debug(f"Waiting for {len(pending)} background fetch(es)")
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        return len(still_pending)

    async def _run_slot(self, provider: EnabledProvider, offset: int, lang_filter: LanguageFilter) -> ProviderRunResult:
        provider_id = provider.provider_id

        if self.mode is FetchMode.PREFER_CACHE:
            cached = await self._cache_get(provider_id)
            if cached is not None:
                logger.debug(f"{provider_id} (cached)")
                return ProviderRunResult(provider_id, cached, from_cache=True)

        try:
            return await asyncio.wait_for(
                self._race(provider, offset, lang_filter), timeout=self.timeout_secs
            )
        except asyncio.TimeoutError:
            return ProviderRunResult(provider_id, error=ProviderTimeout(provider_id, self.timeout_secs))
        except ProviderError as e:
            return ProviderRunResult(provider_id, error=e)

    async def _race(self, provider: EnabledProvider, offset: int, lang_filter: LanguageFilter) -> ProviderRunResult:
        provider_id = provider.provider_id
        live = asyncio.ensure_future(self._live_fetch(provider, offset, lang_filter))
        self._background.add(live)
        live.add_done_callback(self._forget)

        done, _ = await asyncio.wait({live}, timeout=self.slow_warn_secs)
        if live in done:
            return ProviderRunResult(provider_id, live.result())

        logger.warning(f"Still fetching {provider_id}...")
        cached = await self._cache_get(provider_id)
        if cached is not None:
            logger.warning(f"Using cached {provider_id} results while network call finishes...")
            return ProviderRunResult(provider_id, cached, from_cache=True)

        # Shielded so a hard timeout abandons the wait, not the fetch
        repos = await asyncio.shield(live)
        return ProviderRunResult(provider_id, repos)

    async def _live_fetch(self, provider: EnabledProvider, offset: int, lang_filter: LanguageFilter) -> List[Repo]:
        # Fetch and cache write share one worker thread, so the write still
        # happens if the awaiting task is cancelled when the loop shuts down
        return await asyncio.to_thread(self._fetch_and_store, provider, offset, lang_filter)

    def _fetch_and_store(self, provider: EnabledProvider, offset: int, lang_filter: LanguageFilter) -> List[Repo]:
        provider_id = provider.provider_id
        try:
            repos = provider.adapter.top_today(provider.cfg, offset, provider.limit, lang_filter)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderFetchError(provider_id, str(e)) from e

        if self.cache is not None:
            try:
                self.cache.set(provider_id, repos)
            except Exception as e:
                logger.debug(f"Failed to cache {provider_id} results: {e}")
        return repos

    async def _cache_get(self, provider_id: str) -> Optional[List[Repo]]:
        if self.cache is None:
            return None
        try:
            return await asyncio.to_thread(self.cache.get, provider_id)
        except Exception as e:
            logger.debug(f"Cache read for {provider_id} failed: {e}")
            return None

    def _forget(self, task: asyncio.Task):
        self._background.discard(task)
        # Retrieve the outcome so abandoned failures are not reported as unhandled
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Live fetch finished with error: {task.exception()}")
