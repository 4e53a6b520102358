"""End-to-end run: fetch, filter, overlay starred status, render, record."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from trotd.application.fetch_orchestrator import (
    PROVIDER_FETCH_TIMEOUT_SECS,
    PROVIDER_SLOW_WARN_SECS,
    FetchMode,
    FetchOrchestrator,
    FetchReport,
)
from trotd.domain.errors import ProviderError, ProviderUnavailable, StateError
from trotd.domain.repository import Repo
from trotd.infrastructure.providers.github import GitHub
from trotd.infrastructure.providers.registry import EnabledProvider, build_providers
from trotd.infrastructure.result_cache import ResultCache
from trotd.infrastructure.seen_tracker import SeenTracker
from trotd.infrastructure.settings import Settings
from trotd.infrastructure.starred_cache import StarredCache

logger = logging.getLogger(__name__)

NAME_ASCII_THRESHOLD = 0.8
DESCRIPTION_ASCII_THRESHOLD = 0.7
BACKGROUND_DRAIN_SECS = 5


def ascii_ratio(text: str) -> float:
    if not text:
        return 1.0
    return sum(1 for c in text if c.isascii()) / len(text)


def is_mostly_ascii(repo: Repo) -> bool:
    """Heuristic to drop repos written mainly in non-Latin scripts."""
    if ascii_ratio(repo.name) < NAME_ASCII_THRESHOLD:
        return False
    if repo.description and ascii_ratio(repo.description) < DESCRIPTION_ASCII_THRESHOLD:
        return False
    return True


def filter_min_stars(repos: List[Repo], min_stars: int) -> List[Repo]:
    return [repo for repo in repos if (repo.stars_total or 0) >= min_stars]


def apply_starred(repos: List[Repo], starred: set) -> List[Repo]:
    """Set ``is_starred`` on GitHub repos whose name is in ``starred``."""
    return [
        repo.with_starred(repo.name in starred) if repo.provider == GitHub.provider_id else repo
        for repo in repos
    ]


@dataclass
class PipelineResult:
    repos: List[Repo] = field(default_factory=list)
    report: Optional[FetchReport] = None
    offset: int = 0
    no_new_repos: bool = False


class TrendingPipeline:
    """Glue between settings, the orchestrator, the local state stores and output."""

    def __init__(
        self,
        settings: Settings,
        use_cache: bool = True,
        show_all: bool = False,
        seen_tracker: Optional[SeenTracker] = None,
        starred_cache: Optional[StarredCache] = None,
        result_cache: Optional[ResultCache] = None,
        github: Optional[GitHub] = None,
        slow_warn_secs: float = PROVIDER_SLOW_WARN_SECS,
        timeout_secs: float = PROVIDER_FETCH_TIMEOUT_SECS,
    ):
        self.settings = settings
        self.show_all = show_all
        self.seen_tracker = None if show_all else (seen_tracker or SeenTracker(settings.cache_dir))
        self.starred_cache = starred_cache or StarredCache(settings.cache_dir)
        if use_cache:
            self.result_cache = result_cache or ResultCache(settings.cache_dir, settings.cache_ttl_mins)
        else:
            self.result_cache = None
        self.github = github
        self.slow_warn_secs = slow_warn_secs
        self.timeout_secs = timeout_secs

    def run(self, output: Callable[[List[Repo]], None], provider_ids: Optional[List[str]] = None) -> PipelineResult:
        """Build providers from settings and run the whole pipeline to completion."""
        providers, unavailable = build_providers(self.settings, provider_ids or self.settings.providers)
        return asyncio.run(self.run_async(providers, output, unavailable))

    async def run_async(
        self,
        providers: Sequence[EnabledProvider],
        output: Callable[[List[Repo]], None],
        unavailable: Sequence[ProviderUnavailable] = (),
    ) -> PipelineResult:
        """
        Fetch, filter and render trending repositories.

        Raises:
            AllProvidersFailed: If no provider produced a result
        """
        tracker = self.seen_tracker
        offset = tracker.get_fetch_offset() if tracker else 0
        if offset > 0:
            logger.info(f"Starting from position {offset} in trending list")

        mode = FetchMode.RACE if tracker else FetchMode.PREFER_CACHE
        orchestrator = FetchOrchestrator(
            cache=self.result_cache,
            mode=mode,
            slow_warn_secs=self.slow_warn_secs,
            timeout_secs=self.timeout_secs,
        )
        logger.debug(f"Fetching repositories ({mode.value} mode, {len(providers)} providers)")

        report = await orchestrator.run(providers, offset, self.settings.language_filter, unavailable)
        for error in report.errors:
            logger.error(f"Error: {error}")
        for provider_id in report.empty_providers:
            logger.warning(f"No repositories found for {provider_id}")

        repos = report.repos
        no_new_repos = False

        if tracker:
            before = len(repos)
            repos = tracker.filter_unseen(repos)
            removed = before - len(repos)
            if removed:
                logger.info(f"Seen filter: skipped {removed} repos shown earlier today")
            no_new_repos = before > 0 and not repos

        if self.settings.ascii_only:
            before = len(repos)
            repos = [repo for repo in repos if is_mostly_ascii(repo)]
            logger.info(f"ASCII filter: removed {before - len(repos)} non-ASCII repos")

        if self.settings.min_stars is not None:
            before = len(repos)
            repos = filter_min_stars(repos, self.settings.min_stars)
            logger.info(f"Star filter: removed {before - len(repos)} repos below {self.settings.min_stars} stars")

        logger.debug(f"Total repositories: {len(repos)}")
        if no_new_repos:
            logger.warning("All fetched repositories were already shown today. Use --show-all to repeat them.")

        if self.settings.show_starred_status and self.settings.github_token:
            repos = apply_starred(repos, await self._load_starred())

        output(repos)

        if tracker and repos:
            self._record_shown(tracker, repos, offset)

        still_running = await orchestrator.drain_background(BACKGROUND_DRAIN_SECS)
        if still_running:
            logger.debug(f"Leaving {still_running} background fetch(es) to finish in worker threads")

        return PipelineResult(repos=repos, report=report, offset=offset, no_new_repos=no_new_repos)

    async def _load_starred(self) -> set:
        cached = await asyncio.to_thread(self.starred_cache.get_starred)
        if cached is not None:
            logger.debug(f"Using cached starred status ({len(cached)} repos)")
            return cached

        github = self.github or GitHub(timeout_secs=self.settings.provider_timeout(GitHub.provider_id))
        logger.debug("Fetching starred repositories...")
        try:
            starred = await asyncio.to_thread(github.get_user_stars, self.settings.github_token)
        except ProviderError as e:
            logger.warning(f"Failed to fetch starred repositories: {e}")
            return set()

        logger.debug(f"Found {len(starred)} starred repos")
        try:
            await asyncio.to_thread(self.starred_cache.save_starred, starred)
        except StateError as e:
            logger.warning(f"Failed to cache starred repositories: {e}")
        return starred

    def _record_shown(self, tracker: SeenTracker, repos: List[Repo], offset: int):
        try:
            tracker.mark_seen(repos)
        except StateError as e:
            logger.warning(f"Failed to record seen repos: {e}")

        try:
            tracker.increment_fetch_offset(len(repos))
        except StateError as e:
            logger.warning(f"Failed to update fetch offset: {e}")
        else:
            logger.info(f"Next run will start from position {offset + len(repos)}")
