"""
Base contract for trending-repository providers.

Every provider exposes one capability, ``top_today``. Implementations must:
- Respect ``limit`` as a soft cap on returned repositories
- Skip the first ``offset`` entries of their ranked list
- Be safe to abandon mid-call (no side effects besides the HTTP request)
- Raise ProviderFetchError for any transport or parse failure
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from trotd.domain.errors import ProviderFetchError
from trotd.domain.repository import LanguageFilter, ProviderConfig, Repo
from trotd.infrastructure.http_client import HttpClient, HttpError

logger = logging.getLogger(__name__)


class TrendingProvider(ABC):
    """Abstract base class for provider adapters."""

    provider_id: str = ""
    icon: str = "[??]"
    PAGE_SIZE = 100
    TRENDING_WINDOW_DAYS = 7

    def __init__(self, timeout_secs: int = 10, http: Optional[HttpClient] = None):
        self.timeout_secs = timeout_secs
        self.http = http or HttpClient()

    @abstractmethod
    def top_today(
        self,
        cfg: ProviderConfig,
        offset: int,
        limit: int,
        lang_filter: LanguageFilter,
    ) -> List[Repo]:
        """
        Fetch today's trending repositories.

        Args:
            cfg: Provider configuration (token, timeout, base URL)
            offset: Number of ranked entries to skip
            limit: Maximum number of repositories to return
            lang_filter: Languages to keep

        Returns:
            Up to ``limit`` repositories in ranking order
        """

    def _window_start(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(days=self.TRENDING_WINDOW_DAYS)

    def _collect_window(
        self,
        fetch_page: Callable[[int, int], List[Dict[str, Any]]],
        offset: int,
        limit: int,
    ) -> List[Dict[str, Any]]:
        """
        Translate ``[offset, offset + limit)`` into page requests.

        Args:
            fetch_page: Callable taking (page, per_page), 1-based page, returning raw items
            offset: First ranked index wanted
            limit: Number of entries wanted

        Returns:
            Raw items covering the requested window (may be shorter at list end)
        """
        if limit <= 0:
            return []

        first_page = offset // self.PAGE_SIZE + 1
        last_page = (offset + limit - 1) // self.PAGE_SIZE + 1
        items: List[Dict[str, Any]] = []

        for page in range(first_page, last_page + 1):
            page_items = fetch_page(page, self.PAGE_SIZE)
            items.extend(page_items)
            if len(page_items) < self.PAGE_SIZE:
                break

        start = offset - (first_page - 1) * self.PAGE_SIZE
        return items[start:start + limit]

    def _get_json(self, url: str, cfg: ProviderConfig, params: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None) -> Any:
        try:
            return self.http.get_json(url, timeout=cfg.timeout_secs, params=params, headers=headers)
        except (HttpError, ValueError) as e:
            raise ProviderFetchError(self.provider_id, str(e)) from e

    def _parse_items(self, items: List[Dict[str, Any]], parse: Callable[[Dict[str, Any]], Repo]) -> List[Repo]:
        try:
            return [parse(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderFetchError(self.provider_id, f"unexpected response format: {e}") from e


def validate_base_url(base_url: str) -> str:
    """Return ``base_url`` without trailing slash, rejecting non-HTTP URLs."""
    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid base URL: {base_url!r}")
    return base_url.rstrip("/")
