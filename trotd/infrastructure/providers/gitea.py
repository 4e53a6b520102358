"""Gitea REST API adapter."""

from typing import Any, Dict, List, Optional

from trotd.domain.repository import LanguageFilter, ProviderConfig, Repo, parse_timestamp
from trotd.infrastructure.http_client import HttpClient
from trotd.infrastructure.providers.base import TrendingProvider, validate_base_url


class Gitea(TrendingProvider):
    """Most-starred repositories on a Gitea instance."""

    provider_id = "gitea"
    icon = "[GE]"
    DEFAULT_BASE_URL = "https://gitea.com"
    PAGE_SIZE = 50  # Gitea caps page size at 50

    def __init__(self, timeout_secs: int = 10, base_url: Optional[str] = None, http: Optional[HttpClient] = None):
        super().__init__(timeout_secs, http)
        self.base_url = validate_base_url(base_url or self.DEFAULT_BASE_URL)

    def top_today(
        self,
        cfg: ProviderConfig,
        offset: int,
        limit: int,
        lang_filter: LanguageFilter,
    ) -> List[Repo]:
        base_url = (cfg.base_url or self.base_url).rstrip("/")
        headers: Optional[Dict[str, str]] = {"Authorization": f"token {cfg.token}"} if cfg.token else None

        def fetch_page(page: int, per_page: int) -> List[Dict[str, Any]]:
            data = self._get_json(
                f"{base_url}/api/v1/repos/search",
                cfg,
                params={"sort": "stars", "order": "desc", "limit": per_page, "page": page},
                headers=headers,
            )
            return data.get("data", [])

        items = self._collect_window(fetch_page, offset, limit)
        repos = self._parse_items(items, self._parse_repo)
        return [repo for repo in repos if lang_filter.matches(repo.language)]

    def _parse_repo(self, item: Dict[str, Any]) -> Repo:
        updated_at = item.get("updated_at")
        return Repo(
            provider=self.provider_id,
            name=item["full_name"],
            url=item["html_url"],
            language=item.get("language") or None,
            description=item.get("description") or None,
            stars_total=item.get("stars_count"),
            last_activity=parse_timestamp(updated_at) if updated_at else None,
            topics=tuple(item.get("topics") or ()),
        )
