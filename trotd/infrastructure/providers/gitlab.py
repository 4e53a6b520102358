"""GitLab REST API adapter."""

from typing import Any, Dict, List, Optional

from trotd.domain.repository import LanguageFilter, ProviderConfig, Repo, parse_timestamp
from trotd.infrastructure.http_client import HttpClient
from trotd.infrastructure.providers.base import TrendingProvider, validate_base_url


class GitLab(TrendingProvider):
    """Most-starred recently active projects on a GitLab instance."""

    provider_id = "gitlab"
    icon = "[GL]"
    DEFAULT_BASE_URL = "https://gitlab.com"

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
        headers: Optional[Dict[str, str]] = {"PRIVATE-TOKEN": cfg.token} if cfg.token else None
        since = self._window_start().isoformat()

        def fetch_page(page: int, per_page: int) -> List[Dict[str, Any]]:
            return self._get_json(
                f"{base_url}/api/v4/projects",
                cfg,
                params={
                    "order_by": "star_count",
                    "sort": "desc",
                    "last_activity_after": since,
                    "visibility": "public",
                    "per_page": per_page,
                    "page": page,
                },
                headers=headers,
            )

        items = self._collect_window(fetch_page, offset, limit)
        repos = self._parse_items(items, self._parse_repo)
        # Project listings carry no language field
        return [repo for repo in repos if lang_filter.matches(repo.language)]

    def _parse_repo(self, item: Dict[str, Any]) -> Repo:
        last_activity = item.get("last_activity_at")
        return Repo(
            provider=self.provider_id,
            name=item["path_with_namespace"],
            url=item["web_url"],
            description=item.get("description"),
            stars_total=item.get("star_count"),
            last_activity=parse_timestamp(last_activity) if last_activity else None,
            topics=tuple(item.get("topics") or item.get("tag_list") or ()),
        )
