"""GitHub REST API adapter."""

import logging
from typing import Any, Dict, List, Optional, Set

from trotd.domain.errors import ProviderFetchError
from trotd.domain.repository import LanguageFilter, ProviderConfig, Repo, parse_timestamp
from trotd.infrastructure.http_client import HttpError
from trotd.infrastructure.providers.base import TrendingProvider

logger = logging.getLogger(__name__)


class GitHub(TrendingProvider):
    """Trending repositories from the GitHub search API."""

    provider_id = "github"
    icon = "[GH]"
    API_URL = "https://api.github.com"
    MAX_STARRED_PAGES = 50

    def _headers(self, token: Optional[str]) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def build_query(self, cfg: ProviderConfig, lang_filter: LanguageFilter) -> str:
        since = self._window_start().strftime("%Y-%m-%d")
        parts = [f"created:>={since}"]
        parts.extend(f"language:{lang}" for lang in lang_filter.languages)
        parts.extend(f"-topic:{topic}" for topic in cfg.exclude_topics)
        return " ".join(parts)

    def top_today(
        self,
        cfg: ProviderConfig,
        offset: int,
        limit: int,
        lang_filter: LanguageFilter,
    ) -> List[Repo]:
        query = self.build_query(cfg, lang_filter)
        headers = self._headers(cfg.token)
        logger.debug(f"GitHub search query: {query} (offset={offset}, limit={limit})")

        def fetch_page(page: int, per_page: int) -> List[Dict[str, Any]]:
            data = self._get_json(
                f"{self.API_URL}/search/repositories",
                cfg,
                params={"q": query, "sort": "stars", "order": "desc", "per_page": per_page, "page": page},
                headers=headers,
            )
            return data.get("items", [])

        items = self._collect_window(fetch_page, offset, limit)
        repos = self._parse_items(items, self._parse_repo)

        excluded = {topic.lower() for topic in cfg.exclude_topics}
        return [
            repo for repo in repos
            if lang_filter.matches(repo.language)
            and not excluded.intersection(t.lower() for t in repo.topics)
        ]

    def _parse_repo(self, item: Dict[str, Any]) -> Repo:
        pushed_at = item.get("pushed_at") or item.get("updated_at")
        return Repo(
            provider=self.provider_id,
            name=item["full_name"],
            url=item["html_url"],
            language=item.get("language"),
            description=item.get("description"),
            stars_total=item.get("stargazers_count"),
            last_activity=parse_timestamp(pushed_at) if pushed_at else None,
            topics=tuple(item.get("topics") or ()),
        )

    def get_user_stars(self, token: str) -> Set[str]:
        """
        Fetch the "owner/repo" names the authenticated user has starred.

        Raises:
            ProviderFetchError: If any page fails
        """
        cfg = ProviderConfig(timeout_secs=self.timeout_secs, token=token)
        starred: Set[str] = set()

        for page in range(1, self.MAX_STARRED_PAGES + 1):
            data = self._get_json(
                f"{self.API_URL}/user/starred",
                cfg,
                params={"per_page": self.PAGE_SIZE, "page": page},
                headers=self._headers(token),
            )
            if not isinstance(data, list):
                raise ProviderFetchError(self.provider_id, "unexpected starred response")
            starred.update(item["full_name"] for item in data if "full_name" in item)
            if len(data) < self.PAGE_SIZE:
                break

        return starred

    def star_repo(self, owner: str, repo: str, token: str):
        """Star ``owner/repo`` for the authenticated user."""
        try:
            self.http.request(
                "PUT",
                f"{self.API_URL}/user/starred/{owner}/{repo}",
                timeout=self.timeout_secs,
                headers={**self._headers(token), "Content-Length": "0"},
            )
        except HttpError as e:
            raise ProviderFetchError(self.provider_id, f"failed to star {owner}/{repo}: {e}") from e
