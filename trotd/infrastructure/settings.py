"""Runtime configuration loaded from environment variables."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from trotd.domain.repository import LanguageFilter, ProviderConfig
from trotd.infrastructure.storage import default_cache_dir

logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = ("github", "gitlab", "gitea")
PROVIDER_ALIASES = {"gh": "github", "gl": "gitlab", "ge": "gitea"}


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}")
        return default


def normalize_provider_ids(names: List[str]) -> List[str]:
    """Expand short names (gh, gl, ge) and drop duplicates, keeping order."""
    ids: List[str] = []
    for name in names:
        provider_id = PROVIDER_ALIASES.get(name.strip().lower(), name.strip().lower())
        if provider_id and provider_id not in ids:
            ids.append(provider_id)
    return ids


@dataclass
class Settings:
    """Effective configuration for one run."""

    providers: List[str] = field(default_factory=lambda: list(KNOWN_PROVIDERS))
    max_per_provider: int = 3
    provider_max: Dict[str, int] = field(default_factory=dict)
    languages: List[str] = field(default_factory=list)
    min_stars: Optional[int] = None
    ascii_only: bool = False
    show_starred_status: bool = True
    cache_ttl_mins: int = 60
    timeout_secs: int = 6
    provider_timeouts: Dict[str, int] = field(default_factory=dict)
    github_token: Optional[str] = None
    gitlab_token: Optional[str] = None
    gitea_token: Optional[str] = None
    gitea_base_url: str = "https://gitea.com"
    exclude_topics: List[str] = field(default_factory=list)
    cache_dir: Path = field(default_factory=default_cache_dir)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env_file: Optional path to a .env file; defaults to searching upwards from cwd
        """
        load_dotenv(env_file)

        provider_max: Dict[str, int] = {}
        provider_timeouts: Dict[str, int] = {}
        for provider_id in KNOWN_PROVIDERS:
            prefix = f"TROTD_{provider_id.upper()}"
            max_entries = _env_int(f"{prefix}_MAX", None)
            if max_entries is not None:
                provider_max[provider_id] = max_entries
            timeout = _env_int(f"{prefix}_TIMEOUT_SECS", None)
            if timeout is not None:
                provider_timeouts[provider_id] = timeout

        providers = normalize_provider_ids(_split_list(os.getenv("TROTD_PROVIDERS")))

        return cls(
            providers=providers or list(KNOWN_PROVIDERS),
            max_per_provider=_env_int("TROTD_MAX_PER_PROVIDER", 3),
            provider_max=provider_max,
            languages=_split_list(os.getenv("TROTD_LANGUAGES")),
            min_stars=_env_int("TROTD_MIN_STARS", None),
            ascii_only=_env_bool("TROTD_ASCII_ONLY", False),
            show_starred_status=_env_bool("TROTD_SHOW_STARRED", True),
            cache_ttl_mins=_env_int("TROTD_CACHE_TTL_MINS", 60),
            timeout_secs=_env_int("TROTD_TIMEOUT_SECS", 6),
            provider_timeouts=provider_timeouts,
            github_token=os.getenv("TROTD_GITHUB_TOKEN") or os.getenv("GITHUB_TOKEN"),
            gitlab_token=os.getenv("TROTD_GITLAB_TOKEN"),
            gitea_token=os.getenv("TROTD_GITEA_TOKEN"),
            gitea_base_url=os.getenv("TROTD_GITEA_URL", "https://gitea.com"),
            exclude_topics=_split_list(os.getenv("TROTD_EXCLUDE_TOPICS")),
            cache_dir=default_cache_dir(),
        )

    @property
    def language_filter(self) -> LanguageFilter:
        return LanguageFilter.from_list(self.languages)

    def max_entries(self, provider_id: str) -> int:
        return self.provider_max.get(provider_id, self.max_per_provider)

    def provider_timeout(self, provider_id: str) -> int:
        return self.provider_timeouts.get(provider_id, self.timeout_secs)

    def token_for(self, provider_id: str) -> Optional[str]:
        return {
            "github": self.github_token,
            "gitlab": self.gitlab_token,
            "gitea": self.gitea_token,
        }.get(provider_id)

    def provider_config(self, provider_id: str) -> ProviderConfig:
        """Build the plain config struct handed to an adapter call."""
        return ProviderConfig(
            timeout_secs=self.provider_timeout(provider_id),
            token=self.token_for(provider_id),
            base_url=self.gitea_base_url if provider_id == "gitea" else None,
            exclude_topics=tuple(self.exclude_topics) if provider_id == "github" else (),
        )
