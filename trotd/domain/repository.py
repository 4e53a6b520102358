"""Domain entities for trending repositories."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Repo:
    """Immutable trending repository entry.

    ``name`` is the "owner/repo" string and is the identity used for
    seen and starred lookups, independent of the provider.
    """

    provider: str
    name: str
    url: str
    language: Optional[str] = None
    description: Optional[str] = None
    stars_today: Optional[int] = None
    stars_total: Optional[int] = None
    last_activity: Optional[datetime] = None
    topics: Tuple[str, ...] = ()
    is_starred: bool = False

    def with_starred(self, starred: bool) -> "Repo":
        """Return a copy with the starred flag set."""
        return replace(self, is_starred=starred)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "name": self.name,
            "url": self.url,
            "language": self.language,
            "description": self.description,
            "stars_today": self.stars_today,
            "stars_total": self.stars_total,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "topics": list(self.topics),
            "is_starred": self.is_starred,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Repo":
        last_activity = data.get("last_activity")
        return cls(
            provider=data["provider"],
            name=data["name"],
            url=data["url"],
            language=data.get("language"),
            description=data.get("description"),
            stars_today=data.get("stars_today"),
            stars_total=data.get("stars_total"),
            last_activity=parse_timestamp(last_activity) if last_activity else None,
            topics=tuple(data.get("topics") or ()),
            is_starred=bool(data.get("is_starred", False)),
        )


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as returned by the hosting APIs."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class LanguageFilter:
    """Case-insensitive language allow-list. Empty means every language."""

    languages: Tuple[str, ...] = ()

    @classmethod
    def from_list(cls, languages: Iterable[str]) -> "LanguageFilter":
        return cls(tuple(lang.strip().lower() for lang in languages if lang and lang.strip()))

    @property
    def is_empty(self) -> bool:
        return not self.languages

    def matches(self, language: Optional[str]) -> bool:
        if self.is_empty:
            return True
        if not language:
            return False
        return language.lower() in self.languages


@dataclass(frozen=True)
class ProviderConfig:
    """Per-provider settings injected into an adapter call."""

    timeout_secs: int = 6
    token: Optional[str] = None
    base_url: Optional[str] = None
    exclude_topics: Tuple[str, ...] = ()


@dataclass
class ProviderRunResult:
    """Outcome of one provider slot in a single orchestrator run."""

    provider_id: str
    repos: List[Repo] = field(default_factory=list)
    error: Optional[Exception] = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None
