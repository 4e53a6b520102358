"""Provider lookup and construction."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple, Type

from trotd.domain.errors import ProviderUnavailable
from trotd.domain.repository import ProviderConfig
from trotd.infrastructure.providers.base import TrendingProvider
from trotd.infrastructure.providers.gitea import Gitea
from trotd.infrastructure.providers.github import GitHub
from trotd.infrastructure.providers.gitlab import GitLab
from trotd.infrastructure.settings import Settings

logger = logging.getLogger(__name__)

PROVIDER_REGISTRY: Dict[str, Type[TrendingProvider]] = {
    "github": GitHub,
    "gitlab": GitLab,
    "gitea": Gitea,
}

PROVIDER_ICONS = {provider_id: cls.icon for provider_id, cls in PROVIDER_REGISTRY.items()}


@dataclass
class EnabledProvider:
    """An adapter ready to run, with its injected config and fetch budget."""

    provider_id: str
    adapter: TrendingProvider
    cfg: ProviderConfig
    limit: int


def build_providers(settings: Settings, provider_ids: List[str]) -> Tuple[List[EnabledProvider], List[ProviderUnavailable]]:
    """
    Instantiate the requested providers.

    Args:
        settings: Effective settings
        provider_ids: Normalized provider ids, in the order requested

    Returns:
        Tuple of (ready providers, errors for providers that could not be built)
    """
    enabled: List[EnabledProvider] = []
    unavailable: List[ProviderUnavailable] = []

    for provider_id in provider_ids:
        provider_class = PROVIDER_REGISTRY.get(provider_id)
        if not provider_class:
            logger.warning(f"Unknown provider: {provider_id}")
            unavailable.append(ProviderUnavailable(provider_id, "unknown provider"))
            continue

        cfg = settings.provider_config(provider_id)
        try:
            if cfg.base_url:
                adapter = provider_class(timeout_secs=cfg.timeout_secs, base_url=cfg.base_url)
            else:
                adapter = provider_class(timeout_secs=cfg.timeout_secs)
        except Exception as e:
            logger.error(f"Failed to initialize {provider_id} provider: {e}")
            unavailable.append(ProviderUnavailable(provider_id, str(e)))
            continue

        logger.debug(f"{provider_id} provider initialized (timeout: {cfg.timeout_secs}s)")
        enabled.append(
            EnabledProvider(
                provider_id=provider_id,
                adapter=adapter,
                cfg=cfg,
                limit=settings.max_entries(provider_id),
            )
        )

    return enabled, unavailable
