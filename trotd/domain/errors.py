"""Error taxonomy shared across layers."""

from typing import List


class TrotdError(Exception):
    """Base class for all errors raised by trotd."""
    pass


class ProviderError(TrotdError):
    """Failure attributed to a single provider."""

    def __init__(self, provider_id: str, message: str):
        super().__init__(f"{provider_id}: {message}")
        self.provider_id = provider_id


class ProviderUnavailable(ProviderError):
    """Raised when an adapter could not be constructed; the provider is never launched."""
    pass


class ProviderFetchError(ProviderError):
    """Raised on transport or parse failure during a live fetch."""
    pass


class ProviderTimeout(ProviderError):
    """Raised when a provider exceeds its hard time budget."""

    def __init__(self, provider_id: str, timeout_secs: float):
        super().__init__(provider_id, f"provider timed out after {timeout_secs:g}s")
        self.timeout_secs = timeout_secs


class AllProvidersFailed(TrotdError):
    """Raised when no provider produced a result."""

    def __init__(self, errors: List[ProviderError]):
        detail = "; ".join(str(e) for e in errors) or "no providers enabled or available"
        super().__init__(f"All providers failed: {detail}")
        self.errors = errors


class StateError(TrotdError):
    """Failure around the local JSON state files."""
    pass


class CacheIoError(StateError):
    """Filesystem failure reading or writing local state."""
    pass


class StateCorrupt(StateError):
    """A state file exists but could not be parsed."""
    pass
