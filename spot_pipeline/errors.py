"""
Error taxonomy for the enrichment pipeline.

Only FatalConfigError is allowed to end a run. Provider errors are contained
by the orchestrator per unit of work.
"""


class EnrichmentError(Exception):
    """Base class for pipeline errors."""


class FatalConfigError(EnrichmentError):
    """Required configuration is missing; nothing may be processed."""


class ProviderError(EnrichmentError):
    """Base class for failures reported by an external provider."""

    def __init__(self, message: str, provider: str = None):
        super().__init__(message)
        self.provider = provider


class RateLimited(ProviderError):
    """The provider signalled 'too many requests'. The unit is retried."""

    def __init__(self, message: str, provider: str = None, retry_after: float | None = None):
        super().__init__(message, provider)
        self.retry_after = retry_after


class TransientProviderError(ProviderError):
    """Network, timeout or 5xx-style failure. The unit is skipped for this run."""


class ParseError(ProviderError):
    """The response did not contain the expected structured payload."""


class StoreError(EnrichmentError):
    """The record store could not be read."""
