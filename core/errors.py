"""
Domain errors shared by the search pipeline, access checks and the web layer.
"""
from typing import Optional


class TalentScoutError(Exception):
    """Base exception for domain errors."""
    pass


class NotAuthenticatedError(TalentScoutError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class NotAuthorizedError(TalentScoutError):
    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class ReadOnlyAccessError(NotAuthorizedError):
    """Raised when a viewer or a share-link preview attempts a write."""

    def __init__(self, message: str = "Read-only"):
        super().__init__(message)


class SearchNotFoundError(TalentScoutError):
    def __init__(self, message: str = "Search not found"):
        super().__init__(message)


class SubscriptionRequiredError(TalentScoutError):
    def __init__(self, message: str = "An active subscription is required"):
        super().__init__(message)


class InsufficientCreditsError(TalentScoutError):
    def __init__(self, message: str = "Insufficient credits"):
        super().__init__(message)


class MissingParseResponseError(TalentScoutError):
    def __init__(self, message: str = "Missing cached parse response. Run parse step first."):
        super().__init__(message)


class InvalidTransitionError(TalentScoutError):
    """Raised when a search status change is not allowed by the lifecycle."""
    pass


class ScoringModelUnavailableError(TalentScoutError):
    def __init__(self, message: str = "Scoring calculation service is not configured"):
        super().__init__(message)


class QueryParseError(TalentScoutError):
    """The LLM parse output could not be turned into a valid ParsedQuery."""
    pass


class ProviderError(TalentScoutError):
    """
    A third-party provider call failed.

    Carries the provider name and the HTTP status (when there was a response)
    so callers can record a stage-tagged error.
    """

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class ProviderConfigurationError(ProviderError):
    """The provider cannot be called at all (missing key or endpoint)."""

    def __init__(self, provider: str, message: str):
        super().__init__(provider, message)


class PipelineCancelledError(TalentScoutError):
    def __init__(self, message: str = "Search cancelled"):
        super().__init__(message)
