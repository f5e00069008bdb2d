from __future__ import annotations


class PromptScoreError(Exception):
    """Base error for the promptscore library."""


class InvalidRecordError(PromptScoreError):
    """Raised when seed or snapshot data cannot be validated as parameter records."""


class ProviderError(PromptScoreError):
    """Raised when the music metadata provider fails (network, auth, rate limit)."""


class ProviderAuthError(ProviderError):
    """Raised when provider credentials are missing or rejected."""


class ProviderRateLimitError(ProviderError):
    """Raised when the provider throttles requests."""
