"""
Exceptions raised by the scanner.

Provider failures are recoverable by default: a cycle treats them as
absent data and moves on. Configuration errors stop startup.
"""

from typing import Any, Optional


class ArbscoutError(Exception):
    """Base class; carries a short code and structured details for logs."""

    code = "ARBSCOUT_ERROR"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ConfigurationError(ArbscoutError):
    """Invalid or missing settings. Fatal at startup."""

    code = "CONFIG_ERROR"


class ProviderError(ArbscoutError):
    """A venue, the coin index or an HTTP endpoint failed to answer."""

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        recoverable: bool = True,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            details={**(details or {}), "provider": provider, "recoverable": recoverable},
        )
        self.provider = provider
        self.recoverable = recoverable


class MissingQuoteError(ProviderError):
    """A venue answered but had no usable price for the pair."""

    code = "MISSING_QUOTE"

    def __init__(self, message: str, *, provider: str, pair: Optional[str] = None):
        super().__init__(message, provider=provider, details={"pair": pair})
        self.pair = pair


class RateLimitError(ProviderError):
    """The remote side answered 429."""

    code = "RATE_LIMIT"

    def __init__(self, message: str, *, provider: str, retry_after: Optional[int] = None):
        super().__init__(message, provider=provider, details={"retry_after": retry_after})
        self.retry_after = retry_after


class QuotaExceededError(ProviderError):
    """Local call budget for a provider is spent."""

    code = "QUOTA_EXCEEDED"
