"""Shared error taxonomy for all providers.

Every provider converts its backend's native failure signal into one of
these classes at the adapter boundary, so code above the provider layer
only ever handles ``LLMError`` subclasses.
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime


class LLMError(Exception):
    """Base class for provider and pipeline errors."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.retry_after = retry_after


class ConfigurationError(LLMError):
    """Unsupported provider or unusable provider configuration."""


class ValidationError(LLMError):
    """Malformed request, rejected locally or by the backend."""


class AuthenticationError(LLMError):
    """Bad credentials, missing permissions or an unpaid account."""


class RateLimitError(LLMError):
    """Backend throttled the request. ``retry_after`` is in seconds when known."""


class NotFoundError(LLMError):
    """Unknown model or endpoint."""


class PayloadTooLargeError(LLMError):
    """Request body exceeds what the backend accepts."""


class ServerError(LLMError):
    """Backend-side failure (5xx, overloaded)."""


class SafetyBlockError(LLMError):
    """Backend refused the content on policy grounds."""


class NetworkError(LLMError):
    """Transport failure: DNS, connection reset, timeout."""


class ParseError(LLMError):
    """Response text or envelope could not be interpreted."""


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header (delta-seconds or HTTP-date) into seconds."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def error_for_status(
    status_code: int,
    provider: str,
    detail: str = "",
    retry_after: float | None = None,
) -> LLMError:
    """Map an HTTP status code to the shared taxonomy.

    Args:
        status_code: HTTP status returned by the backend
        provider: Provider identifier, used in messages
        detail: Backend error message, if any
        retry_after: Parsed Retry-After hint in seconds

    Returns:
        An ``LLMError`` subclass instance (not raised)
    """
    suffix = f": {detail}" if detail else ""

    if status_code in (400, 422):
        return ValidationError(
            f"{provider} rejected the request (HTTP {status_code}){suffix}",
            provider, status_code,
        )
    if status_code in (401, 403):
        return AuthenticationError(
            f"{provider} authentication failed (HTTP {status_code}). "
            f"Check your API key{suffix}",
            provider, status_code,
        )
    if status_code == 402:
        return AuthenticationError(
            f"{provider} payment required. Check your account billing{suffix}",
            provider, status_code,
        )
    if status_code == 404:
        return NotFoundError(
            f"{provider} model or endpoint not found (HTTP 404){suffix}",
            provider, status_code,
        )
    if status_code == 408:
        return NetworkError(
            f"{provider} request timed out (HTTP 408){suffix}",
            provider, status_code,
        )
    if status_code == 413:
        return PayloadTooLargeError(
            f"{provider} request too large. Reduce the input size{suffix}",
            provider, status_code,
        )
    if status_code == 429:
        hint = f", retry after {retry_after:g}s" if retry_after is not None else ""
        return RateLimitError(
            f"{provider} rate limit exceeded{hint}{suffix}",
            provider, status_code, retry_after,
        )
    if status_code >= 500:
        return ServerError(
            f"{provider} server error (HTTP {status_code}){suffix}",
            provider, status_code,
        )
    return LLMError(
        f"{provider} API error (HTTP {status_code}){suffix}",
        provider, status_code,
    )
