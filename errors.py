"""
AI Relay - Error Taxonomy
Typed failures for the AI request path, plus classification of raw SDK/network errors.
"""

import asyncio
from typing import Optional

import openai

from constants import USER_FRIENDLY_ERRORS


class AIServiceError(Exception):
    """Base class for every failure surfaced by the AI request path."""

    category = "default"

    def __init__(self, message: str = "", *, status: Optional[int] = None,
                 retry_after: Optional[float] = None):
        super().__init__(message or self.__class__.__name__)
        self.status = status
        self.retry_after = retry_after

    @property
    def user_message(self) -> str:
        """Text that is safe to show to the end user."""
        return USER_FRIENDLY_ERRORS.get(self.category, USER_FRIENDLY_ERRORS["default"])


class RateLimitExceeded(AIServiceError):
    """Caller exceeded the local request rate."""
    category = "rate_limit"


class RequestTimeoutError(AIServiceError):
    """No pool slot in time, or the completion call itself timed out."""
    category = "timeout"


class AuthError(AIServiceError):
    """HTTP 401/403 from the AI endpoint: bad token or missing model permission."""
    category = "auth"


class UpstreamRateLimited(AIServiceError):
    """HTTP 429 from the AI endpoint."""
    category = "upstream_rate_limit"


class ServerError(AIServiceError):
    """HTTP 5xx from the AI endpoint."""
    category = "server"


class NetworkError(AIServiceError):
    """Connection refused, DNS failure and friends."""
    category = "network"


class ValidationError(AIServiceError):
    """Malformed or oversized input, rejected before any network call."""
    category = "validation"


class InvalidResponseError(AIServiceError):
    """The endpoint answered 2xx but without usable completion text."""
    category = "invalid_response"


class CircuitOpenError(AIServiceError):
    """A circuit breaker short-circuited the call and no fallback was registered."""
    category = "circuit_open"

    def __init__(self, breaker_name: str):
        super().__init__(f"Circuit breaker '{breaker_name}' is open")
        self.breaker_name = breaker_name


class UnknownError(AIServiceError):
    """Anything that doesn't fit the categories above."""
    category = "default"


# Errors worth retrying with backoff
TRANSIENT_ERRORS = (
    RequestTimeoutError,
    NetworkError,
    ServerError,
    UpstreamRateLimited,
    InvalidResponseError,
)

# Errors that count against a dependency's circuit breaker
BREAKER_FAILURES = (
    RequestTimeoutError,
    NetworkError,
    ServerError,
    InvalidResponseError,
    UnknownError,
)


def _retry_after(error: openai.APIStatusError) -> Optional[float]:
    """Parse a Retry-After header (seconds form only)."""
    try:
        raw = error.response.headers.get("retry-after")
    except AttributeError:
        return None
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


def classify_error(error: BaseException) -> AIServiceError:
    """Convert any exception from the completion call into the taxonomy.

    Order matters: timeouts are OSError subclasses on current Pythons and
    APITimeoutError is an APIConnectionError, so they are matched first.
    """
    if isinstance(error, AIServiceError):
        return error

    if isinstance(error, (openai.APITimeoutError, asyncio.TimeoutError, TimeoutError)):
        return RequestTimeoutError(str(error) or "Request timed out")

    if isinstance(error, openai.APIConnectionError):
        return NetworkError(str(error))

    if isinstance(error, openai.APIStatusError):
        status = error.status_code
        if status in (401, 403):
            return AuthError(str(error), status=status)
        if status == 429:
            return UpstreamRateLimited(str(error), status=status, retry_after=_retry_after(error))
        if status >= 500:
            return ServerError(str(error), status=status)
        if status in (400, 413, 422):
            return ValidationError(str(error), status=status)
        return UnknownError(str(error), status=status)

    if isinstance(error, (ConnectionError, OSError)):
        return NetworkError(str(error))

    return UnknownError(str(error))


def is_transient(error: BaseException, attempt: int = 1) -> bool:
    """Default retry predicate: retry only failures that may clear up on their own."""
    return isinstance(classify_error(error), TRANSIENT_ERRORS)


def counts_as_breaker_failure(error: BaseException) -> bool:
    """Whether a failure should move the dependency's breaker towards OPEN."""
    return isinstance(classify_error(error), BREAKER_FAILURES)


def user_message_for(error: BaseException) -> str:
    """Friendly text for any exception, never leaking internal detail."""
    return classify_error(error).user_message
