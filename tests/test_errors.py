from __future__ import annotations

import asyncio

import httpx
import openai
import pytest

from constants import USER_FRIENDLY_ERRORS
from errors import (
    AIServiceError, AuthError, CircuitOpenError, InvalidResponseError, NetworkError,
    RateLimitExceeded, RequestTimeoutError, ServerError, UnknownError, UpstreamRateLimited,
    ValidationError, classify_error, counts_as_breaker_failure, is_transient, user_message_for,
)

REQUEST = httpx.Request("POST", "https://models.example/chat/completions")


def status_error(cls, status: int, headers=None):
    response = httpx.Response(status, request=REQUEST, headers=headers or {})
    return cls(f"HTTP {status}", response=response, body=None)


@pytest.mark.parametrize(
    "error, expected",
    [
        (status_error(openai.AuthenticationError, 401), AuthError),
        (status_error(openai.PermissionDeniedError, 403), AuthError),
        (status_error(openai.RateLimitError, 429), UpstreamRateLimited),
        (status_error(openai.InternalServerError, 500), ServerError),
        (status_error(openai.InternalServerError, 503), ServerError),
        (status_error(openai.BadRequestError, 400), ValidationError),
        (status_error(openai.UnprocessableEntityError, 422), ValidationError),
        (status_error(openai.NotFoundError, 404), UnknownError),
        (openai.APITimeoutError(request=REQUEST), RequestTimeoutError),
        (openai.APIConnectionError(request=REQUEST), NetworkError),
        (asyncio.TimeoutError(), RequestTimeoutError),
        (ConnectionRefusedError("refused"), NetworkError),
        (ValueError("weird"), UnknownError),
    ],
)
def test_classify_error(error, expected):
    assert isinstance(classify_error(error), expected)


def test_classified_errors_pass_through_unchanged():
    error = ServerError("down", status=502)
    assert classify_error(error) is error


def test_status_code_is_kept():
    classified = classify_error(status_error(openai.InternalServerError, 502))
    assert classified.status == 502


def test_upstream_rate_limit_reads_retry_after():
    classified = classify_error(status_error(openai.RateLimitError, 429, {"retry-after": "7"}))
    assert classified.retry_after == 7.0

    unparseable = classify_error(status_error(openai.RateLimitError, 429, {"retry-after": "soon"}))
    assert unparseable.retry_after is None


def test_transient_errors():
    assert is_transient(ServerError())
    assert is_transient(RequestTimeoutError())
    assert is_transient(NetworkError())
    assert is_transient(UpstreamRateLimited())
    assert is_transient(InvalidResponseError())
    assert not is_transient(AuthError())
    assert not is_transient(ValidationError())
    assert not is_transient(RateLimitExceeded())
    assert not is_transient(CircuitOpenError("github_ai"))


def test_breaker_failures_exclude_caller_and_throttling_errors():
    assert counts_as_breaker_failure(ServerError())
    assert counts_as_breaker_failure(RequestTimeoutError())
    assert counts_as_breaker_failure(UnknownError())
    assert not counts_as_breaker_failure(AuthError())
    assert not counts_as_breaker_failure(UpstreamRateLimited())
    assert not counts_as_breaker_failure(ValidationError())


def test_user_messages_hide_internal_detail():
    error = ServerError("stack trace with secrets", status=500)
    assert error.user_message == USER_FRIENDLY_ERRORS["server"]
    assert "secrets" not in user_message_for(error)
    assert user_message_for(KeyError("x")) == USER_FRIENDLY_ERRORS["default"]


def test_every_category_has_a_message():
    for cls in AIServiceError.__subclasses__():
        assert cls.category in USER_FRIENDLY_ERRORS
