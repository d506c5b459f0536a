"""
AI Relay - Retry With Backoff
Bounded exponential-backoff retries for operations that are safe to repeat.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

import logger as log
from errors import UpstreamRateLimited


def _always(error: BaseException, attempt: int) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings. ``attempt`` numbers are 1-indexed everywhere."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    retry_condition: Callable[[BaseException, int], bool] = _always

    @classmethod
    def from_config(cls, cfg: dict, retry_condition: Optional[Callable] = None) -> "RetryPolicy":
        """Build from the ``retry`` section of ``config.load_performance_config()``."""
        return cls(
            max_attempts=cfg.get("max_attempts", 3),
            base_delay=cfg.get("base_delay", 1.0),
            max_delay=cfg.get("max_delay", 10.0),
            backoff_factor=cfg.get("backoff_factor", 2.0),
            retry_condition=retry_condition or _always,
        )


def _should_retry(policy: RetryPolicy) -> Callable[[RetryCallState], bool]:
    def predicate(retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return False
        error = outcome.exception()
        return isinstance(error, Exception) and policy.retry_condition(error, retry_state.attempt_number)
    return predicate


def _backoff(policy: RetryPolicy) -> Callable[[RetryCallState], float]:
    # base * factor^(attempt-1), capped at max_delay
    exponential = wait_exponential(
        multiplier=policy.base_delay, exp_base=policy.backoff_factor, max=policy.max_delay
    )

    def wait(retry_state: RetryCallState) -> float:
        delay = exponential(retry_state)
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, UpstreamRateLimited) and error.retry_after:
            delay = max(delay, error.retry_after)
        return delay
    return wait


def _log_retry(policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        delay = retry_state.next_action.sleep
        log.warn(f"Attempt {retry_state.attempt_number}/{policy.max_attempts} failed ({error}), "
                 f"retrying in {delay:.2f}s", "retry")
    return before_sleep


async def retry_with_backoff(operation: Callable[[int], Awaitable[Any]],
                             policy: Optional[RetryPolicy] = None,
                             *,
                             sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                             **overrides) -> Any:
    """Run ``operation(attempt)`` until it succeeds or retries run out.

    Stops and re-raises when the last attempt fails or ``retry_condition``
    says the error isn't worth retrying. An UpstreamRateLimited error with a
    ``retry_after`` stretches that one wait to the server's cooldown.
    Keyword overrides (``max_attempts=...`` etc.) replace policy fields.
    """
    policy = policy or RetryPolicy()
    if overrides:
        policy = replace(policy, **overrides)
    if policy.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=_backoff(policy),
        retry=_should_retry(policy),
        sleep=sleep,
        before_sleep=_log_retry(policy),
        reraise=True,
    )

    attempt_number = 0
    try:
        async for attempt in retrying:
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                result = await operation(attempt_number)
    except Exception as error:
        log.debug(f"Giving up after attempt {attempt_number}/{policy.max_attempts}: {error}", "retry")
        raise

    if attempt_number > 1:
        log.info(f"Operation succeeded on attempt {attempt_number}", "retry")
    return result
