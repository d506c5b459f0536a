"""
AI Relay - Circuit Breaker
Stops calling a failing dependency for a cooldown period.
"""

import inspect
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import logger as log
from errors import CircuitOpenError
from prometheus_metrics import metrics_manager


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


def _count_everything(error: BaseException) -> bool:
    return True


class CircuitBreaker:
    """Per-dependency CLOSED/OPEN/HALF_OPEN state machine.

    The OPEN -> HALF_OPEN move is lazy: it happens on the first call after
    ``recovery_timeout`` has passed since the last failure, never on a timer.
    While HALF_OPEN exactly one trial call is let through; everything else is
    short-circuited until that trial resolves.
    """

    def __init__(self, name: str, failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 failure_predicate: Callable[[BaseException], bool] = _count_everything,
                 clock: Callable[[], float] = time.monotonic):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._counts_as_failure = failure_predicate
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_at: Optional[float] = None
        self._trial_in_flight = False

        # Cumulative, never reset
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.short_circuited = 0

        metrics_manager.update_breaker_state(self.name, self.state.value)

    async def call(self, operation: Callable[[], Awaitable[Any]],
                   fallback: Optional[Callable[[], Any]] = None) -> Any:
        """Run ``operation`` through the breaker.

        When the breaker short-circuits, ``fallback()`` is returned instead
        (it may be sync or async), or CircuitOpenError is raised if there is
        no fallback. Failures of a live call always propagate.
        """
        self.total_requests += 1

        if not self._allow_request():
            self.short_circuited += 1
            log.warn(f"Circuit breaker '{self.name}' is {self.state.value}, short-circuiting", "breaker")
            if fallback is None:
                raise CircuitOpenError(self.name)
            result = fallback()
            if inspect.isawaitable(result):
                result = await result
            return result

        is_trial = self.state is CircuitState.HALF_OPEN
        try:
            result = await operation()
        except Exception as error:
            self.failed_requests += 1
            self._on_failure(error, is_trial)
            raise
        finally:
            if is_trial:
                self._trial_in_flight = False

        self.successful_requests += 1
        self._on_success(is_trial)
        return result

    def _allow_request(self) -> bool:
        if self.state is CircuitState.OPEN:
            if self._clock() - self.last_failure_at < self.recovery_timeout:
                return False
            self._transition(CircuitState.HALF_OPEN)
            log.info(f"Circuit breaker '{self.name}' transitioning to HALF_OPEN", "breaker")

        if self.state is CircuitState.HALF_OPEN:
            if self._trial_in_flight:
                return False
            self._trial_in_flight = True

        return True

    def _on_success(self, is_trial: bool):
        if is_trial:
            if self.state is CircuitState.HALF_OPEN:
                self._transition(CircuitState.CLOSED)
                log.ok(f"Circuit breaker '{self.name}' recovered, state: CLOSED", "breaker")
                self.failure_count = 0
        elif self.state is CircuitState.CLOSED:
            self.failure_count = 0
        # A call admitted before the breaker tripped says nothing about recovery

    def _on_failure(self, error: BaseException, is_trial: bool):
        if not self._counts_as_failure(error):
            return
        if self.state is CircuitState.HALF_OPEN and not is_trial:
            # Only the trial call decides the HALF_OPEN outcome
            return

        self.failure_count += 1
        self.last_failure_at = self._clock()

        if is_trial:
            log.warn(f"Circuit breaker '{self.name}' trial call failed, reopening", "breaker")
            self._trip()
        elif self.state is CircuitState.CLOSED and self.failure_count >= self.failure_threshold:
            self._trip()

    def _trip(self):
        self._transition(CircuitState.OPEN)
        log.error(f"Circuit breaker '{self.name}' tripped, state: OPEN", "breaker")
        log.security(
            "CIRCUIT_BREAKER_OPEN",
            breaker=self.name,
            failures=self.failure_count,
            threshold=self.failure_threshold,
        )
        metrics_manager.record_circuit_breaker_trip(self.name)

    def _transition(self, state: CircuitState):
        self.state = state
        metrics_manager.update_breaker_state(self.name, state.value)

    def reset(self) -> None:
        """Force the breaker closed (cumulative stats are kept)."""
        self._transition(CircuitState.CLOSED)
        self.failure_count = 0
        self.last_failure_at = None
        self._trial_in_flight = False

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failures": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
            "last_failure_at": self.last_failure_at,
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "short_circuited": self.short_circuited,
        }
