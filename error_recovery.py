"""
AI Relay - Error Recovery
Named circuit breakers, fallback strategies and a health summary over them.
"""

import inspect
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import logger as log
from circuit_breaker import CircuitBreaker, CircuitState


class ErrorRecovery:
    """Registry of breakers and fallbacks shared by everything that calls out."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.circuit_breakers: Dict[str, CircuitBreaker] = {}
        self.fallback_strategies: Dict[str, Callable] = {}

    # --- Circuit breakers ---

    def create_circuit_breaker(self, name: str, failure_threshold: int = 5,
                               recovery_timeout: float = 60.0,
                               failure_predicate: Optional[Callable[[BaseException], bool]] = None
                               ) -> CircuitBreaker:
        """Create (or replace) the breaker protecting dependency ``name``."""
        kwargs = {}
        if failure_predicate is not None:
            kwargs["failure_predicate"] = failure_predicate
        breaker = CircuitBreaker(
            name,
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            clock=self._clock,
            **kwargs,
        )
        self.circuit_breakers[name] = breaker
        return breaker

    def get_breaker(self, name: str) -> CircuitBreaker:
        try:
            return self.circuit_breakers[name]
        except KeyError:
            raise KeyError(f"Circuit breaker '{name}' not found") from None

    async def execute_with_circuit_breaker(self, name: str,
                                           operation: Callable[[], Awaitable[Any]],
                                           fallback: Optional[Callable[[], Any]] = None) -> Any:
        """Run ``operation`` through the named breaker."""
        return await self.get_breaker(name).call(operation, fallback)

    # --- Fallback strategies ---

    def register_fallback_strategy(self, name: str, strategy: Callable) -> None:
        """Register ``strategy(error, context)`` for operation ``name``."""
        self.fallback_strategies[name] = strategy

    def fallback_for(self, name: str) -> Optional[Callable[[], Any]]:
        """Zero-argument fallback for breaker short-circuits, if one is registered."""
        strategy = self.fallback_strategies.get(name)
        if strategy is None:
            return None
        return lambda: strategy(None, {"reason": "circuit_open"})

    async def execute_with_fallback(self, name: str,
                                    operation: Callable[[], Awaitable[Any]],
                                    context: Optional[dict] = None) -> Any:
        """Run ``operation``; on failure use the registered strategy or re-raise."""
        context = context or {}
        try:
            return await operation()
        except Exception as error:
            strategy = self.fallback_strategies.get(name)
            if strategy is None:
                raise
            log.warn(f"Operation '{name}' failed ({error}), using fallback strategy", "recovery")
            result = strategy(error, context)
            if inspect.isawaitable(result):
                result = await result
            return result

    # --- Health & stats ---

    def perform_health_check(self) -> dict:
        """Summarize breaker states; any breaker not CLOSED makes the system degraded."""
        services = {
            f"circuit_breaker_{name}": breaker.state.value.lower()
            for name, breaker in self.circuit_breakers.items()
        }
        unhealthy = [
            name for name, breaker in self.circuit_breakers.items()
            if breaker.state is not CircuitState.CLOSED
        ]
        overall = "degraded" if unhealthy else "healthy"
        if unhealthy:
            log.warn(f"System health degraded: {', '.join(unhealthy)}", "recovery")

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": services,
            "overall": overall,
        }

    def get_stats(self) -> dict:
        return {
            "circuit_breakers": {
                name: breaker.get_stats() for name, breaker in self.circuit_breakers.items()
            },
            "fallback_strategies": sorted(self.fallback_strategies),
        }
