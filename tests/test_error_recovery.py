from __future__ import annotations

import asyncio

import pytest

from circuit_breaker import CircuitState
from error_recovery import ErrorRecovery
from errors import ServerError


def run_async(coro):
    return asyncio.run(coro)


async def _fail():
    raise ServerError("down")


def test_get_unknown_breaker_raises(clock):
    recovery = ErrorRecovery(clock=clock)
    with pytest.raises(KeyError, match="Circuit breaker 'nope' not found"):
        recovery.get_breaker("nope")


def test_execute_with_circuit_breaker_uses_named_breaker(clock):
    async def scenario() -> None:
        recovery = ErrorRecovery(clock=clock)
        breaker = recovery.create_circuit_breaker("svc", failure_threshold=1, recovery_timeout=10.0)

        with pytest.raises(ServerError):
            await recovery.execute_with_circuit_breaker("svc", _fail)
        assert breaker.state is CircuitState.OPEN

        result = await recovery.execute_with_circuit_breaker("svc", _fail, fallback=lambda: "cached")
        assert result == "cached"

    run_async(scenario())


def test_execute_with_fallback(clock):
    async def scenario() -> None:
        recovery = ErrorRecovery(clock=clock)
        seen = {}

        def strategy(error, context):
            seen["error"] = error
            seen["context"] = context
            return "fallback"

        recovery.register_fallback_strategy("op", strategy)
        result = await recovery.execute_with_fallback("op", _fail, {"user": 1})

        assert result == "fallback"
        assert isinstance(seen["error"], ServerError)
        assert seen["context"] == {"user": 1}

    run_async(scenario())


def test_execute_with_fallback_without_strategy_reraises(clock):
    async def scenario() -> None:
        recovery = ErrorRecovery(clock=clock)
        with pytest.raises(ServerError):
            await recovery.execute_with_fallback("op", _fail)

    run_async(scenario())


def test_async_strategy_is_awaited(clock):
    async def scenario() -> None:
        recovery = ErrorRecovery(clock=clock)

        async def strategy(error, context):
            return "async fallback"

        recovery.register_fallback_strategy("op", strategy)
        assert await recovery.execute_with_fallback("op", _fail) == "async fallback"

    run_async(scenario())


def test_fallback_for_builds_zero_argument_callable(clock):
    recovery = ErrorRecovery(clock=clock)
    assert recovery.fallback_for("op") is None

    recovery.register_fallback_strategy("op", lambda error, context: context["reason"])
    assert recovery.fallback_for("op")() == "circuit_open"


def test_health_check_reports_degraded_when_any_breaker_open(clock):
    async def scenario() -> None:
        recovery = ErrorRecovery(clock=clock)
        recovery.create_circuit_breaker("a", failure_threshold=1)
        recovery.create_circuit_breaker("b", failure_threshold=1)

        health = recovery.perform_health_check()
        assert health["overall"] == "healthy"
        assert health["services"] == {"circuit_breaker_a": "closed", "circuit_breaker_b": "closed"}

        with pytest.raises(ServerError):
            await recovery.execute_with_circuit_breaker("b", _fail)

        health = recovery.perform_health_check()
        assert health["overall"] == "degraded"
        assert health["services"]["circuit_breaker_b"] == "open"
        assert "timestamp" in health

    run_async(scenario())


def test_stats(clock):
    recovery = ErrorRecovery(clock=clock)
    recovery.create_circuit_breaker("a")
    recovery.register_fallback_strategy("z", lambda e, c: None)
    recovery.register_fallback_strategy("y", lambda e, c: None)

    stats = recovery.get_stats()
    assert stats["circuit_breakers"]["a"]["state"] == "CLOSED"
    assert stats["fallback_strategies"] == ["y", "z"]
