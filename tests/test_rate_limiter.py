from __future__ import annotations

from rate_limiter import RateLimiter


def test_allows_up_to_limit_then_denies(clock):
    limiter = RateLimiter(window_seconds=0.1, max_requests=3, clock=clock)

    assert [limiter.check_limit("k") for _ in range(3)] == [True, True, True]
    assert limiter.check_limit("k") is False

    clock.advance(0.15)
    assert limiter.check_limit("k") is True


def test_denied_requests_are_not_recorded(clock):
    limiter = RateLimiter(window_seconds=10.0, max_requests=1, clock=clock)
    assert limiter.check_limit("k")
    for _ in range(5):
        assert not limiter.check_limit("k")

    stats = limiter.get_stats()
    assert stats["total_requests"] == 1
    assert stats["denied"] == 5


def test_window_slides_per_request(clock):
    limiter = RateLimiter(window_seconds=10.0, max_requests=2, clock=clock)
    limiter.check_limit("k")
    clock.advance(6)
    limiter.check_limit("k")
    clock.advance(5)

    # First request fell out of the window, second has not
    assert limiter.check_limit("k") is True
    assert limiter.check_limit("k") is False


def test_keys_are_independent(clock):
    limiter = RateLimiter(max_requests=1, clock=clock)
    assert limiter.check_limit("ai_command:1")
    assert limiter.check_limit("ai_command:2")
    assert not limiter.check_limit("ai_command:1")


def test_per_call_limit_and_window_override_defaults(clock):
    limiter = RateLimiter(window_seconds=60.0, max_requests=1, clock=clock)
    assert limiter.check_limit("api", limit=3, window_seconds=1.0)
    assert limiter.check_limit("api", limit=3, window_seconds=1.0)
    assert limiter.check_limit("api", limit=3, window_seconds=1.0)
    assert not limiter.check_limit("api", limit=3, window_seconds=1.0)

    clock.advance(1.5)
    assert limiter.check_limit("api", limit=3, window_seconds=1.0)


def test_remaining_and_reset(clock):
    limiter = RateLimiter(max_requests=3, clock=clock)
    limiter.check_limit("k")
    assert limiter.remaining("k") == 2

    limiter.reset("k")
    assert limiter.remaining("k") == 3


def test_cleanup_drops_idle_keys_only(clock):
    limiter = RateLimiter(stale_age=100.0, clock=clock)
    limiter.check_limit("old")
    clock.advance(150)
    limiter.check_limit("fresh")

    assert limiter.cleanup() == 1
    stats = limiter.get_stats()
    assert stats["active_keys"] == 1
