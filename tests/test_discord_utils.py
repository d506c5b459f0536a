from __future__ import annotations

import pytest

from constants import USER_FRIENDLY_ERRORS
from discord_utils import (
    build_error_embed, build_performance_embed, build_rate_limit_embed,
    build_response_embed, split_message,
)
from errors import AuthError, ServerError


def test_split_short_message_is_untouched():
    assert split_message("hello") == ["hello"]


def test_split_prefers_paragraph_breaks():
    text = "a" * 8 + "\n\n" + "b" * 8
    assert split_message(text, limit=12) == ["a" * 8, "b" * 8]


def test_split_falls_back_to_spaces_then_hard_cut():
    assert split_message("one two three", limit=8) == ["one two", "three"]
    assert split_message("x" * 10, limit=4) == ["xxxx", "xxxx", "xx"]


def test_split_chunks_never_exceed_limit():
    text = " ".join(["word"] * 1000)
    chunks = split_message(text, limit=2000)
    assert all(len(chunk) <= 2000 for chunk in chunks)
    assert " ".join(chunks) == text


def test_split_rejects_bad_limit():
    with pytest.raises(ValueError):
        split_message("x", limit=0)


def test_response_embed_style_and_overflow():
    embed, overflow = build_response_embed("short answer", "code", elapsed_ms=1500)
    assert embed.title == "💻 Code Generation Result"
    assert embed.description == "short answer"
    assert embed.footer.text == "⚡ Generated in 1.5s"
    assert overflow == []

    long_text = "x" * 5000
    embed, overflow = build_response_embed(long_text)
    assert len(embed.description) == 4096
    assert "".join(overflow) == "x" * (5000 - 4096)


def test_error_embed_shows_friendly_text_only():
    embed = build_error_embed(ServerError("Traceback: secret internals", status=500))
    assert embed.description == USER_FRIENDLY_ERRORS["server"]
    assert "secret" not in embed.description

    embed = build_error_embed(AuthError())
    assert embed.description == USER_FRIENDLY_ERRORS["auth"]


def test_rate_limit_embed():
    embed = build_rate_limit_embed(10)
    assert embed.footer.text == "Rate limit: 10 requests per minute"


def _stats():
    return {
        "cache": {"size": 3, "max_size": 500, "evictions": 1},
        "rate_limiter": {"active_keys": 2, "denied": 4},
        "pool": {"active": 1, "max": 15, "queued": 0},
        "circuit_breakers": {
            "github_ai": {
                "state": "OPEN", "failures": 5, "failure_threshold": 5,
                "successful_requests": 10, "total_requests": 16,
            },
        },
        "performance": {
            "uptime": "5m 0s",
            "commands": {"ai": {"count": 4, "avg_ms": 812.0, "errors": 1}},
            "api": {"total_calls": 9, "cache_hits": 3, "cache_misses": 9, "cache_hit_rate": "25.00%"},
            "errors": 2,
            "memory": {
                "current_mb": 84.5, "peak_mb": 97.3, "average_mb": 80.0, "vms_mb": 410.0, "samples": 12,
            },
        },
    }


@pytest.mark.parametrize(
    "view, title",
    [
        ("general", "📈 General Stats"),
        ("cache", "🚀 Cache Statistics"),
        ("api", "🔄 API Performance"),
        ("breakers", "🛡️ Circuit Breakers"),
        ("memory", "🧠 Memory Usage"),
    ],
)
def test_performance_embed_views(view, title):
    embed = build_performance_embed(_stats(), view)
    assert embed.title == title
    assert embed.fields


def test_breaker_view_marks_open_breakers():
    embed = build_performance_embed(_stats(), "breakers")
    assert embed.fields[0].name == "🔴 github_ai"
    assert embed.fields[0].value.startswith("OPEN")


def test_memory_view_and_general_field():
    embed = build_performance_embed(_stats(), "memory")
    values = {field.name: field.value for field in embed.fields}
    assert values["📊 Current RSS"] == "84.5 MB"
    assert values["⛰️ Peak RSS"] == "97.3 MB"
    assert values["🔢 Samples"] == "12"

    general = build_performance_embed(_stats(), "general")
    assert "🧠 Memory" in [field.name for field in general.fields]


def test_memory_view_before_first_sample():
    stats = _stats()
    stats["performance"]["memory"] = {
        "current_mb": None, "peak_mb": None, "average_mb": None, "vms_mb": None, "samples": 0,
    }
    embed = build_performance_embed(stats, "memory")
    assert embed.description == "No memory samples yet"
    assert not embed.fields

    general = build_performance_embed(stats, "general")
    assert "🧠 Memory" not in [field.name for field in general.fields]
