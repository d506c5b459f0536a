from __future__ import annotations

import config
import startup
from config import load_performance_config


def test_performance_config_reads_environment(monkeypatch):
    monkeypatch.setenv("CACHE_MAX_SIZE", "42")
    monkeypatch.setenv("BREAKER_RECOVERY_TIMEOUT", "12.5")
    monkeypatch.setenv("ACQUIRE_TIMEOUT", "3")

    perf = load_performance_config()
    assert perf["cache"]["max_size"] == 42
    assert perf["circuit_breaker"]["recovery_timeout"] == 12.5
    assert perf["connection_pool"]["acquire_timeout"] == 3.0


def test_bad_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("MAX_CONNECTIONS", "lots")
    monkeypatch.delenv("ACQUIRE_TIMEOUT", raising=False)

    perf = load_performance_config()
    assert perf["connection_pool"]["max_connections"] == 15
    assert perf["connection_pool"]["acquire_timeout"] is None


def test_missing_required_env(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "token")
    monkeypatch.setenv("CLIENT_ID", "123")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    assert config.missing_required_env() == ["GITHUB_TOKEN"]


def test_performance_check_flags_nonsense():
    perf = load_performance_config()
    perf["connection_pool"]["max_connections"] = 0
    perf["circuit_breaker"]["failure_threshold"] = -1

    passed, issues = startup.check_performance_config(perf)
    assert not passed
    assert any("connection_pool.max_connections" in issue for issue in issues)
    assert any("circuit_breaker.failure_threshold" in issue for issue in issues)


def test_validate_startup_reports_missing_tokens(monkeypatch, tmp_path):
    for name in config.REQUIRED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(startup, "BASE_DIR", tmp_path)

    passed, issues = startup.validate_startup(interactive=False, performance=load_performance_config())
    assert not passed
    assert "missing GITHUB_TOKEN" in issues


def test_validate_startup_passes_with_env_file(monkeypatch, tmp_path):
    for name in config.REQUIRED_ENV_VARS:
        monkeypatch.setenv(name, "set")
    (tmp_path / ".env").write_text("DISCORD_TOKEN=set\n")
    monkeypatch.setattr(startup, "BASE_DIR", tmp_path)

    passed, issues = startup.validate_startup(interactive=False, performance=load_performance_config())
    assert passed
    assert issues == []
