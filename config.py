"""
AI Relay - Configuration
API keys, AI endpoint settings, and performance tuning.
"""

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    """Read a float from the environment, falling back on missing or bad values."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"⚠️ Invalid {name}={raw!r}, using default {default}")
        return default


def _env_int(name: str, default: int) -> int:
    """Read an int from the environment, falling back on missing or bad values."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"⚠️ Invalid {name}={raw!r}, using default {default}")
        return default


def _env_flag(name: str, default: bool = True) -> bool:
    """Feature flags are on unless explicitly set to 'false'."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() != "false"


# Discord
DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')
CLIENT_ID = os.getenv('CLIENT_ID')
GUILD_ID = os.getenv('GUILD_ID')  # Optional, for guild-scoped command sync

REQUIRED_ENV_VARS = ('DISCORD_TOKEN', 'CLIENT_ID', 'GITHUB_TOKEN')


# --- AI Endpoint Configuration ---

GITHUB_TOKEN = os.getenv('GITHUB_TOKEN')
AI_API_URL = os.getenv('GITHUB_AI_API_URL', 'https://models.inference.ai.azure.com')
AI_MODEL = os.getenv('GITHUB_AI_MODEL', 'gpt-4o-mini')
AI_MAX_TOKENS = _env_int('GITHUB_AI_MAX_TOKENS', 1000)
AI_TEMPERATURE = _env_float('GITHUB_AI_TEMPERATURE', 0.8)
API_TIMEOUT = _env_float('GITHUB_AI_TIMEOUT', 30.0)


# --- Feature Flags ---

ENABLE_CACHING = _env_flag('ENABLE_CACHING')
ENABLE_RATE_LIMIT = _env_flag('ENABLE_RATE_LIMIT')
ENABLE_METRICS = _env_flag('ENABLE_METRICS')
METRICS_PORT = _env_int('METRICS_PORT', 8000)


# --- Performance Configuration ---

def load_performance_config() -> dict:
    """Load cache, limiter, pool, breaker and retry settings from the environment.

    Returns:
        dict: one sub-dict per component, durations in seconds
    """
    return {
        "cache": {
            "max_size": _env_int('CACHE_MAX_SIZE', 500),
            "ttl": _env_float('CACHE_TTL', 300.0),
            "cleanup_interval": _env_float('CACHE_CLEANUP_INTERVAL', 60.0),
        },
        "rate_limit": {
            "window_seconds": _env_float('RATE_LIMIT_WINDOW', 60.0),
            "max_requests": _env_int('RATE_LIMIT_MAX', 10),
            "cleanup_interval": _env_float('RATE_LIMIT_CLEANUP', 300.0),
        },
        "connection_pool": {
            "max_connections": _env_int('MAX_CONNECTIONS', 15),
            "acquire_timeout": _env_float('ACQUIRE_TIMEOUT', None),  # None = wait forever
        },
        "circuit_breaker": {
            "failure_threshold": _env_int('BREAKER_FAILURE_THRESHOLD', 5),
            "recovery_timeout": _env_float('BREAKER_RECOVERY_TIMEOUT', 60.0),
        },
        "retry": {
            "max_attempts": _env_int('REQUEST_RETRIES', 3),
            "base_delay": _env_float('REQUEST_RETRY_DELAY', 1.0),
            "max_delay": _env_float('REQUEST_RETRY_MAX_DELAY', 10.0),
            "backoff_factor": _env_float('REQUEST_BACKOFF_FACTOR', 2.0),
        },
    }


PERFORMANCE = load_performance_config()


def missing_required_env() -> list:
    """Names of required environment variables that are not set."""
    return [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
