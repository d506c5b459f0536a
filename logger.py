"""
AI Relay - Logging Utilities
Clean, organized logging with emoji indicators.
"""

import os
import time
from collections import deque
from datetime import datetime

# Log levels
QUIET = 0   # Only errors
NORMAL = 1  # Errors + important events
VERBOSE = 2 # Everything

_LEVEL_NAMES = {"quiet": QUIET, "normal": NORMAL, "verbose": VERBOSE}

# Set LOG_LEVEL=quiet|normal|verbose in the environment to override
LOG_LEVEL = _LEVEL_NAMES.get(os.getenv("LOG_LEVEL", "normal").lower(), NORMAL)

# Ring of recent security/ops events for the status command
_security_events = deque(maxlen=100)


class Colors:
    """ANSI color codes for terminal output."""
    OK = '\033[92m'      # Green
    WARN = '\033[93m'    # Yellow
    FAIL = '\033[91m'    # Red
    INFO = '\033[94m'    # Blue
    SEC = '\033[95m'     # Magenta
    DIM = '\033[90m'     # Gray
    BOLD = '\033[1m'
    END = '\033[0m'


def _timestamp():
    """Get current time as HH:MM:SS."""
    return datetime.now().strftime("%H:%M:%S")


def _log(icon: str, color: str, msg: str, component: str = None, level: int = NORMAL):
    """Internal logging function."""
    if level > LOG_LEVEL:
        return

    ts = f"{Colors.DIM}{_timestamp()}{Colors.END}"
    prefix = f"[{component}] " if component else ""
    print(f"{ts} {color}{icon}{Colors.END} {prefix}{msg}")


# Public logging functions
def ok(msg: str, component: str = None):
    """Log success message."""
    _log("✓", Colors.OK, msg, component, NORMAL)


def warn(msg: str, component: str = None):
    """Log warning message."""
    _log("⚠", Colors.WARN, msg, component, NORMAL)


def error(msg: str, component: str = None):
    """Log error message."""
    _log("✗", Colors.FAIL, msg, component, QUIET)


def info(msg: str, component: str = None):
    """Log info message."""
    _log("ℹ", Colors.INFO, msg, component, NORMAL)


def debug(msg: str, component: str = None):
    """Log debug message (only in verbose mode)."""
    _log("•", Colors.DIM, msg, component, VERBOSE)


def security(event: str, user_id=None, **details):
    """Log a security/ops event (always shown) and keep it for later inspection.

    Used for things external alerting cares about, e.g. a circuit breaker
    tripping open or repeated validation rejections.
    """
    record = {
        "event": event,
        "user_id": user_id,
        "details": details,
        "timestamp": time.time(),
    }
    _security_events.append(record)

    detail_str = " ".join(f"{k}={v}" for k, v in details.items())
    who = f" user={user_id}" if user_id is not None else ""
    _log("⛨", Colors.SEC, f"SECURITY {event}{who} {detail_str}".rstrip(), None, QUIET)


def recent_security_events(event: str = None) -> list:
    """Get recent security events, optionally filtered by event name."""
    if event is None:
        return list(_security_events)
    return [e for e in _security_events if e["event"] == event]


def clear_security_events():
    """Forget recorded security events."""
    _security_events.clear()


def startup(msg: str):
    """Log startup message (always shown)."""
    print(f"{Colors.BOLD}{msg}{Colors.END}")


def online(msg: str, component: str = None):
    """Log bot online status (always shown)."""
    ts = f"{Colors.DIM}{_timestamp()}{Colors.END}"
    prefix = f"[{component}] " if component else ""
    print(f"{ts} {Colors.OK}●{Colors.END} {prefix}{msg}")


def divider():
    """Print a divider line."""
    print(f"{Colors.DIM}{'─' * 50}{Colors.END}")
