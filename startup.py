"""
AI Relay - Startup Validation
Ensures configuration is valid before bot starts.
Provides helpful error messages and auto-setup guidance.
"""

import sys
import shutil
from pathlib import Path
from typing import List, Tuple, Optional

from config import missing_required_env, load_performance_config

# Colors for terminal
class Colors:
    OK = '\033[92m'
    WARN = '\033[93m'
    FAIL = '\033[91m'
    INFO = '\033[94m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    END = '\033[0m'

def ok(msg): print(f"{Colors.OK}✓{Colors.END} {msg}")
def warn(msg): print(f"{Colors.WARN}⚠{Colors.END} {msg}")
def fail(msg): print(f"{Colors.FAIL}✗{Colors.END} {msg}")
def info(msg): print(f"{Colors.INFO}ℹ{Colors.END} {msg}")


BASE_DIR = Path(__file__).parent


def check_env_file(base_dir: Optional[Path] = None, interactive: bool = True) -> Tuple[bool, List[str]]:
    """Check if .env file exists, offer to create from example."""
    base_dir = base_dir or BASE_DIR
    env_file = base_dir / ".env"
    env_example = base_dir / ".env.example"
    issues = []

    if env_file.exists():
        ok(".env file found")
        return True, issues

    # Variables may come straight from the process environment (containers, CI)
    if not missing_required_env():
        info(".env file missing, but required variables are set in the environment")
        return True, issues

    if env_example.exists() and interactive:
        fail(".env file missing!")
        print(f"\n{Colors.BOLD}Would you like to create .env from .env.example?{Colors.END}")
        print(f"{Colors.DIM}(You'll need to edit it with your tokens after){Colors.END}")

        try:
            response = input("\nCreate .env? [Y/n]: ").strip().lower()
            if response in ('', 'y', 'yes'):
                shutil.copy(env_example, env_file)
                ok("Created .env from .env.example")
                warn("Please edit .env and add your tokens, then restart!")
                issues.append("new .env created - needs editing")
            else:
                issues.append("missing .env")
        except (EOFError, KeyboardInterrupt):
            issues.append("missing .env")
    else:
        fail(".env file missing!")
        issues.append("missing .env")

    return len(issues) == 0, issues


def check_required_env() -> Tuple[bool, List[str]]:
    """Check DISCORD_TOKEN, CLIENT_ID and GITHUB_TOKEN are all set."""
    missing = missing_required_env()
    if not missing:
        ok("Required environment variables are set")
        return True, []

    for name in missing:
        fail(f"{name} not set!")
    return False, [f"missing {name}" for name in missing]


def check_performance_config(performance: Optional[dict] = None) -> Tuple[bool, List[str]]:
    """Sanity-check cache, limiter, pool, breaker and retry numbers."""
    perf = performance if performance is not None else load_performance_config()
    issues = []

    positive = [
        ("cache", "max_size"),
        ("cache", "ttl"),
        ("cache", "cleanup_interval"),
        ("rate_limit", "window_seconds"),
        ("rate_limit", "max_requests"),
        ("connection_pool", "max_connections"),
        ("circuit_breaker", "failure_threshold"),
        ("circuit_breaker", "recovery_timeout"),
        ("retry", "max_attempts"),
    ]
    for section, key in positive:
        value = perf[section][key]
        if value is None or value <= 0:
            issues.append(f"invalid {section}.{key}={value} (must be positive)")

    timeout = perf["connection_pool"]["acquire_timeout"]
    if timeout is not None and timeout <= 0:
        issues.append(f"invalid connection_pool.acquire_timeout={timeout} (must be positive)")

    retry = perf["retry"]
    if retry["base_delay"] < 0 or retry["max_delay"] < 0:
        issues.append("invalid retry delays (must not be negative)")
    if retry["backoff_factor"] < 1:
        warn(f"retry.backoff_factor={retry['backoff_factor']} shrinks delays between attempts")

    if issues:
        for issue in issues:
            fail(issue)
        return False, issues

    ok(f"Performance settings look sane "
       f"(cache {perf['cache']['max_size']}, pool {perf['connection_pool']['max_connections']}, "
       f"breaker {perf['circuit_breaker']['failure_threshold']}/{perf['circuit_breaker']['recovery_timeout']}s)")
    return True, []


def validate_startup(interactive: bool = True, performance: Optional[dict] = None) -> Tuple[bool, List[str]]:
    """
    Run all startup validation checks.

    Args:
        interactive: If True, prompt user to fix issues. If False, just report.
        performance: Settings to check instead of the environment's.

    Returns:
        (ok, issues) - ok is False when any critical issue was found.
    """
    print(f"\n{Colors.BOLD}{'='*50}")
    print("AI Relay - Startup Validation")
    print(f"{'='*50}{Colors.END}\n")

    all_issues = []

    print(f"{Colors.BOLD}[1/3] Configuration Files{Colors.END}")
    _, issues = check_env_file(interactive=interactive)
    all_issues.extend(issues)

    print(f"\n{Colors.BOLD}[2/3] Tokens{Colors.END}")
    _, issues = check_required_env()
    all_issues.extend(issues)

    print(f"\n{Colors.BOLD}[3/3] Performance Settings{Colors.END}")
    _, issues = check_performance_config(performance)
    all_issues.extend(issues)

    # Summary
    print(f"\n{Colors.BOLD}{'='*50}{Colors.END}")

    critical_issues = [i for i in all_issues if 'missing' in i.lower() or 'invalid' in i.lower()]

    if not all_issues:
        print(f"{Colors.OK}{Colors.BOLD}✓ All checks passed! Starting bot...{Colors.END}")
        return True, []
    elif critical_issues:
        print(f"{Colors.FAIL}{Colors.BOLD}✗ {len(critical_issues)} critical issue(s) found:{Colors.END}")
        for issue in critical_issues:
            print(f"  • {issue}")
        print(f"\n{Colors.WARN}Please fix these issues and try again.{Colors.END}")
        return False, all_issues
    else:
        print(f"{Colors.WARN}{Colors.BOLD}⚠ {len(all_issues)} warning(s):{Colors.END}")
        for issue in all_issues:
            print(f"  • {issue}")
        print(f"\n{Colors.INFO}Proceeding with warnings...{Colors.END}")
        return True, all_issues


if __name__ == "__main__":
    # Run standalone validation
    success, _ = validate_startup(interactive=True)
    sys.exit(0 if success else 1)
