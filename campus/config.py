"""
Centralized configuration for the campus notification core.

All settings come from environment variables (loaded from .env/.env.local
by the entry points) and are read lazily so tests can monkeypatch them.
"""

import os


def is_dev_mode() -> bool:
    """Check if running in development mode (--dev flag or DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if running in the production environment."""
    return os.getenv("APP_ENV", "").lower() == "production"


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_frontend_url() -> str:
    """Base URL used to build notification deep links."""
    return os.environ.get("FRONTEND_URL", "http://localhost:3000").rstrip("/")


def get_scheduler_timezone() -> str:
    """Timezone the scheduler's cron triggers and calendar days use."""
    return os.getenv("SCHEDULER_TIMEZONE", "UTC")


def is_scheduler_enabled() -> bool:
    """The scheduler can be turned off for extra API replicas."""
    return os.getenv("DISABLE_SCHEDULER", "").lower() not in ("true", "1", "yes")


def get_webhook_timeout_seconds() -> float:
    """Per-call timeout for outbound webhook deliveries."""
    return float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "5"))


def get_webhook_max_redirects() -> int:
    """Maximum redirects followed by a single webhook delivery."""
    return int(os.getenv("WEBHOOK_MAX_REDIRECTS", "5"))


def get_webhook_max_concurrency() -> int:
    """Maximum webhook deliveries in flight for one notification batch."""
    return int(os.getenv("WEBHOOK_MAX_CONCURRENCY", "10"))


# Required environment variables for production
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    ("FRONTEND_URL", "Base URL for notification deep links", False),
    ("SENTRY_DSN", "Sentry DSN for error reporting", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        value = os.environ.get(name)

        if not value:
            if is_production():
                errors.append(f"  ✗ {name}: Not set ({description})")
            elif required_in_dev or not in_dev:
                warnings.append(f"  ⚠ {name}: Not set ({description})")

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
