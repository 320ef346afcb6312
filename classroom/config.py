"""
Centralized configuration for the live classroom backend.

All settings come from environment variables (loaded from .env / .env.local
by the entry points). Accessors are functions so tests can patch os.environ.
"""

import os


def _get_int(name: str, default: int) -> int:
    """Read a positive integer env var, falling back to default on bad input."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _get_bool(name: str) -> bool:
    return os.getenv(name, "").lower() in ("true", "1", "yes")


def is_dev_mode() -> bool:
    """Check if running in development mode (DEV_MODE env)."""
    return _get_bool("DEV_MODE")


def is_production() -> bool:
    """Check if running on Railway (production environment)."""
    return bool(os.environ.get("RAILWAY_ENVIRONMENT"))


def get_api_port() -> int:
    """Get API server port from env or default."""
    return _get_int("API_PORT", 8000)


def get_frontend_url() -> str:
    return os.environ.get("FRONTEND_URL", "http://localhost:5173").rstrip("/")


# =============================================================================
# Push notifications / worker
# =============================================================================


def get_fcm_server_key() -> str | None:
    """FCM legacy server key. None disables push delivery (not an error)."""
    return os.getenv("FCM_SERVER_KEY") or None


def get_worker_interval_minutes() -> int:
    """Minutes between notification worker ticks."""
    return _get_int("NOTIFICATION_WORKER_INTERVAL", 5)


def get_reminder_lead_minutes() -> int:
    """How long before a class starts the reminder becomes eligible."""
    return _get_int("NOTIFY_BEFORE_MINUTES", 30)


def get_join_window_minutes() -> int:
    """How long before the start the meeting URL is disclosed to students."""
    return _get_int("MEETING_URL_WINDOW_MINUTES", 15)


def should_run_notification_worker() -> bool:
    """
    Whether this process owns the notification worker.

    Exactly one process in a deployment should set RUN_NOTIFICATION_WORKER,
    unless NOTIFICATION_WORKER_LEASE is enabled.
    """
    return _get_bool("RUN_NOTIFICATION_WORKER")


def is_worker_lease_enabled() -> bool:
    """Claim a TTL lease in the database before every tick."""
    return _get_bool("NOTIFICATION_WORKER_LEASE")


# Required environment variables for production
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    ("JWT_SECRET", "Secret key for verifying session tokens", True),
    ("FCM_SERVER_KEY", "FCM server key for push notifications", False),
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
            if is_production() and required_in_dev:
                errors.append(f"  ✗ {name}: Not set ({description})")
            elif required_in_dev or not in_dev:
                warnings.append(f"  ⚠ {name}: Not set ({description})")

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
