"""Root pytest configuration."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)

# Settings whose defaults the tests rely on; a developer's .env must not leak in
_WORKER_ENV_VARS = (
    "NOTIFICATION_WORKER_INTERVAL",
    "NOTIFY_BEFORE_MINUTES",
    "MEETING_URL_WINDOW_MINUTES",
    "RUN_NOTIFICATION_WORKER",
    "NOTIFICATION_WORKER_LEASE",
    "FCM_SERVER_KEY",
)


@pytest.fixture(scope="session")
def event_loop_policy():
    """Use default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture(autouse=True)
def default_worker_settings(monkeypatch):
    """Run every test with the built-in scheduling defaults."""
    for name in _WORKER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
