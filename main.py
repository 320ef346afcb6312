"""
Unified backend entry point.

Architecture:
- One Python process, one asyncio event loop
- Two peer services running concurrently:
  1. FastAPI (HTTP API for admin panel and student apps)
  2. Notification worker (APScheduler tick: reminders, recording pushes,
     status reconciliation), only when RUN_NOTIFICATION_WORKER is set

We use FastAPI's lifespan to manage startup/shutdown. The lifespan pattern
gives us uvicorn's signal handling (SIGINT/SIGTERM stop the worker) for free.

Run with: python main.py [--no-worker] [--port PORT]
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")
load_dotenv()

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from classroom.config import (
    check_required_env_vars,
    get_api_port,
    get_frontend_url,
    should_run_notification_worker,
)
from classroom.database import close_engine, is_configured
from classroom.notifications import NotificationWorker, PushGateway
from classroom.store import DatabaseStore
from web_api.routes.admin_live_classes import router as admin_live_classes_router
from web_api.routes.live_classes import router as live_classes_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if os.environ.get("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment=os.environ.get("RAILWAY_ENVIRONMENT", "development"),
        traces_sample_rate=0.0,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Builds the store / push gateway / worker once and shares them through
    app.state. The worker is always constructed (so the admin status endpoint
    works) but only started in the process that owns it.
    """
    ok, warnings = check_required_env_vars()
    for warning in warnings:
        logger.warning(warning)
    if not ok:
        raise RuntimeError("Missing required environment variables")

    store = DatabaseStore()
    gateway = PushGateway.from_env()
    if not gateway.enabled:
        logger.warning("FCM_SERVER_KEY not set, push notifications are disabled")

    worker = NotificationWorker(store, gateway)
    app.state.store = store
    app.state.push_gateway = gateway
    app.state.notification_worker = worker

    if should_run_notification_worker() and not os.getenv("DISABLE_NOTIFICATION_WORKER"):
        worker.start()
    else:
        logger.info("Notification worker not started in this process")

    yield

    logger.info("Shutting down peer services...")
    worker.stop()
    await worker.wait_idle()
    await close_engine()


app = FastAPI(
    title="Live Classroom API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        get_frontend_url(),
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_live_classes_router)
app.include_router(live_classes_router)


@app.get("/health")
async def health():
    """Health check endpoint with detailed status."""
    worker = getattr(app.state, "notification_worker", None)
    return {
        "status": "healthy",
        "database_configured": is_configured(),
        "notification_worker": worker.status() if worker else None,
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Live Classroom API Server")
    parser.add_argument(
        "--no-worker",
        action="store_true",
        help="Don't start the notification worker in this process",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: API_PORT or 8000)",
    )
    args = parser.parse_args()

    # Set env var so it persists across uvicorn reloads
    if args.no_worker:
        os.environ["DISABLE_NOTIFICATION_WORKER"] = "true"

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
