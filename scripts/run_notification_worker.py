#!/usr/bin/env python3
"""
Run the live class notification worker without the HTTP API.

Use this when the API is scaled to several processes and the worker should
live in exactly one dedicated process.

Usage:
    python scripts/run_notification_worker.py [--once]

    --once  Run a single tick and exit (useful from cron or for debugging)
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
load_dotenv(project_root / ".env")
load_dotenv(project_root / ".env.local", override=True)

from classroom.database import close_engine
from classroom.notifications import NotificationWorker, PushGateway
from classroom.store import DatabaseStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def run(once: bool) -> None:
    worker = NotificationWorker(DatabaseStore(), PushGateway.from_env())

    try:
        if once:
            summary = await worker.trigger_tick()
            logger.info(f"Tick finished: {summary.to_dict()}")
            return

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        worker.start()
        await stop_event.wait()
        logger.info("Shutdown signal received")
        worker.stop()
        await worker.wait_idle()
    finally:
        await close_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Live class notification worker")
    parser.add_argument("--once", action="store_true", help="Run one tick and exit")
    args = parser.parse_args()
    asyncio.run(run(args.once))
