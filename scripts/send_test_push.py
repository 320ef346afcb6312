#!/usr/bin/env python3
"""
Send a test push notification to one device token.

Usage:
    python scripts/send_test_push.py <device_token>

Requires FCM_SERVER_KEY (from the environment, .env or .env.local).
"""

import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
load_dotenv(project_root / ".env")
load_dotenv(project_root / ".env.local", override=True)

from classroom.notifications.push import PushGateway

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


async def main(token: str) -> int:
    gateway = PushGateway.from_env()
    if not gateway.enabled:
        print("FCM_SERVER_KEY is not set, nothing to do")
        return 1

    ok = await gateway.send_test(token)
    print("Test notification sent" if ok else "Test notification failed")
    return 0 if ok else 1


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1])))
