"""
FCM push delivery over the legacy HTTP API.

Talks to FCM directly with httpx, no Firebase SDK. Tokens are sent in batches
of at most 1000 (the gateway's per-request limit), one request at a time.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from classroom.config import get_fcm_server_key

logger = logging.getLogger(__name__)


FCM_ENDPOINT = "https://fcm.googleapis.com/fcm/send"
MAX_BATCH_SIZE = 1000
TIME_TO_LIVE_SECONDS = 3600  # Don't deliver stale reminders hours later
REQUEST_TIMEOUT_SECONDS = 10.0

# Per-token errors meaning the token will never work again
PERMANENT_TOKEN_ERRORS = frozenset({"NotRegistered", "InvalidRegistration"})


@dataclass
class PushMessage:
    """The visible part of a push notification."""

    title: str
    body: str
    click_action: str | None = None

    def to_payload(self) -> dict[str, str]:
        payload = {"title": self.title, "body": self.body}
        if self.click_action:
            payload["click_action"] = self.click_action
        return payload


@dataclass
class DispatchResult:
    """Outcome of sending one message to a list of tokens."""

    success_count: int = 0
    failure_count: int = 0
    # Every token whose delivery failed, for cleanup
    failed_tokens: list[str] = field(default_factory=list)
    # Subset of failed_tokens the gateway reported as permanently invalid
    invalid_tokens: list[str] = field(default_factory=list)

    def _fail_batch(self, batch: list[str]) -> None:
        self.failure_count += len(batch)
        self.failed_tokens.extend(batch)


def sanitize_data(data: dict[str, Any]) -> dict[str, str]:
    """FCM data values must be strings; None values are dropped."""
    return {key: str(value) for key, value in data.items() if value is not None}


def _mask(token: str) -> str:
    return token[:20] + "..."


class PushGateway:
    """
    Sends push notifications to device tokens.

    With no server key configured every send reports all tokens as failed
    without touching the network, so the rest of the system keeps running
    without push.
    """

    def __init__(
        self,
        server_key: str | None,
        endpoint: str = FCM_ENDPOINT,
        batch_size: int = MAX_BATCH_SIZE,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.server_key = server_key
        self.endpoint = endpoint
        self.batch_size = batch_size
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_env(cls) -> "PushGateway":
        return cls(server_key=get_fcm_server_key())

    @property
    def enabled(self) -> bool:
        return bool(self.server_key)

    async def send(
        self,
        tokens: list[str],
        notification: PushMessage,
        data: dict[str, Any],
    ) -> DispatchResult:
        """
        Send one notification to many tokens.

        A batch that fails as a whole (non-2xx or transport error) counts every
        token in it as failed; the remaining batches are still attempted.
        """
        result = DispatchResult()

        if not self.enabled:
            logger.warning("FCM_SERVER_KEY not configured, skipping push notification")
            result._fail_batch(list(tokens))
            return result

        if not tokens:
            logger.info("No device tokens to send to")
            return result

        payload_data = sanitize_data(data)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"key={self.server_key}",
        }

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            for start in range(0, len(tokens), self.batch_size):
                batch = tokens[start : start + self.batch_size]
                message = {
                    "registration_ids": batch,
                    "notification": notification.to_payload(),
                    "data": payload_data,
                    "priority": "high",
                    "time_to_live": TIME_TO_LIVE_SECONDS,
                }
                await self._send_batch(client, headers, message, batch, result)

        return result

    async def _send_batch(
        self,
        client: httpx.AsyncClient,
        headers: dict[str, str],
        message: dict,
        batch: list[str],
        result: DispatchResult,
    ) -> None:
        try:
            response = await client.post(self.endpoint, json=message, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"FCM request error for batch of {len(batch)}: {e}")
            result._fail_batch(batch)
            return

        if not response.is_success:
            logger.error(
                f"FCM request failed with status {response.status_code}: {response.text}"
            )
            result._fail_batch(batch)
            return

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"FCM returned an unreadable response: {e}")
            result._fail_batch(batch)
            return

        result.success_count += body.get("success", 0)
        result.failure_count += body.get("failure", 0)

        for token, token_result in zip(batch, body.get("results", [])):
            error = token_result.get("error")
            if not error:
                continue
            result.failed_tokens.append(token)
            if error in PERMANENT_TOKEN_ERRORS:
                result.invalid_tokens.append(token)
                logger.info(f"Invalid device token {_mask(token)}: {error}")
            else:
                logger.debug(f"Delivery to {_mask(token)} failed: {error}")

        logger.info(
            f"FCM batch sent: size={len(batch)} "
            f"success={body.get('success', 0)} failure={body.get('failure', 0)}"
        )

    async def send_test(self, token: str) -> bool:
        """Send a fixed test notification to a single token."""
        result = await self.send(
            [token],
            PushMessage(
                title="Test Notification",
                body="This is a test notification from the live classroom backend",
            ),
            {"type": "LIVE_CLASS", "classId": "test", "courseId": "test"},
        )
        return result.success_count > 0
