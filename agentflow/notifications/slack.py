"""Slack webhook notifications."""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class SlackNotifier:
    """Posts plain-text messages to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize notifier.

        Args:
            webhook_url: Incoming webhook URL; when unset messages are only logged
            timeout: Request timeout in seconds
            client: Optional shared HTTP client
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._client = client

    async def notify(self, message: str) -> None:
        """Send a message. Failures are logged, never raised."""
        if not self.webhook_url:
            logger.info(f"Slack notifications not configured. Message: {message!r}")
            return

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.webhook_url, json={"text": message}, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.webhook_url, json={"text": message})

            if response.status_code >= 400:
                logger.error(
                    f"Slack notification failed: {response.status_code} {response.text[:200]}"
                )
            else:
                logger.info("Slack notification sent")
        except httpx.HTTPError as e:
            logger.error(f"Error sending Slack notification: {e}")
