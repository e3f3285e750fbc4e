"""
Booking notifications posted to an automation webhook.
"""

import logging
from typing import Any, Dict, Optional

import httpx
import tenacity

from ...core.exceptions import NotificationError
from ...utils.logging import get_logger


logger = get_logger("clinica.notifications")


class NotificationService:
    """Posts booking events (created, rescheduled, cancelled) to a webhook."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    @tenacity.retry(
        retry=tenacity.retry_if_exception_type((httpx.RequestError, httpx.TimeoutException)),
        stop=tenacity.stop_after_attempt(3),
        wait=tenacity.wait_exponential(multiplier=0.5, min=0.5, max=4),
        before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            return response

    async def _make_request(self, payload: Dict[str, Any]) -> None:
        """POST with error handling."""
        try:
            await self._post(self.webhook_url, payload)
        except httpx.TimeoutException:
            raise NotificationError("Request timed out")
        except httpx.HTTPStatusError as e:
            raise NotificationError(f"HTTP error {e.response.status_code}")
        except httpx.HTTPError as e:
            raise NotificationError(f"Request failed: {str(e)}")

    async def notify(self, event: str, payload: Dict[str, Any]) -> bool:
        """
        Send ``event`` with ``payload``; returns whether the webhook accepted it.

        Delivery failures are logged and never interrupt the booking flow.
        """
        if not self.is_configured():
            return False

        try:
            await self._make_request({"event": event, **payload})
            logger.info(f"notifications: sent {event}")
            return True
        except NotificationError as e:
            logger.warning(f"notifications: {event} failed: {e}")
            return False
