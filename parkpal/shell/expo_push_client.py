"""Expo Push Client - Imperative Shell.

This module handles HTTP communication with the Expo push notification
service, which delivers to the user's device. Delivery is fire-and-forget:
a successful response only means Expo accepted the message.

All I/O is contained here; message formatting is in the core module.
"""

import logging
from dataclasses import dataclass
from typing import Any

import requests

from parkpal.core.config import DEFAULT_PUSH_ENDPOINT


logger = logging.getLogger(__name__)


# Default timeout for push requests (seconds)
DEFAULT_TIMEOUT = 10


@dataclass
class PushResponse:
    """Response from the Expo push API.

    Attributes:
        success: Whether Expo accepted the message
        status_code: HTTP status code
        ticket_id: Expo push ticket ID if accepted
        error: Error message if failed
    """
    success: bool
    status_code: int
    ticket_id: str | None = None
    error: str | None = None


class ExpoPushClient:
    """Client for sending push notifications through Expo.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_PUSH_ENDPOINT,
        access_token: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize Expo push client.

        Args:
            endpoint: Expo push API URL
            access_token: Expo access token for enhanced push security
            timeout: Request timeout in seconds
        """
        self.endpoint = endpoint
        self.access_token = access_token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def send_push(self, message: dict[str, Any]) -> PushResponse:
        """Send a single push message.

        This method performs HTTP I/O.

        Args:
            message: Push message (from formatter)

        Returns:
            PushResponse indicating success or failure
        """
        logger.info("Sending push notification via Expo")

        try:
            response = requests.post(
                self.endpoint,
                json=message,
                timeout=self.timeout,
                headers=self._headers(),
            )
        except requests.Timeout:
            logger.error("Expo push request timed out")
            return PushResponse(
                success=False,
                status_code=0,
                error="Request timed out",
            )
        except requests.RequestException as e:
            logger.error("Expo push request failed: %s", str(e))
            return PushResponse(
                success=False,
                status_code=0,
                error=str(e),
            )

        if response.status_code != 200:
            error_text = response.text
            logger.warning(
                "Expo push returned non-200: %d - %s",
                response.status_code,
                error_text,
            )
            return PushResponse(
                success=False,
                status_code=response.status_code,
                error=error_text,
            )

        try:
            body = response.json()
        except ValueError:
            logger.warning("Expo push returned invalid JSON")
            return PushResponse(
                success=False,
                status_code=response.status_code,
                error="Invalid JSON response",
            )

        ticket = body.get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}

        if ticket.get("status") == "ok":
            logger.info("Push accepted by Expo: %s", ticket.get("id"))
            return PushResponse(
                success=True,
                status_code=response.status_code,
                ticket_id=ticket.get("id"),
            )

        error = ticket.get("message")
        details = ticket.get("details") or {}
        if details.get("error"):
            error = f"{details['error']}: {error}"
        if not error and body.get("errors"):
            error = "; ".join(e.get("message", "") for e in body["errors"])

        logger.warning("Expo rejected push: %s", error)
        return PushResponse(
            success=False,
            status_code=response.status_code,
            error=error or "Unknown push error",
        )

    def send_pushes(self, messages: list[dict[str, Any]]) -> list[PushResponse]:
        """Send multiple push messages.

        Args:
            messages: List of push messages

        Returns:
            List of responses for each message
        """
        responses = []
        for message in messages:
            response = self.send_push(message)
            responses.append(response)
        return responses
