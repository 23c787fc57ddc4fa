"""
Outbound email delivery.

``ResendEmailSender`` talks to the Resend HTTP API. Without an API key the
application falls back to ``LoggingEmailSender`` so local setups still work.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from ..config import settings

# Set up logging
logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when an email could not be handed to the provider."""


@dataclass
class EmailMessage:
    """
    A rendered transactional email.

    Fields:
    - to: Recipient address
    - subject: Subject line
    - html: HTML body
    - kind: Template name (used as a provider tag and in logs)
    - context: Values the body was rendered from
    """
    to: str
    subject: str
    html: str
    kind: str
    context: Dict[str, Any] = field(default_factory=dict)


class NotificationSender:
    """Interface for anything that can deliver an ``EmailMessage``."""

    async def send(self, message: EmailMessage) -> None:
        raise NotImplementedError


class LoggingEmailSender(NotificationSender):
    """Writes emails to the log instead of sending them."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(f"Email ({message.kind}) to {message.to} not sent, no provider configured: {message.subject}")


class ResendEmailSender(NotificationSender):
    """
    Sends emails through the Resend API.

    Args:
        api_key: Resend API key
        sender: From address
        api_url: Resend send endpoint
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        api_key: str,
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "tags": [{"name": "kind", "value": message.kind}],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Email ({message.kind}) to {message.to} failed: {str(e)}")
            raise NotificationError(f"Email provider unreachable: {str(e)}") from e

        if response.status_code >= 400:
            logger.error(
                f"Email ({message.kind}) to {message.to} rejected: {response.status_code} {response.text}"
            )
            raise NotificationError(f"Email provider rejected the message ({response.status_code})")

        logger.info(f"Email ({message.kind}) sent to {message.to}")


def build_sender() -> NotificationSender:
    """Choose the sender for the configured environment."""
    if settings.resend_api_key:
        return ResendEmailSender(
            api_key=settings.resend_api_key,
            sender=settings.mail_from,
            api_url=settings.resend_api_url,
            timeout=settings.mail_timeout_seconds,
        )
    logger.warning("RESEND_API_KEY is not set; emails will only be logged")
    return LoggingEmailSender()


_sender: Optional[NotificationSender] = None


def get_notification_sender() -> NotificationSender:
    """
    Notification sender dependency.

    Returns:
        NotificationSender: The process-wide sender
    """
    global _sender
    if _sender is None:
        _sender = build_sender()
    return _sender
