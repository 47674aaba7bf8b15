# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Notification client, inter-service communication.
Hands rendered member mail to the mail service. Failures raise so callers
can count them as failed attempts.
"""

import httpx

from membership.core.config import settings
from membership.core.logging import get_logger
from membership.metrics.prometheus import EMAILS_SENT
from membership.models.domain import NotificationRequest

logger = get_logger(__name__)


class NotificationClient:
    """Mail sender backed by the mail service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        dry_run: bool | None = None,
        domain: str | None = None,
    ) -> None:
        self._base_url = base_url or settings.MAIL_SERVICE_URL
        self._timeout = timeout if timeout is not None else settings.MAIL_TIMEOUT
        self._dry_run = settings.TEST_EMAILS if dry_run is None else dry_run
        self._reply_to = f"membership@{domain or settings.DOMAIN}"

    @property
    def reply_to(self) -> str:
        return self._reply_to

    def send(self, message: NotificationRequest) -> None:
        """Send one message. Raises httpx.HTTPError on transport failure or a non-2xx reply."""
        if message.reply_to is None:
            message = message.model_copy(update={"reply_to": self._reply_to})
        if self._dry_run:
            logger.info("TEST_EMAILS: would send '%s' to %s", message.subject, message.to)
            return
        with httpx.Client(timeout=self._timeout) as client:
            resp = client.post(f"{self._base_url}/api/v1/messages", json=message.to_message())
            resp.raise_for_status()
        EMAILS_SENT.inc()
        logger.info("Email sent: to=%s, subject=%s, status=%d", message.to, message.subject, resp.status_code)
