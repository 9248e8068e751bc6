"""Contact mail forwarding through the Resend HTTP API."""

import logging

import httpx

from download_portal.core.config import Settings
from download_portal.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


class MailService:
    """Forward visitor messages to the site owner's inbox."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.MAIL_API_KEY)

    def build_subject(self, sender: str, first_name: str, last_name: str) -> str:
        return (
            f"{self.settings.MAIL_SUBJECT_PREFIX} - Mail from: "
            f"{first_name} {last_name}<{sender}>"
        )

    async def send_contact_email(
        self,
        sender: str,
        first_name: str,
        last_name: str,
        message: str,
    ) -> bool:
        """Send one message.

        Raises:
            ServiceUnavailableError: no API key configured, the provider
                could not be reached, or it rejected the message
        """
        if not self.is_configured:
            logger.error("Mail API key not configured")
            raise ServiceUnavailableError("Mail service not configured")

        payload = {
            "from": self.settings.MAIL_FROM,
            "to": [self.settings.MAIL_TO],
            "subject": self.build_subject(sender, first_name, last_name),
            "text": message,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.MAIL_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.settings.MAIL_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.settings.MAIL_API_KEY}"},
                )
        except httpx.HTTPError as exc:
            logger.error("Error sending e-mail: %s", exc)
            raise ServiceUnavailableError("Mail service unavailable") from exc

        if response.is_success:
            return True

        logger.error(
            "Failed to send e-mail message: status=%s body=%s",
            response.status_code,
            response.text[:1000],
        )
        raise ServiceUnavailableError("Mail service unavailable")
