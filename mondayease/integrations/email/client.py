"""
Resend email client.

Sends transactional email through the Resend REST API
(POST https://api.resend.com/emails).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import quote

from mondayease.integrations.base import ClientConfig, IntegrationClient
from mondayease.integrations.email.templates import auth_email, invite_email, password_reset_email

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com"


@dataclass(frozen=True, slots=True)
class EmailConfig(ClientConfig):
    """Configuration for EmailClient."""

    api_key: str = ""
    sender: str = "MondayEase <noreply@mondayease.com>"
    site_url: str = "https://ai-sprint.mondayease.com"
    base_url: str = RESEND_API_URL

    def __post_init__(self):
        if not self.api_key:
            raise ValueError("Resend API key is required")


class EmailClient(IntegrationClient):
    """
    Async Resend client.

    Example:
        client = EmailClient(EmailConfig(api_key="re_xxx"))
        message_id = await client.send_invite_email(
            "ada@example.com", "Ada", "Acme", "Grace"
        )
    """

    def __init__(self, config: EmailConfig):
        super().__init__(config)
        self._config: EmailConfig = config

    @property
    def name(self) -> str:
        return "resend"

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }

    async def send(self, to: str, subject: str, html: str) -> str | None:
        """
        Send one email.

        Returns:
            Resend message id
        """
        response = await self._request(
            "POST",
            "/emails",
            json={
                "from": self._config.sender,
                "to": [to],
                "subject": subject,
                "html": html,
            },
        )
        message_id = response.json().get("id")
        logger.info(f"[email] Sent '{subject}' ({message_id})")
        return message_id

    def signup_url(self, email: str) -> str:
        return f"{self._config.site_url}/auth?mode=signup&email={quote(email, safe='')}"

    async def send_invite_email(
        self,
        email: str,
        display_name: str,
        organization_name: str,
        inviter_name: str | None = None,
    ) -> str | None:
        subject, html = invite_email(
            display_name, organization_name, inviter_name, self.signup_url(email)
        )
        return await self.send(email, subject, html)

    async def send_auth_email(
        self,
        email_type: str,
        email: str,
        confirm_url: str,
        display_name: str | None = None,
    ) -> str | None:
        subject, html = auth_email(email_type, email, confirm_url, display_name)
        return await self.send(email, subject, html)

    async def send_password_reset_email(
        self,
        email: str,
        display_name: str,
        organization_name: str,
        recovery_url: str,
    ) -> str | None:
        subject, html = password_reset_email(display_name, organization_name, recovery_url)
        return await self.send(email, subject, html)
