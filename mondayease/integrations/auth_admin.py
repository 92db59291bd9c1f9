"""
Auth provider admin client.

Talks to the hosted auth service's admin API with the service-role key.
Only link generation is used: owners trigger password recovery for their
members, and the resulting link is mailed through Resend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mondayease.integrations.base import ClientConfig, IntegrationClient, IntegrationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuthAdminConfig(ClientConfig):
    """Configuration for AuthAdminClient."""

    service_key: str = ""

    def __post_init__(self):
        if not self.service_key:
            raise ValueError("Auth service key is required")
        if not self.base_url:
            raise ValueError("Auth base URL is required")


class AuthAdminClient(IntegrationClient):
    """
    Async client for the auth provider's admin endpoints.

    Example:
        client = AuthAdminClient(
            AuthAdminConfig(base_url="https://xyz.auth.test", service_key="...")
        )
        link = await client.generate_recovery_link("ada@example.com", "https://app/auth")
    """

    def __init__(self, config: AuthAdminConfig):
        super().__init__(config)
        self._config: AuthAdminConfig = config

    @property
    def name(self) -> str:
        return "auth-admin"

    def _auth_headers(self) -> dict[str, str]:
        return {
            "apikey": self._config.service_key,
            "Authorization": f"Bearer {self._config.service_key}",
            "Content-Type": "application/json",
        }

    async def generate_recovery_link(self, email: str, redirect_to: str) -> str:
        """
        Create a one-time password recovery link for an existing user.

        Raises:
            IntegrationError: If the provider fails or returns no link.
        """
        response = await self._request(
            "POST",
            "/auth/v1/admin/generate_link",
            json={"type": "recovery", "email": email, "redirect_to": redirect_to},
        )
        body = response.json()
        # Older providers nest the link under "properties"
        link = body.get("action_link") or (body.get("properties") or {}).get("action_link")
        if not link:
            raise IntegrationError("Failed to generate recovery link", self.name)
        logger.info("[auth-admin] Generated recovery link")
        return link
