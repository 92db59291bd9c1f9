"""
Auth provider email hook.

The auth provider hands signup, recovery, magic-link and email-change
emails to this service instead of sending them itself. Each call is
signed with Standard Webhooks headers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from mondayease.errors import AppError, BadRequestError, NotAuthenticatedError
from mondayease.integrations.email import EmailClient
from mondayease.security.webhooks import WebhookVerificationError, verify

logger = logging.getLogger(__name__)

EMAIL_TYPES = {
    "signup": "signup",
    "email": "signup",
    "recovery": "recovery",
    "magiclink": "magiclink",
    "email_change": "email_change",
}


class HookUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: str
    user_metadata: dict[str, Any] = Field(default_factory=dict)


class HookEmailData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str | None = None
    token_hash: str
    redirect_to: str = ""
    email_action_type: str
    site_url: str | None = None


class AuthEmailPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user: HookUser
    email_data: HookEmailData


def email_type_for(action_type: str) -> str:
    email_type = EMAIL_TYPES.get(action_type)
    if email_type is None:
        logger.info(f"[auth-email] Unknown email action type '{action_type}', using signup")
        return "signup"
    return email_type


def confirm_url(site_url: str, data: HookEmailData) -> str:
    query = urlencode({
        "token": data.token_hash,
        "type": data.email_action_type,
        "redirect_to": data.redirect_to,
    })
    return f"{site_url.rstrip('/')}/auth/v1/verify?{query}"


class AuthEmailService:
    def __init__(self, email: EmailClient | None, hook_secret: str, site_url: str):
        self._email = email
        self._hook_secret = hook_secret
        self._site_url = site_url

    def parse(self, body: bytes, headers: Mapping[str, str]) -> AuthEmailPayload:
        """
        Verify the signature and decode the payload.

        Raises:
            NotAuthenticatedError: If the signature does not verify.
        """
        if not self._hook_secret:
            logger.error("[auth-email] Hook secret is not configured")
            raise NotAuthenticatedError("Webhook secret not configured")
        try:
            claims = verify(self._hook_secret, body, headers)
        except WebhookVerificationError as e:
            logger.warning(f"[auth-email] Rejected hook call: {e}")
            raise NotAuthenticatedError(str(e)) from e
        try:
            return AuthEmailPayload(**claims)
        except SchemaError as e:
            raise BadRequestError("Invalid hook payload") from e

    async def handle(self, body: bytes, headers: Mapping[str, str]) -> None:
        payload = self.parse(body, headers)
        data = payload.email_data
        email_type = email_type_for(data.email_action_type)
        url = confirm_url(self._site_url, data)

        if self._email is None:
            raise AppError("Email service not configured", "EMAIL_NOT_CONFIGURED", 500)

        logger.info(f"[auth-email] Sending {email_type} email")
        await self._email.send_auth_email(
            email_type,
            payload.user.email,
            url,
            payload.user.user_metadata.get("full_name"),
        )
