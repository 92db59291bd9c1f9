"""
Monday.com access on behalf of stored integrations.

Board data is always read with the organization owner's token, so every
member sees the same live board through the owner's connection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from mondayease.integrations.base import MondayIntegrationError
from mondayease.integrations.monday import MondayClient
from mondayease.security.tokens import decrypt_token
from mondayease.storage import Repository
from mondayease.storage.schemas import UserIntegration

logger = logging.getLogger(__name__)

MondayClientFactory = Callable[[str], MondayClient]


@dataclass(frozen=True, slots=True)
class ResolvedToken:
    token: str
    integration: UserIntegration

    @property
    def account_id(self) -> str | None:
        return self.integration.monday_account_id

    @property
    def account_name(self) -> str | None:
        return self.integration.account_name


class MondayTokens:
    """Looks up and decrypts stored Monday.com access tokens."""

    def __init__(self, repo: Repository, encryption_key: str | None):
        self._repo = repo
        self._encryption_key = encryption_key

    async def resolve(self, user_id: str, account_id: str | None = None) -> ResolvedToken:
        """
        Get the decrypted token of a connected integration.

        Raises:
            MondayIntegrationError: If the user has no connected integration
                (for that account, when one is given).
        """
        integration = await self._repo.get_connected_integration(user_id, account_id)
        if integration is None:
            raise MondayIntegrationError()
        token = decrypt_token(integration.access_token, self._encryption_key)
        return ResolvedToken(token=token, integration=integration)

    async def resolve_optional(
        self,
        user_id: str,
        account_id: str | None = None,
    ) -> ResolvedToken | None:
        try:
            return await self.resolve(user_id, account_id)
        except MondayIntegrationError:
            logger.info(f"[monday] No connected integration for user {user_id}")
            return None
