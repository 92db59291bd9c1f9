"""
External clients and their share-link dashboards.

A client gets a slug and a generated password. Logging in with both
yields a short-lived client token, which unlocks a read-only dashboard of
the boards mapped to that client, filtered by the client's
discriminator values.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from mondayease.errors import AccessDeniedError, NotAuthenticatedError, NotFoundError
from mondayease.integrations.base import IntegrationError
from mondayease.security.passwords import generate_password, hash_password, verify_password
from mondayease.security.sessions import ClientSession, issue_client_token
from mondayease.services.access import mappings_by_config, visible_rows
from mondayease.services.members import BoardAccessGrant, validate_grants
from mondayease.services.monday import MondayClientFactory, MondayTokens, ResolvedToken
from mondayease.services.slugs import slugify, unique_slug
from mondayease.services.views import item_row
from mondayease.storage import Repository
from mondayease.storage.schemas import (
    BoardConfig,
    Client,
    ClientBoardAccess,
    ClientStatus,
    OrganizationMember,
)

logger = logging.getLogger(__name__)

INVALID_PASSWORD = "Invalid password"


class ClientCreate(BaseModel):
    company_name: str = Field(..., min_length=1)
    contact_name: str = Field(..., min_length=1)
    contact_email: str = Field(..., min_length=3)
    phone: str | None = None
    client_type: str | None = None
    notes: str | None = None
    board_access: list[BoardAccessGrant] = Field(default_factory=list)


class ClientService:
    """
    Client CRUD, share-link login and client dashboards.

    Example:
        service = ClientService(repo, tokens, monday_factory, jwt_secret, ttl)
        client, password = await service.create_client(owner, ClientCreate(...))
        token = await service.authenticate(client.slug, password)
    """

    def __init__(
        self,
        repo: Repository,
        tokens: MondayTokens,
        monday_factory: MondayClientFactory,
        token_secret: str,
        token_ttl_seconds: int,
    ):
        self._repo = repo
        self._tokens = tokens
        self._monday_factory = monday_factory
        self._token_secret = token_secret
        self._token_ttl = token_ttl_seconds

    # ==================== Management (owners) ====================

    @staticmethod
    def _require_owner(caller: OrganizationMember) -> None:
        if not caller.is_owner:
            raise AccessDeniedError("Only owners can manage clients")

    async def list_clients(self, caller: OrganizationMember) -> list[Client]:
        self._require_owner(caller)
        return await self._repo.list_clients(caller.organization_id)

    async def create_client(
        self,
        caller: OrganizationMember,
        data: ClientCreate,
    ) -> tuple[Client, str]:
        """
        Create a client with a fresh password.

        Returns:
            (client, plaintext password). The password is not stored and
            cannot be recovered later.
        """
        self._require_owner(caller)
        await validate_grants(self._repo, caller.organization_id, data.board_access)

        password = generate_password()
        taken = await self._repo.list_client_slugs()
        client = Client(
            organization_id=caller.organization_id,
            company_name=data.company_name.strip(),
            contact_name=data.contact_name.strip(),
            contact_email=data.contact_email.strip().lower(),
            phone=data.phone,
            client_type=data.client_type,
            notes=data.notes,
            slug=unique_slug(slugify(data.company_name, fallback="client"), taken),
            password_hash=hash_password(password),
        )
        await self._repo.insert_client(client)
        await self._repo.replace_client_access(client.id, self._access_rows(client.id, data.board_access))
        logger.info(f"[clients] Created client {client.id} ({client.slug})")
        return client, password

    async def regenerate_password(self, caller: OrganizationMember, client_id: str) -> str:
        client = await self._owned_client(caller, client_id)
        password = generate_password()
        await self._repo.update_client(client.id, password_hash=hash_password(password))
        logger.info(f"[clients] Regenerated password for client {client.id}")
        return password

    async def archive_client(self, caller: OrganizationMember, client_id: str) -> None:
        client = await self._owned_client(caller, client_id)
        await self._repo.update_client(client.id, status=ClientStatus.ARCHIVED.value)
        logger.info(f"[clients] Archived client {client.id}")

    async def replace_board_access(
        self,
        caller: OrganizationMember,
        client_id: str,
        grants: list[BoardAccessGrant],
    ) -> list[ClientBoardAccess]:
        client = await self._owned_client(caller, client_id)
        await validate_grants(self._repo, caller.organization_id, grants)
        return await self._repo.replace_client_access(client.id, self._access_rows(client.id, grants))

    @staticmethod
    def _access_rows(client_id: str, grants: list[BoardAccessGrant]) -> list[ClientBoardAccess]:
        return [
            ClientBoardAccess(
                client_id=client_id,
                board_config_id=g.board_config_id,
                filter_value=g.filter_value or None,
            )
            for g in grants
        ]

    async def _owned_client(self, caller: OrganizationMember, client_id: str) -> Client:
        self._require_owner(caller)
        client = await self._repo.get_client(client_id)
        if client is None or client.organization_id != caller.organization_id:
            raise NotFoundError("Client not found")
        return client

    # ==================== Share link ====================

    async def authenticate(self, slug: str, password: str) -> tuple[Client, str]:
        """
        Check a slug + password pair and issue a client token.

        Raises:
            NotAuthenticatedError: With the same message for an unknown
                slug, a wrong password or an inactive client.
        """
        client = await self._repo.get_client_by_slug((slug or "").strip())
        if (
            client is None
            or client.status != ClientStatus.ACTIVE.value
            or not verify_password(client.password_hash, password or "")
        ):
            logger.info(f"[clients] Failed login for slug '{slug}'")
            raise NotAuthenticatedError(INVALID_PASSWORD)

        token = issue_client_token(
            client.id,
            client.organization_id,
            client.slug,
            self._token_secret,
            self._token_ttl,
        )
        return client, token

    async def dashboard(self, session: ClientSession) -> dict[str, Any]:
        client = await self._repo.get_client(session.client_id)
        if client is None or client.status != ClientStatus.ACTIVE.value:
            raise NotAuthenticatedError("Session expired")

        access = await self._repo.list_client_access(client.id)
        configs = [
            c for c in await self._repo.get_board_configs([a.board_config_id for a in access])
            if c.is_active and c.organization_id == client.organization_id
        ]
        envelope: dict[str, Any] = {"companyName": client.company_name, "boards": []}
        if not configs:
            return envelope

        organization = await self._repo.get_organization(client.organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")

        mappings = mappings_by_config(access)
        resolved: dict[str | None, ResolvedToken | None] = {}
        for account_id in {c.monday_account_id for c in configs}:
            resolved[account_id] = await self._tokens.resolve_optional(
                organization.owner_id, account_id
            )
        if not any(resolved.values()):
            envelope["error"] = "Monday.com integration not configured"
            return envelope

        boards = await asyncio.gather(
            *(
                self._board(config, mappings.get(config.id), resolved[config.monday_account_id])
                for config in configs
                if resolved[config.monday_account_id] is not None
            )
        )
        envelope["boards"] = [b for b in boards if b is not None]
        return envelope

    async def _board(
        self,
        config: BoardConfig,
        mapping: ClientBoardAccess | None,
        token: ResolvedToken,
    ) -> dict[str, Any] | None:
        client = self._monday_factory(token.token)
        try:
            board = await client.get_board_items(config.monday_board_id)
        except (IntegrationError, SchemaError) as e:
            logger.error(f"[clients] Failed to fetch board {config.monday_board_id}: {e}")
            return None
        finally:
            await client.close()
        if board is None:
            return None

        visible = set(config.visible_columns)
        columns = [
            c.model_dump() for c in board.columns if not visible or c.id in visible
        ]
        items = [
            item_row(item, config.visible_columns)
            for item in visible_rows(board.items, config, mapping)
        ]
        return {
            "boardId": board.board_id,
            "boardName": config.board_name or board.board_name,
            "columns": columns,
            "items": items,
            "monday_account_id": token.account_id,
            "account_name": token.account_name,
        }
