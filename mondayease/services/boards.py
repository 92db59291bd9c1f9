"""
Board configurations and remote board discovery.

A board config binds one Monday.com board to an organization, optionally
naming a discriminator column used for row-level access. Configs made
under a different Monday.com account than the one currently connected
are listed as inactive.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from mondayease.errors import AccessDeniedError, BadRequestError, NotFoundError
from mondayease.integrations.monday import MondayBoard, MondayUser
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services.access import split_by_account
from mondayease.services.monday import MondayClientFactory, MondayTokens
from mondayease.storage import Repository
from mondayease.storage.schemas import (
    BoardConfig,
    ClientBoardAccess,
    MemberBoardAccess,
    OrganizationMember,
)

logger = logging.getLogger(__name__)


class MemberMapping(BaseModel):
    member_id: str
    filter_value: str = ""


class ClientMapping(BaseModel):
    client_id: str
    filter_value: str | None = None


class BoardConfigCreate(BaseModel):
    monday_board_id: str
    board_name: str = Field(..., min_length=1)
    filter_column_id: str | None = None
    filter_column_name: str | None = None
    filter_column_type: str | None = None
    visible_columns: list[str] = Field(default_factory=list)
    target_audience: str | None = None
    member_mappings: list[MemberMapping] = Field(default_factory=list)
    client_mappings: list[ClientMapping] = Field(default_factory=list)


# Fields a PATCH may clear by sending null
_NULLABLE_FIELDS = frozenset(
    {"filter_column_id", "filter_column_name", "filter_column_type", "target_audience"}
)


class BoardConfigUpdate(BaseModel):
    board_name: str | None = None
    filter_column_id: str | None = None
    filter_column_name: str | None = None
    filter_column_type: str | None = None
    visible_columns: list[str] | None = None
    target_audience: str | None = None
    is_active: bool | None = None
    member_mappings: list[MemberMapping] | None = None


class BoardService:
    def __init__(
        self,
        repo: Repository,
        tokens: MondayTokens,
        monday_factory: MondayClientFactory,
    ):
        self._repo = repo
        self._tokens = tokens
        self._monday_factory = monday_factory

    @staticmethod
    def _require_owner(caller: OrganizationMember) -> None:
        if not caller.is_owner:
            raise AccessDeniedError("Only owners can manage board configurations")

    async def _connected_account(self, organization_id: str) -> tuple[str | None, str | None]:
        organization = await self._repo.get_organization(organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")
        integration = await self._repo.get_connected_integration(organization.owner_id)
        if integration is None:
            return None, None
        return integration.monday_account_id, integration.workspace_name

    # ==================== Configs ====================

    async def list_configs(self, caller: OrganizationMember) -> dict[str, list[dict[str, Any]]]:
        """Configs with their mappings, split into active and inactive."""
        configs = await self._repo.list_board_configs(caller.organization_id)
        account_id, _ = await self._connected_account(caller.organization_id)
        active, inactive = split_by_account(configs, account_id)

        ids = [c.id for c in configs]
        member_access = await self._repo.list_member_access_for_configs(ids)
        client_access = await self._repo.list_client_access_for_configs(ids)

        def with_access(config: BoardConfig) -> dict[str, Any]:
            return {
                **config.model_dump(mode="json"),
                "member_access": [
                    a.model_dump(mode="json") for a in member_access if a.board_config_id == config.id
                ],
                "client_access": [
                    a.model_dump(mode="json") for a in client_access if a.board_config_id == config.id
                ],
            }

        return {
            "configs": [with_access(c) for c in active],
            "inactive_configs": [with_access(c) for c in inactive],
        }

    async def create_config(
        self,
        caller: OrganizationMember,
        data: BoardConfigCreate,
    ) -> BoardConfig:
        self._require_owner(caller)
        await self._check_members(caller, [m.member_id for m in data.member_mappings])
        await self._check_clients(caller, [m.client_id for m in data.client_mappings])

        account_id, workspace_name = await self._connected_account(caller.organization_id)
        config = BoardConfig(
            organization_id=caller.organization_id,
            monday_account_id=account_id,
            workspace_name=workspace_name,
            **data.model_dump(exclude={"member_mappings", "client_mappings"}),
        )
        await self._repo.insert_board_config(config)

        for m in data.member_mappings:
            await self._repo.insert_member_access(
                MemberBoardAccess(
                    member_id=m.member_id,
                    board_config_id=config.id,
                    filter_value=m.filter_value.strip(),
                )
            )
        for c in data.client_mappings:
            await self._repo.insert_client_access(
                ClientBoardAccess(
                    client_id=c.client_id,
                    board_config_id=config.id,
                    filter_value=(c.filter_value or "").strip() or None,
                )
            )

        logger.info(f"[boards] Created config {config.id} for board {config.monday_board_id}")
        return config

    async def update_config(
        self,
        caller: OrganizationMember,
        config_id: str,
        data: BoardConfigUpdate,
    ) -> BoardConfig:
        self._require_owner(caller)
        config = await self._owned_config(caller, config_id)

        # Validate mappings before anything is written
        if data.member_mappings is not None:
            await self._check_members(caller, [m.member_id for m in data.member_mappings])

        fields = data.model_dump(exclude_unset=True, exclude={"member_mappings"})
        changes = {
            key: value
            for key, value in fields.items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        if changes:
            await self._repo.update_board_config(config.id, **changes)

        if data.member_mappings is not None:
            await self._repo.replace_config_member_access(
                config.id,
                [
                    MemberBoardAccess(
                        member_id=m.member_id,
                        board_config_id=config.id,
                        filter_value=m.filter_value.strip(),
                    )
                    for m in data.member_mappings
                ],
            )

        return await self._repo.get_board_config(config.id)

    async def delete_config(self, caller: OrganizationMember, config_id: str) -> None:
        self._require_owner(caller)
        config = await self._owned_config(caller, config_id)
        await self._repo.delete_board_config(config.id)
        logger.info(f"[boards] Deleted config {config.id}")

    async def _owned_config(self, caller: OrganizationMember, config_id: str) -> BoardConfig:
        config = await self._repo.get_board_config(config_id)
        if config is None or config.organization_id != caller.organization_id:
            raise NotFoundError("Board configuration not found")
        return config

    async def _check_members(self, caller: OrganizationMember, member_ids: list[str]) -> None:
        for member_id in member_ids:
            if await self._repo.get_member(member_id, caller.organization_id) is None:
                raise BadRequestError(f"Unknown member: {member_id}")

    async def _check_clients(self, caller: OrganizationMember, client_ids: list[str]) -> None:
        for client_id in client_ids:
            client = await self._repo.get_client(client_id)
            if client is None or client.organization_id != caller.organization_id:
                raise BadRequestError(f"Unknown client: {client_id}")

    # ==================== Remote ====================

    async def remote_boards(
        self,
        user: AuthenticatedUser,
        account_id: str | None = None,
    ) -> list[MondayBoard]:
        """Boards visible to the caller's own Monday.com connection."""
        resolved = await self._tokens.resolve(user.id, account_id)
        client = self._monday_factory(resolved.token)
        try:
            boards = await client.list_boards()
        finally:
            await client.close()
        logger.info(f"[boards] {len(boards)} remote boards for user {user.id}")
        return boards

    async def remote_users(self, caller: OrganizationMember) -> list[MondayUser]:
        if not caller.is_owner:
            raise AccessDeniedError("Only owners can access this endpoint")
        resolved = await self._tokens.resolve(caller.user_id)
        client = self._monday_factory(resolved.token)
        try:
            users = await client.list_users()
        finally:
            await client.close()
        logger.info(f"[boards] Found {len(users)} Monday.com users")
        return users
