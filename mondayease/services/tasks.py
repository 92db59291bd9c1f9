"""
Member task list.

Collects the live rows of every board a member is mapped to, filtered by
the member's discriminator values and projected to the board's visible
columns. Rows are read with the organization owner's Monday.com token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from mondayease.errors import AccessDeniedError, NotFoundError
from mondayease.integrations.base import IntegrationError
from mondayease.integrations.monday.schemas import BoardItems, MondayItem
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services.access import mappings_by_config, project_columns, visible_rows
from mondayease.services.monday import MondayClientFactory, MondayTokens, ResolvedToken
from mondayease.storage import Repository
from mondayease.storage.schemas import BoardConfig, MemberBoardAccess, OrganizationMember

logger = logging.getLogger(__name__)

NO_MEMBERSHIP = "No active organization membership found"
NO_BOARDS = "No boards assigned to you yet"
NO_ACTIVE_BOARDS = "No active boards assigned to you"
NOT_CONFIGURED = "Monday.com integration not configured"


class TaskColumnValue(BaseModel):
    id: str
    title: str
    type: str = "text"
    text: str | None = None
    value: Any = None
    color: str | None = None


class MemberTask(BaseModel):
    id: str
    name: str
    board_id: str
    board_name: str
    column_values: list[TaskColumnValue] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    monday_account_id: str | None = None
    account_name: str | None = None

    def column(self, column_id: str) -> TaskColumnValue | None:
        for cv in self.column_values:
            if cv.id == column_id:
                return cv
        return None


class MemberTasksResult(BaseModel):
    tasks: list[MemberTask] = Field(default_factory=list)
    message: str | None = None


def build_task(
    item: MondayItem,
    board: BoardItems,
    config: BoardConfig,
    resolved: ResolvedToken,
) -> MemberTask:
    columns = board.column_map()
    values = []
    for cv in project_columns(item, config.visible_columns):
        column = columns.get(cv.id)
        values.append(
            TaskColumnValue(
                id=cv.id,
                title=column.title if column else cv.id,
                type=cv.type or (column.type if column else "text"),
                text=cv.text or cv.label or None,
                value=cv.parsed_value,
                color=cv.label_style.color if cv.label_style else None,
            )
        )
    return MemberTask(
        id=item.id,
        name=item.name,
        board_id=board.board_id,
        board_name=config.board_name or board.board_name,
        column_values=values,
        created_at=item.created_at,
        updated_at=item.updated_at,
        monday_account_id=resolved.account_id,
        account_name=resolved.account_name,
    )


class TaskService:
    """
    Builds member task lists.

    Example:
        service = TaskService(repo, MondayTokens(repo, key), monday_factory)
        result = await service.member_tasks(user)
    """

    def __init__(
        self,
        repo: Repository,
        tokens: MondayTokens,
        monday_factory: MondayClientFactory,
    ):
        self._repo = repo
        self._tokens = tokens
        self._monday_factory = monday_factory

    async def resolve_target(
        self,
        caller: OrganizationMember,
        member_id: str | None,
    ) -> OrganizationMember:
        """Pick whose tasks to show; only owners may look at other members."""
        if not member_id or member_id == caller.id:
            return caller
        if not caller.is_owner:
            raise AccessDeniedError("Only owners can view other members' tasks")
        target = await self._repo.get_member(member_id, caller.organization_id)
        if target is None:
            raise NotFoundError("Member not found")
        return target

    async def member_tasks(
        self,
        user: AuthenticatedUser,
        member_id: str | None = None,
    ) -> MemberTasksResult:
        caller = await self._repo.get_active_membership(user.id)
        if caller is None:
            logger.info(f"[tasks] No active membership for user {user.id}")
            return MemberTasksResult(message=NO_MEMBERSHIP)

        member = await self.resolve_target(caller, member_id)

        access = await self._repo.list_member_access(member.id)
        if not access:
            logger.info(f"[tasks] Member {member.id} has no board access")
            return MemberTasksResult(message=NO_BOARDS)

        configs = [
            c for c in await self._repo.get_board_configs([a.board_config_id for a in access])
            if c.is_active
        ]
        if not configs:
            logger.info(f"[tasks] Member {member.id} has no active boards")
            return MemberTasksResult(message=NO_ACTIVE_BOARDS)

        organization = await self._repo.get_organization(member.organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")

        tokens = await self._resolve_tokens(organization.owner_id, configs)
        if not tokens:
            return MemberTasksResult(message=NOT_CONFIGURED)

        mappings = mappings_by_config(access)
        batches = await asyncio.gather(
            *(
                self._board_tasks(config, mappings.get(config.id), tokens[config.monday_account_id])
                for config in configs
                if config.monday_account_id in tokens
            )
        )
        tasks = [task for batch in batches for task in batch]
        logger.info(f"[tasks] {len(tasks)} tasks for member {member.id}")
        return MemberTasksResult(tasks=tasks)

    async def _resolve_tokens(
        self,
        owner_id: str,
        configs: list[BoardConfig],
    ) -> dict[str | None, ResolvedToken]:
        tokens: dict[str | None, ResolvedToken] = {}
        for account_id in {c.monday_account_id for c in configs}:
            resolved = await self._tokens.resolve_optional(owner_id, account_id)
            if resolved is not None:
                tokens[account_id] = resolved
        return tokens

    async def _board_tasks(
        self,
        config: BoardConfig,
        mapping: MemberBoardAccess | None,
        resolved: ResolvedToken,
    ) -> list[MemberTask]:
        client = self._monday_factory(resolved.token)
        try:
            board = await client.get_board_items(config.monday_board_id)
        except (IntegrationError, SchemaError) as e:
            logger.error(f"[tasks] Failed to fetch board {config.monday_board_id}: {e}")
            return []
        finally:
            await client.close()

        if board is None:
            return []
        rows = visible_rows(board.items, config, mapping)
        return [build_task(item, board, config, resolved) for item in rows]
