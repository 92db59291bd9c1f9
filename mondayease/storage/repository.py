"""
Repository for MondayEase.

Typed access to the external tables on top of any DocumentStore. This is
the only module that knows table names and query shapes; services and
routes work with the pydantic rows from mondayease.storage.schemas.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from .base import ASCENDING, DESCENDING, DocumentStore
from .schemas import (
    BoardConfig,
    Client,
    ClientBoardAccess,
    ClientStatus,
    CustomBoardView,
    IntegrationStatus,
    MemberBoardAccess,
    MemberStatus,
    Organization,
    OrganizationMember,
    Table,
    UserIntegration,
    UserProfile,
    WorkflowExecution,
    WorkflowTemplate,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


class Repository:
    """
    Typed table access.

    Example:
        repo = Repository(InMemoryStore())
        member = await repo.get_active_membership(user_id)
        access = await repo.list_member_access(member.id)
    """

    def __init__(self, store: DocumentStore):
        self._store = store

    @property
    def store(self) -> DocumentStore:
        return self._store

    # ==================== Organizations ====================

    async def get_organization(self, organization_id: str) -> Organization | None:
        doc = await self._store.find_one(Table.ORGANIZATIONS, {"id": organization_id})
        return Organization(**doc) if doc else None

    async def save_organization(self, organization: Organization) -> Organization:
        await self._store.upsert(
            Table.ORGANIZATIONS, {"id": organization.id}, organization.model_dump()
        )
        return organization

    # ==================== Members ====================

    async def get_active_membership(
        self,
        user_id: str,
        organization_id: str | None = None,
    ) -> OrganizationMember | None:
        query: dict[str, Any] = {"user_id": user_id, "status": MemberStatus.ACTIVE.value}
        if organization_id:
            query["organization_id"] = organization_id
        doc = await self._store.find_one(Table.ORGANIZATION_MEMBERS, query)
        return OrganizationMember(**doc) if doc else None

    async def get_member(
        self,
        member_id: str,
        organization_id: str | None = None,
    ) -> OrganizationMember | None:
        query: dict[str, Any] = {"id": member_id}
        if organization_id:
            query["organization_id"] = organization_id
        doc = await self._store.find_one(Table.ORGANIZATION_MEMBERS, query)
        return OrganizationMember(**doc) if doc else None

    async def find_member_by_email(
        self,
        organization_id: str,
        email: str,
    ) -> OrganizationMember | None:
        doc = await self._store.find_one(
            Table.ORGANIZATION_MEMBERS,
            {"organization_id": organization_id, "email": email},
        )
        return OrganizationMember(**doc) if doc else None

    async def find_pending_membership(
        self,
        email: str,
        organization_id: str | None = None,
    ) -> OrganizationMember | None:
        query: dict[str, Any] = {"email": email, "status": MemberStatus.PENDING.value}
        if organization_id:
            query["organization_id"] = organization_id
        doc = await self._store.find_one(Table.ORGANIZATION_MEMBERS, query)
        return OrganizationMember(**doc) if doc else None

    async def list_members(self, organization_id: str) -> list[OrganizationMember]:
        docs = await self._store.find(
            Table.ORGANIZATION_MEMBERS,
            {"organization_id": organization_id},
            sort=[("invited_at", ASCENDING)],
        )
        return [OrganizationMember(**d) for d in docs]

    async def insert_member(self, member: OrganizationMember) -> OrganizationMember:
        await self._store.insert(Table.ORGANIZATION_MEMBERS, member.model_dump())
        return member

    async def update_member(self, member_id: str, **fields: Any) -> None:
        await self._store.update(Table.ORGANIZATION_MEMBERS, {"id": member_id}, fields)

    # ==================== Profiles ====================

    async def get_profile(self, user_id: str) -> UserProfile | None:
        doc = await self._store.find_one(Table.USER_PROFILES, {"id": user_id})
        return UserProfile(**doc) if doc else None

    async def get_profile_by_email(self, email: str) -> UserProfile | None:
        doc = await self._store.find_one(Table.USER_PROFILES, {"email": email})
        return UserProfile(**doc) if doc else None

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        await self._store.upsert(Table.USER_PROFILES, {"id": profile.id}, profile.model_dump())
        return profile

    async def update_profile(self, user_id: str, **fields: Any) -> int:
        fields["updated_at"] = _now()
        return await self._store.update(Table.USER_PROFILES, {"id": user_id}, fields)

    # ==================== Integrations ====================

    async def upsert_integration(self, integration: UserIntegration) -> UserIntegration:
        """Insert or update keyed by (user, integration type, remote account)."""
        integration.updated_at = _now()
        doc = await self._store.upsert(
            Table.USER_INTEGRATIONS,
            {
                "user_id": integration.user_id,
                "integration_type": integration.integration_type,
                "monday_account_id": integration.monday_account_id,
            },
            integration.model_dump(),
        )
        return UserIntegration(**doc)

    async def get_connected_integration(
        self,
        user_id: str,
        account_id: str | None = None,
        integration_type: str = "monday",
    ) -> UserIntegration | None:
        """
        Get a connected integration.

        With no account_id, the most recently connected account wins.
        """
        query: dict[str, Any] = {
            "user_id": user_id,
            "integration_type": integration_type,
            "status": IntegrationStatus.CONNECTED.value,
        }
        if account_id:
            query["monday_account_id"] = account_id
        docs = await self._store.find(
            Table.USER_INTEGRATIONS,
            query,
            sort=[("connected_at", DESCENDING)],
            limit=1,
        )
        return UserIntegration(**docs[0]) if docs else None

    async def list_integrations(self, user_id: str) -> list[UserIntegration]:
        docs = await self._store.find(
            Table.USER_INTEGRATIONS,
            {"user_id": user_id},
            sort=[("connected_at", DESCENDING)],
        )
        return [UserIntegration(**d) for d in docs]

    async def set_integration_status(
        self,
        user_id: str,
        status: IntegrationStatus,
        account_id: str | None = None,
        integration_type: str = "monday",
    ) -> int:
        query: dict[str, Any] = {"user_id": user_id, "integration_type": integration_type}
        if account_id:
            query["monday_account_id"] = account_id
        return await self._store.update(
            Table.USER_INTEGRATIONS,
            query,
            {"status": status.value, "updated_at": _now()},
        )

    # ==================== Board Configs ====================

    async def list_board_configs(self, organization_id: str) -> list[BoardConfig]:
        docs = await self._store.find(
            Table.BOARD_CONFIGS,
            {"organization_id": organization_id},
            sort=[("created_at", DESCENDING)],
        )
        return [BoardConfig(**d) for d in docs]

    async def get_board_configs(self, config_ids: list[str]) -> list[BoardConfig]:
        if not config_ids:
            return []
        docs = await self._store.find(Table.BOARD_CONFIGS, {"id": {"$in": config_ids}})
        return [BoardConfig(**d) for d in docs]

    async def get_board_config(self, config_id: str) -> BoardConfig | None:
        doc = await self._store.find_one(Table.BOARD_CONFIGS, {"id": config_id})
        return BoardConfig(**doc) if doc else None

    async def insert_board_config(self, config: BoardConfig) -> BoardConfig:
        await self._store.insert(Table.BOARD_CONFIGS, config.model_dump())
        return config

    async def update_board_config(self, config_id: str, **fields: Any) -> int:
        fields["updated_at"] = _now()
        return await self._store.update(Table.BOARD_CONFIGS, {"id": config_id}, fields)

    async def delete_board_config(self, config_id: str) -> int:
        """Delete a config together with every mapping scoped to it."""
        await self._store.delete(Table.MEMBER_BOARD_ACCESS, {"board_config_id": config_id})
        await self._store.delete(Table.CLIENT_BOARD_ACCESS, {"board_config_id": config_id})
        return await self._store.delete(Table.BOARD_CONFIGS, {"id": config_id})

    # ==================== Access Mappings ====================

    async def list_member_access(self, member_id: str) -> list[MemberBoardAccess]:
        docs = await self._store.find(Table.MEMBER_BOARD_ACCESS, {"member_id": member_id})
        return [MemberBoardAccess(**d) for d in docs]

    async def list_member_access_for_configs(
        self,
        config_ids: list[str],
    ) -> list[MemberBoardAccess]:
        if not config_ids:
            return []
        docs = await self._store.find(
            Table.MEMBER_BOARD_ACCESS, {"board_config_id": {"$in": config_ids}}
        )
        return [MemberBoardAccess(**d) for d in docs]

    async def replace_member_access(
        self,
        member_id: str,
        rows: list[MemberBoardAccess],
    ) -> list[MemberBoardAccess]:
        await self._store.delete(Table.MEMBER_BOARD_ACCESS, {"member_id": member_id})
        for row in rows:
            await self._store.insert(Table.MEMBER_BOARD_ACCESS, row.model_dump())
        return rows

    async def insert_member_access(self, row: MemberBoardAccess) -> MemberBoardAccess:
        await self._store.insert(Table.MEMBER_BOARD_ACCESS, row.model_dump())
        return row

    async def replace_config_member_access(
        self,
        config_id: str,
        rows: list[MemberBoardAccess],
    ) -> list[MemberBoardAccess]:
        """Replace every member mapping of one board config."""
        await self._store.delete(Table.MEMBER_BOARD_ACCESS, {"board_config_id": config_id})
        for row in rows:
            await self._store.insert(Table.MEMBER_BOARD_ACCESS, row.model_dump())
        return rows

    async def insert_client_access(self, row: ClientBoardAccess) -> ClientBoardAccess:
        await self._store.insert(Table.CLIENT_BOARD_ACCESS, row.model_dump())
        return row

    async def list_client_access(self, client_id: str) -> list[ClientBoardAccess]:
        docs = await self._store.find(Table.CLIENT_BOARD_ACCESS, {"client_id": client_id})
        return [ClientBoardAccess(**d) for d in docs]

    async def list_client_access_for_configs(
        self,
        config_ids: list[str],
    ) -> list[ClientBoardAccess]:
        if not config_ids:
            return []
        docs = await self._store.find(
            Table.CLIENT_BOARD_ACCESS, {"board_config_id": {"$in": config_ids}}
        )
        return [ClientBoardAccess(**d) for d in docs]

    async def replace_client_access(
        self,
        client_id: str,
        rows: list[ClientBoardAccess],
    ) -> list[ClientBoardAccess]:
        await self._store.delete(Table.CLIENT_BOARD_ACCESS, {"client_id": client_id})
        for row in rows:
            await self._store.insert(Table.CLIENT_BOARD_ACCESS, row.model_dump())
        return rows

    # ==================== Clients ====================

    async def insert_client(self, client: Client) -> Client:
        await self._store.insert(Table.CLIENTS, client.model_dump())
        return client

    async def get_client(self, client_id: str) -> Client | None:
        doc = await self._store.find_one(Table.CLIENTS, {"id": client_id})
        return Client(**doc) if doc else None

    async def get_client_by_slug(self, slug: str) -> Client | None:
        doc = await self._store.find_one(Table.CLIENTS, {"slug": slug})
        return Client(**doc) if doc else None

    async def list_clients(self, organization_id: str) -> list[Client]:
        docs = await self._store.find(
            Table.CLIENTS,
            {"organization_id": organization_id, "status": {"$ne": ClientStatus.ARCHIVED.value}},
            sort=[("created_at", DESCENDING)],
        )
        return [Client(**d) for d in docs]

    async def list_client_slugs(self) -> set[str]:
        docs = await self._store.find(Table.CLIENTS)
        return {d["slug"] for d in docs}

    async def update_client(self, client_id: str, **fields: Any) -> int:
        fields["updated_at"] = _now()
        return await self._store.update(Table.CLIENTS, {"id": client_id}, fields)

    # ==================== Custom Views ====================

    async def list_views(self, organization_id: str) -> list[CustomBoardView]:
        docs = await self._store.find(
            Table.CUSTOM_BOARD_VIEWS,
            {"organization_id": organization_id},
            sort=[("display_order", ASCENDING), ("created_at", DESCENDING)],
        )
        return [CustomBoardView(**d) for d in docs]

    async def get_view(self, view_id: str) -> CustomBoardView | None:
        doc = await self._store.find_one(Table.CUSTOM_BOARD_VIEWS, {"id": view_id})
        return CustomBoardView(**doc) if doc else None

    async def get_view_by_slug(
        self,
        organization_id: str,
        slug: str,
    ) -> CustomBoardView | None:
        doc = await self._store.find_one(
            Table.CUSTOM_BOARD_VIEWS,
            {"organization_id": organization_id, "slug": slug},
        )
        return CustomBoardView(**doc) if doc else None

    async def insert_view(self, view: CustomBoardView) -> CustomBoardView:
        await self._store.insert(Table.CUSTOM_BOARD_VIEWS, view.model_dump())
        return view

    async def update_view(self, view_id: str, **fields: Any) -> int:
        fields["updated_at"] = _now()
        return await self._store.update(Table.CUSTOM_BOARD_VIEWS, {"id": view_id}, fields)

    async def delete_view(self, view_id: str) -> int:
        return await self._store.delete(Table.CUSTOM_BOARD_VIEWS, {"id": view_id})

    # ==================== Workflows ====================

    async def list_templates(self, active_only: bool = True) -> list[WorkflowTemplate]:
        query = {"is_active": True} if active_only else {}
        docs = await self._store.find(
            Table.WORKFLOW_TEMPLATES, query, sort=[("name", ASCENDING)]
        )
        return [WorkflowTemplate(**d) for d in docs]

    async def get_template(
        self,
        template_id: str,
        active_only: bool = True,
    ) -> WorkflowTemplate | None:
        query: dict[str, Any] = {"id": template_id}
        if active_only:
            query["is_active"] = True
        doc = await self._store.find_one(Table.WORKFLOW_TEMPLATES, query)
        return WorkflowTemplate(**doc) if doc else None

    async def save_template(self, template: WorkflowTemplate) -> WorkflowTemplate:
        await self._store.upsert(
            Table.WORKFLOW_TEMPLATES, {"id": template.id}, template.model_dump()
        )
        return template

    async def increment_execution_count(self, template: WorkflowTemplate) -> None:
        await self._store.update(
            Table.WORKFLOW_TEMPLATES,
            {"id": template.id},
            {"execution_count": template.execution_count + 1, "updated_at": _now()},
        )

    async def insert_execution(self, execution: WorkflowExecution) -> WorkflowExecution:
        await self._store.insert(Table.WORKFLOW_EXECUTIONS, execution.model_dump())
        return execution

    async def update_execution(self, execution_id: str, fields: dict[str, Any]) -> None:
        await self._store.update(Table.WORKFLOW_EXECUTIONS, {"id": execution_id}, fields)

    async def get_execution(self, execution_id: str) -> WorkflowExecution | None:
        doc = await self._store.find_one(Table.WORKFLOW_EXECUTIONS, {"id": execution_id})
        return WorkflowExecution(**doc) if doc else None

    async def list_executions(
        self,
        organization_id: str,
        limit: int = 50,
    ) -> list[WorkflowExecution]:
        docs = await self._store.find(
            Table.WORKFLOW_EXECUTIONS,
            {"organization_id": organization_id},
            sort=[("created_at", DESCENDING)],
            limit=limit,
        )
        return [WorkflowExecution(**d) for d in docs]
