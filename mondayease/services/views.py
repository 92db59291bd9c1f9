"""
Custom board views.

A view is a named, slugged projection of one Monday.com board: a subset
of columns plus display settings. This module owns view CRUD and the
paginated, searchable view data served to the dashboard.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field

from mondayease.errors import AccessDeniedError, BadRequestError, NotFoundError
from mondayease.integrations.monday.schemas import MondayItem
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services.monday import MondayClientFactory, MondayTokens
from mondayease.services.slugs import slugify, unique_slug
from mondayease.storage import Repository
from mondayease.storage.schemas import (
    CustomBoardView,
    OrganizationMember,
    ViewColumn,
    ViewSettings,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


# =============================================================================
# Inputs
# =============================================================================


class ViewCreate(BaseModel):
    name: str = Field(..., min_length=1)
    monday_board_id: str
    monday_board_name: str | None = None
    description: str | None = None
    icon: str | None = None
    selected_columns: list[ViewColumn] = Field(default_factory=list)
    settings: ViewSettings = Field(default_factory=ViewSettings)


class ViewUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    icon: str | None = None
    selected_columns: list[ViewColumn] | None = None
    settings: ViewSettings | None = None
    display_order: int | None = None
    is_active: bool | None = None


class ViewDataQuery(BaseModel):
    """Query parameters for view data, normalized to their valid ranges."""

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: str | None = None
    sort: str | None = None
    order: str = "asc"

    @classmethod
    def normalized(
        cls,
        page: int | None = None,
        limit: int | None = None,
        search: str | None = None,
        sort: str | None = None,
        order: str | None = None,
    ) -> ViewDataQuery:
        return cls(
            page=max(page or 1, 1),
            limit=min(max(limit if limit is not None else DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE),
            search=(search or "").strip() or None,
            sort=sort or None,
            order="desc" if (order or "").lower() == "desc" else "asc",
        )


# =============================================================================
# Row shaping
# =============================================================================


def item_row(item: MondayItem, column_ids: Sequence[str]) -> dict[str, Any]:
    """Shape an item for the dashboard, keeping only selected columns."""
    keep = set(column_ids)
    values: dict[str, dict[str, Any]] = {}
    for cv in item.column_values:
        if keep and cv.id not in keep:
            continue
        values[cv.id] = {
            "text": cv.text,
            "value": cv.value,
            "type": cv.type,
            "label": cv.label,
            "label_style": cv.label_style.model_dump() if cv.label_style else None,
        }
    return {"id": item.id, "name": item.name, "column_values": values}


def search_rows(rows: list[dict[str, Any]], search: str | None) -> list[dict[str, Any]]:
    """Case-insensitive substring match on name and kept column text or label."""
    if not search:
        return rows
    needle = search.lower()

    def matches(row: dict[str, Any]) -> bool:
        if needle in (row["name"] or "").lower():
            return True
        for cell in row["column_values"].values():
            for text in (cell.get("text"), cell.get("label")):
                if text and needle in text.lower():
                    return True
        return False

    return [row for row in rows if matches(row)]


def sort_rows(
    rows: list[dict[str, Any]],
    column: str | None,
    order: str = "asc",
) -> list[dict[str, Any]]:
    """Stable sort by item name or a column's text, case-insensitively."""
    if not column:
        return rows

    def key(row: dict[str, Any]) -> str:
        if column == "name":
            return (row["name"] or "").lower()
        cell = row["column_values"].get(column) or {}
        return (cell.get("text") or cell.get("label") or "").lower()

    return sorted(rows, key=key, reverse=order == "desc")


def paginate(rows: list[Any], page: int, limit: int) -> list[Any]:
    start = (page - 1) * limit
    return rows[start:start + limit]


# =============================================================================
# Service
# =============================================================================


class ViewService:
    """
    View CRUD and view data.

    Example:
        service = ViewService(repo, tokens, monday_factory)
        view = await service.create_view(member, ViewCreate(name="Roadmap", monday_board_id="1"))
        data = await service.view_data(user, view.id, ViewDataQuery.normalized(page=2))
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

    # ==================== CRUD ====================

    async def list_views(self, member: OrganizationMember) -> list[CustomBoardView]:
        return await self._repo.list_views(member.organization_id)

    async def get_view_by_slug(self, member: OrganizationMember, slug: str) -> CustomBoardView:
        view = await self._repo.get_view_by_slug(member.organization_id, slug)
        if view is None:
            raise NotFoundError("View not found")
        return view

    async def create_view(self, member: OrganizationMember, data: ViewCreate) -> CustomBoardView:
        if not member.can_manage:
            raise AccessDeniedError("Only owners and admins can manage views")

        existing = await self._repo.list_views(member.organization_id)
        slug = unique_slug(slugify(data.name), {v.slug for v in existing})
        view = CustomBoardView(
            organization_id=member.organization_id,
            slug=slug,
            display_order=len(existing),
            **data.model_dump(),
        )
        await self._repo.insert_view(view)
        logger.info(f"[views] Created view '{view.name}' ({view.slug})")
        return view

    async def update_view(
        self,
        member: OrganizationMember,
        view_id: str,
        data: ViewUpdate,
    ) -> CustomBoardView:
        view = await self._owned_view(member, view_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "name" in changes and changes["name"] != view.name:
            new_slug = slugify(changes["name"])
            others = {
                v.slug
                for v in await self._repo.list_views(member.organization_id)
                if v.id != view.id
            }
            # A taken slug keeps the old one rather than gaining a suffix
            if new_slug not in others:
                changes["slug"] = new_slug

        if changes:
            await self._repo.update_view(view.id, **changes)
        updated = await self._repo.get_view(view.id)
        return updated

    async def delete_view(self, member: OrganizationMember, view_id: str) -> None:
        view = await self._owned_view(member, view_id)
        await self._repo.delete_view(view.id)
        logger.info(f"[views] Deleted view {view.id}")

    async def _owned_view(self, member: OrganizationMember, view_id: str) -> CustomBoardView:
        if not member.can_manage:
            raise AccessDeniedError("Only owners and admins can manage views")
        view = await self._repo.get_view(view_id)
        if view is None or view.organization_id != member.organization_id:
            raise NotFoundError("View not found")
        return view

    # ==================== Data ====================

    async def view_data(
        self,
        user: AuthenticatedUser,
        view_id: str | None,
        query: ViewDataQuery,
    ) -> dict[str, Any]:
        """
        Paginated rows of a view.

        Raises:
            BadRequestError: If view_id is missing.
            NotFoundError: If the view does not exist.
            AccessDeniedError: If the caller is not in the view's organization.
        """
        if not view_id:
            raise BadRequestError("view_id is required")

        view = await self._repo.get_view(view_id)
        if view is None:
            raise NotFoundError("View not found")

        organization = await self._repo.get_organization(view.organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")

        membership = await self._repo.get_active_membership(user.id, view.organization_id)
        if membership is None and organization.owner_id != user.id:
            raise AccessDeniedError()

        envelope = {
            "view": {
                "name": view.name,
                "icon": view.icon,
                "settings": view.settings.model_dump(),
                "columns": [c.model_dump(exclude_none=True) for c in view.selected_columns],
            },
            "items": [],
            "total_count": 0,
            "page": query.page,
            "limit": query.limit,
        }

        resolved = await self._tokens.resolve_optional(organization.owner_id)
        if resolved is None:
            envelope["error"] = "Monday.com integration not configured"
            return envelope

        client = self._monday_factory(resolved.token)
        try:
            board = await client.get_board_items(view.monday_board_id)
        finally:
            await client.close()
        if board is None:
            return envelope

        rows = [item_row(item, view.column_ids) for item in board.items]
        rows = search_rows(rows, query.search)

        if query.sort:
            rows = sort_rows(rows, query.sort, query.order)
        else:
            rows = sort_rows(
                rows,
                view.settings.default_sort_column,
                view.settings.default_sort_order or "asc",
            )

        envelope["items"] = paginate(rows, query.page, query.limit)
        envelope["total_count"] = len(rows)
        logger.info(
            f"[views] View {view.id}: {len(envelope['items'])} of {len(rows)} items "
            f"(page {query.page})"
        )
        return envelope
