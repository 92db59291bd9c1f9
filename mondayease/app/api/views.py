"""
Custom view endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from mondayease.app.auth import get_current_member, get_current_user
from mondayease.app.dependencies import get_view_service
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services import ViewService
from mondayease.services.views import ViewCreate, ViewDataQuery, ViewUpdate
from mondayease.storage.schemas import OrganizationMember

logger = logging.getLogger(__name__)

router = APIRouter(tags=["views"])


@router.get("/views", summary="List views of the caller's organization")
async def list_views(
    member: OrganizationMember = Depends(get_current_member),
    service: ViewService = Depends(get_view_service),
) -> dict[str, Any]:
    views = await service.list_views(member)
    return {"views": [v.model_dump(mode="json") for v in views]}


@router.get("/views/by-slug/{slug}", summary="Get a view by slug")
async def get_view_by_slug(
    slug: str,
    member: OrganizationMember = Depends(get_current_member),
    service: ViewService = Depends(get_view_service),
) -> dict[str, Any]:
    view = await service.get_view_by_slug(member, slug)
    return {"view": view.model_dump(mode="json")}


@router.post("/views", status_code=201, summary="Create a view")
async def create_view(
    data: ViewCreate,
    member: OrganizationMember = Depends(get_current_member),
    service: ViewService = Depends(get_view_service),
) -> dict[str, Any]:
    view = await service.create_view(member, data)
    return {"view": view.model_dump(mode="json")}


@router.patch("/views/{view_id}", summary="Update a view")
async def update_view(
    view_id: str,
    data: ViewUpdate,
    member: OrganizationMember = Depends(get_current_member),
    service: ViewService = Depends(get_view_service),
) -> dict[str, Any]:
    view = await service.update_view(member, view_id, data)
    return {"view": view.model_dump(mode="json")}


@router.delete("/views/{view_id}", summary="Delete a view")
async def delete_view(
    view_id: str,
    member: OrganizationMember = Depends(get_current_member),
    service: ViewService = Depends(get_view_service),
) -> dict[str, bool]:
    await service.delete_view(member, view_id)
    return {"success": True}


@router.get(
    "/board-view-data",
    summary="Paginated rows of a view",
    responses={
        400: {"description": "view_id missing"},
        403: {"description": "Caller is not in the view's organization"},
        404: {"description": "View not found"},
    },
)
async def board_view_data(
    view_id: str | None = Query(None),
    page: int | None = Query(None),
    limit: int | None = Query(None),
    search: str | None = Query(None),
    sort: str | None = Query(None),
    order: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: ViewService = Depends(get_view_service),
) -> dict[str, Any]:
    """
    Rows of the view's board with search, sort and pagination applied.

    Out-of-range page and limit values are clamped rather than rejected.
    """
    query = ViewDataQuery.normalized(page=page, limit=limit, search=search, sort=sort, order=order)
    return await service.view_data(user, view_id, query)
