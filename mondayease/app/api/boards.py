"""
Board configuration and Monday.com discovery endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from mondayease.app.auth import get_current_member, get_current_user
from mondayease.app.dependencies import get_board_service
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services import BoardService
from mondayease.services.boards import BoardConfigCreate, BoardConfigUpdate
from mondayease.storage.schemas import OrganizationMember

router = APIRouter(tags=["boards"])


@router.get("/monday/boards", summary="Boards on the caller's Monday.com account")
async def list_monday_boards(
    account_id: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
) -> dict[str, Any]:
    boards = await service.remote_boards(user, account_id)
    return {"boards": [b.model_dump(mode="json") for b in boards]}


@router.get("/monday/users", summary="Users on the owner's Monday.com account")
async def list_monday_users(
    member: OrganizationMember = Depends(get_current_member),
    service: BoardService = Depends(get_board_service),
) -> dict[str, Any]:
    users = await service.remote_users(member)
    return {"users": [u.model_dump(mode="json") for u in users]}


@router.get("/board-configs", summary="Board configs, active and inactive")
async def list_board_configs(
    member: OrganizationMember = Depends(get_current_member),
    service: BoardService = Depends(get_board_service),
) -> dict[str, Any]:
    return await service.list_configs(member)


@router.post("/board-configs", status_code=201, summary="Create a board config")
async def create_board_config(
    data: BoardConfigCreate,
    member: OrganizationMember = Depends(get_current_member),
    service: BoardService = Depends(get_board_service),
) -> dict[str, Any]:
    config = await service.create_config(member, data)
    return {"config": config.model_dump(mode="json")}


@router.patch("/board-configs/{config_id}", summary="Update a board config")
async def update_board_config(
    config_id: str,
    data: BoardConfigUpdate,
    member: OrganizationMember = Depends(get_current_member),
    service: BoardService = Depends(get_board_service),
) -> dict[str, Any]:
    config = await service.update_config(member, config_id, data)
    return {"config": config.model_dump(mode="json")}


@router.delete("/board-configs/{config_id}", summary="Delete a board config and its mappings")
async def delete_board_config(
    config_id: str,
    member: OrganizationMember = Depends(get_current_member),
    service: BoardService = Depends(get_board_service),
) -> dict[str, bool]:
    await service.delete_config(member, config_id)
    return {"success": True}
