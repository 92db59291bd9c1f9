"""
Organization member endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from mondayease.app.auth import get_current_member, get_current_user
from mondayease.app.dependencies import get_member_service
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services import MemberService
from mondayease.services.members import BoardAccessGrant
from mondayease.storage.schemas import OrganizationMember

router = APIRouter(prefix="/members", tags=["members"])


class InviteRequest(BaseModel):
    email: str = ""
    display_name: str = Field("", alias="displayName")

    model_config = ConfigDict(populate_by_name=True)


class BoardAccessRequest(BaseModel):
    boards: list[BoardAccessGrant] = Field(default_factory=list)


@router.get("", summary="Members of the caller's organization")
async def list_members(
    member: OrganizationMember = Depends(get_current_member),
    service: MemberService = Depends(get_member_service),
) -> dict[str, Any]:
    return {"members": await service.list_members(member)}


@router.post(
    "/invite",
    summary="Invite a member",
    responses={
        400: {"description": "Missing fields or already a member"},
        403: {"description": "Caller is not an owner or admin"},
    },
)
async def invite_member(
    request: InviteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    member: OrganizationMember = Depends(get_current_member),
    service: MemberService = Depends(get_member_service),
) -> dict[str, Any]:
    result = await service.invite(
        member,
        request.email,
        request.display_name,
        inviter_name=user.full_name,
    )
    response: dict[str, Any] = {
        "success": True,
        "member": result.member.model_dump(mode="json"),
        "email_sent": result.email_sent,
    }
    if result.message:
        response["message"] = result.message
    return response


@router.post("/activate", summary="Activate a pending membership")
async def activate_membership(
    user: AuthenticatedUser = Depends(get_current_user),
    service: MemberService = Depends(get_member_service),
) -> dict[str, Any]:
    return await service.activate(user)


@router.post(
    "/{member_id}/reset-password",
    summary="Email a member a password recovery link",
    responses={
        400: {"description": "Member has not activated an account"},
        403: {"description": "Caller is not an owner"},
        404: {"description": "Member not found"},
    },
)
async def reset_member_password(
    member_id: str,
    member: OrganizationMember = Depends(get_current_member),
    service: MemberService = Depends(get_member_service),
) -> dict[str, Any]:
    await service.reset_password(member, member_id)
    return {"success": True}


@router.put("/{member_id}/board-access", summary="Replace a member's board access")
async def replace_member_board_access(
    member_id: str,
    request: BoardAccessRequest,
    member: OrganizationMember = Depends(get_current_member),
    service: MemberService = Depends(get_member_service),
) -> dict[str, Any]:
    rows = await service.replace_board_access(member, member_id, request.boards)
    return {"board_access": [r.model_dump(mode="json") for r in rows]}
