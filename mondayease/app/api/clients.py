"""
Client endpoints.

Owners manage clients with their normal session. Clients themselves log
in through a share link (slug + password) and get a short-lived client
token that only the dashboard endpoint accepts.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mondayease.app.auth import get_client_session, get_current_member
from mondayease.app.dependencies import get_client_service
from mondayease.security.sessions import ClientSession
from mondayease.services import ClientService
from mondayease.services.clients import ClientCreate
from mondayease.services.members import BoardAccessGrant
from mondayease.storage.schemas import OrganizationMember

router = APIRouter(tags=["clients"])


class ClientLoginRequest(BaseModel):
    slug: str = ""
    password: str = ""


class ClientBoardAccessRequest(BaseModel):
    boards: list[BoardAccessGrant] = Field(default_factory=list)


# ==================== Management ====================


@router.get("/clients", summary="Clients of the caller's organization")
async def list_clients(
    member: OrganizationMember = Depends(get_current_member),
    service: ClientService = Depends(get_client_service),
) -> dict[str, Any]:
    clients = await service.list_clients(member)
    return {"clients": [c.public_dict() for c in clients]}


@router.post("/clients", status_code=201, summary="Create a client")
async def create_client(
    data: ClientCreate,
    member: OrganizationMember = Depends(get_current_member),
    service: ClientService = Depends(get_client_service),
) -> dict[str, Any]:
    """The generated password is returned once and never again."""
    client, password = await service.create_client(member, data)
    return {"success": True, "client": client.public_dict(), "password": password}


@router.post("/clients/{client_id}/password", summary="Generate a new client password")
async def regenerate_client_password(
    client_id: str,
    member: OrganizationMember = Depends(get_current_member),
    service: ClientService = Depends(get_client_service),
) -> dict[str, Any]:
    password = await service.regenerate_password(member, client_id)
    return {"success": True, "password": password}


@router.delete("/clients/{client_id}", summary="Archive a client")
async def archive_client(
    client_id: str,
    member: OrganizationMember = Depends(get_current_member),
    service: ClientService = Depends(get_client_service),
) -> dict[str, bool]:
    await service.archive_client(member, client_id)
    return {"success": True}


@router.put("/clients/{client_id}/board-access", summary="Replace a client's board access")
async def replace_client_board_access(
    client_id: str,
    request: ClientBoardAccessRequest,
    member: OrganizationMember = Depends(get_current_member),
    service: ClientService = Depends(get_client_service),
) -> dict[str, Any]:
    rows = await service.replace_board_access(member, client_id, request.boards)
    return {"board_access": [r.model_dump(mode="json") for r in rows]}


# ==================== Share link ====================


@router.post(
    "/client-auth",
    summary="Log in with a share-link slug and password",
    responses={401: {"description": "Invalid password"}},
)
async def client_login(
    request: ClientLoginRequest,
    service: ClientService = Depends(get_client_service),
) -> dict[str, Any]:
    client, token = await service.authenticate(request.slug, request.password)
    return {
        "success": True,
        "token": token,
        "client": {
            "id": client.id,
            "companyName": client.company_name,
            "contactName": client.contact_name,
            "slug": client.slug,
        },
    }


@router.get("/client-dashboard", summary="Boards shared with the logged-in client")
async def client_dashboard(
    session: ClientSession = Depends(get_client_session),
    service: ClientService = Depends(get_client_service),
) -> dict[str, Any]:
    return await service.dashboard(session)
