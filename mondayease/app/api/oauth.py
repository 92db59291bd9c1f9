"""
Monday.com connection endpoints.

The callback is hit by the user's browser on the way back from
Monday.com; it always answers with a redirect into the app, carrying
success=true or an error code.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from mondayease.app.auth import get_current_user
from mondayease.app.dependencies import get_oauth_service
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services import OAuthService

router = APIRouter(tags=["integrations"])


@router.get("/monday/oauth/authorize-url", summary="Start the Monday.com OAuth flow")
async def monday_authorize_url(
    user: AuthenticatedUser = Depends(get_current_user),
    service: OAuthService = Depends(get_oauth_service),
) -> dict[str, str]:
    return {"url": service.authorize_url(user.id)}


@router.get(
    "/monday/oauth/callback",
    summary="Monday.com OAuth callback",
    response_class=RedirectResponse,
    status_code=302,
)
async def monday_oauth_callback(
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    service: OAuthService = Depends(get_oauth_service),
) -> RedirectResponse:
    location = await service.handle_callback(code, state, error)
    return RedirectResponse(location, status_code=302)


@router.get("/monday/oauth/status", summary="The caller's Monday.com connection state")
async def monday_connection_status(
    error: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: OAuthService = Depends(get_oauth_service),
) -> dict[str, Any]:
    connection = await service.connection_status(user.id, error)
    return connection.to_dict()


@router.get("/integrations", summary="The caller's Monday.com connections")
async def list_integrations(
    user: AuthenticatedUser = Depends(get_current_user),
    service: OAuthService = Depends(get_oauth_service),
) -> dict[str, Any]:
    integrations = await service.list_integrations(user.id)
    return {"integrations": [i.public_dict() for i in integrations]}


@router.delete("/integrations/monday", summary="Disconnect Monday.com")
async def disconnect_monday(
    account_id: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: OAuthService = Depends(get_oauth_service),
) -> dict[str, Any]:
    count = await service.disconnect(user.id, account_id)
    return {"success": True, "disconnected": count}
