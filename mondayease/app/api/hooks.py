"""
Auth provider hooks.

The auth provider calls the send-email hook instead of sending its own
emails. Calls are signed with the Standard Webhooks scheme, so the raw
body is read before any parsing.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from mondayease.app.dependencies import get_auth_email_service
from mondayease.services.auth_email import AuthEmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hooks", tags=["hooks"])


@router.post(
    "/auth-email",
    summary="Send an auth email on behalf of the auth provider",
    responses={
        200: {"description": "Email sent"},
        400: {"description": "Malformed payload"},
        401: {"description": "Signature did not verify"},
    },
)
async def auth_email_hook(
    request: Request,
    service: AuthEmailService = Depends(get_auth_email_service),
) -> dict:
    body = await request.body()
    await service.handle(body, request.headers)
    return {}
