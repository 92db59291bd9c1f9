"""
Request authentication dependencies.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mondayease.app.dependencies import get_repository, get_settings
from mondayease.config import AppSettings
from mondayease.errors import AccessDeniedError, NotAuthenticatedError
from mondayease.security.sessions import (
    AuthenticatedUser,
    ClientSession,
    verify_access_token,
    verify_client_token,
)
from mondayease.storage import Repository
from mondayease.storage.schemas import OrganizationMember

bearer_scheme = HTTPBearer(auto_error=False)


def _token(credentials: HTTPAuthorizationCredentials | None) -> str:
    if credentials is None or not credentials.credentials:
        raise NotAuthenticatedError()
    return credentials.credentials


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: AppSettings = Depends(get_settings),
) -> AuthenticatedUser:
    return verify_access_token(
        _token(credentials),
        settings.jwt_secret.get_secret_value(),
        settings.jwt_audience,
    )


async def get_current_member(
    user: AuthenticatedUser = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> OrganizationMember:
    """The caller's active membership; 403 without one."""
    member = await repo.get_active_membership(user.id)
    if member is None:
        raise AccessDeniedError("No active organization membership")
    return member


async def get_client_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: AppSettings = Depends(get_settings),
) -> ClientSession:
    return verify_client_token(_token(credentials), settings.jwt_secret.get_secret_value())
