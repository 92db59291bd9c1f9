"""
Bearer token handling.

Member and owner requests carry the auth provider's access token, an
HS256 JWT signed with the project secret. Client dashboards use tokens
this service signs itself after a slug + password check; those carry
typ=client and are rejected where a user token is expected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from mondayease.errors import NotAuthenticatedError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
CLIENT_TOKEN_TYPE = "client"
CLIENT_AUDIENCE = "mondayease-client"


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Caller identity taken from a verified access token."""

    id: str
    email: str | None = None
    invited_to_organization: str | None = None
    full_name: str | None = None


@dataclass(frozen=True, slots=True)
class ClientSession:
    client_id: str
    organization_id: str
    slug: str


def verify_access_token(token: str, secret: str, audience: str) -> AuthenticatedUser:
    """
    Verify a user access token.

    Raises:
        NotAuthenticatedError: If the token is malformed, expired, signed
            with another key or is a client token.
    """
    if not secret:
        logger.error("[auth] JWT secret is not configured")
        raise NotAuthenticatedError()
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM], audience=audience)
    except InvalidTokenError as e:
        logger.info(f"[auth] Access token rejected: {e}")
        raise NotAuthenticatedError() from e

    if claims.get("typ") == CLIENT_TOKEN_TYPE or not claims.get("sub"):
        raise NotAuthenticatedError()

    metadata: dict[str, Any] = claims.get("user_metadata") or {}
    return AuthenticatedUser(
        id=claims["sub"],
        email=claims.get("email"),
        invited_to_organization=metadata.get("invited_to_organization"),
        full_name=metadata.get("full_name"),
    )


def issue_client_token(
    client_id: str,
    organization_id: str,
    slug: str,
    secret: str,
    ttl_seconds: int,
) -> str:
    """
    Sign a client dashboard token.

    Raises:
        NotAuthenticatedError: If no signing secret is configured.
    """
    if not secret:
        logger.error("[auth] JWT secret is not configured; refusing to sign a client token")
        raise NotAuthenticatedError()
    now = datetime.now(UTC)
    claims = {
        "sub": client_id,
        "org": organization_id,
        "slug": slug,
        "typ": CLIENT_TOKEN_TYPE,
        "aud": CLIENT_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_client_token(token: str, secret: str) -> ClientSession:
    if not secret:
        logger.error("[auth] JWT secret is not configured")
        raise NotAuthenticatedError()
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM], audience=CLIENT_AUDIENCE)
    except InvalidTokenError as e:
        logger.info(f"[auth] Client token rejected: {e}")
        raise NotAuthenticatedError() from e

    if claims.get("typ") != CLIENT_TOKEN_TYPE:
        raise NotAuthenticatedError()
    return ClientSession(
        client_id=claims["sub"],
        organization_id=claims.get("org", ""),
        slug=claims.get("slug", ""),
    )
