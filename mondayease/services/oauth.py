"""
Monday.com OAuth connection.

The browser opens the authorize URL with state=<user id>. Monday.com
redirects to the callback, which exchanges the code, identifies the
remote account and stores the (optionally encrypted) token. The
callback always ends in a redirect back to the app carrying either
success=true or success=false with a categorical error code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from urllib.parse import urlencode

from mondayease.errors import InvalidTransitionError
from mondayease.integrations.base import IntegrationError
from mondayease.integrations.monday import MondayMe, MondayOAuthClient, OAuthToken
from mondayease.security.tokens import encrypt_token
from mondayease.services.monday import MondayClientFactory
from mondayease.storage import Repository, StoreError
from mondayease.storage.schemas import IntegrationStatus, UserIntegration

logger = logging.getLogger(__name__)


# =============================================================================
# Connection state
# =============================================================================


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(slots=True)
class OAuthConnection:
    """
    Client-visible connection state.

        disconnected | error --start--> connecting
        connecting --complete--> connected
        connecting --fail--> error
        any --disconnect--> disconnected
    """

    state: ConnectionState = ConnectionState.DISCONNECTED
    account_id: str | None = None
    account_name: str | None = None
    error: str | None = None
    history: list[ConnectionState] = field(default_factory=list)

    def _move(self, allowed_from: tuple[ConnectionState, ...], target: ConnectionState) -> None:
        if self.state not in allowed_from:
            raise InvalidTransitionError(self.state.value, target.value)
        self.history.append(self.state)
        self.state = target

    def start(self) -> None:
        self._move((ConnectionState.DISCONNECTED, ConnectionState.ERROR), ConnectionState.CONNECTING)
        self.error = None

    def complete(self, account_id: str, account_name: str | None = None) -> None:
        self._move((ConnectionState.CONNECTING,), ConnectionState.CONNECTED)
        self.account_id = account_id
        self.account_name = account_name

    def fail(self, reason: str) -> None:
        self._move((ConnectionState.CONNECTING,), ConnectionState.ERROR)
        self.error = reason

    def disconnect(self) -> None:
        self._move(tuple(ConnectionState), ConnectionState.DISCONNECTED)
        self.account_id = None
        self.account_name = None
        self.error = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "state": self.state.value,
            "account_id": self.account_id,
            "account_name": self.account_name,
            "error": self.error,
        }


# =============================================================================
# Callback
# =============================================================================


class CallbackError(str, Enum):
    OAUTH_DENIED = "oauth_denied"
    MISSING_PARAMETERS = "missing_parameters"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    MONDAY_API_ERROR = "monday_api_error"
    DATABASE_ERROR = "database_error"
    UNEXPECTED_ERROR = "unexpected_error"


class _CallbackFailure(Exception):
    def __init__(self, code: CallbackError):
        super().__init__(code.value)
        self.code = code


def integrations_redirect(app_url: str, error: CallbackError | None = None) -> str:
    if error is None:
        params = {"success": "true"}
    else:
        params = {"success": "false", "error": error.value}
    return f"{app_url.rstrip('/')}/integrations?{urlencode(params)}"


class OAuthService:
    """
    Runs the authorization-code callback.

    Example:
        service = OAuthService(repo, oauth_client, monday_factory, app_url, key)
        location = await service.handle_callback(code, state, error)
    """

    def __init__(
        self,
        repo: Repository,
        oauth_client: MondayOAuthClient,
        monday_factory: MondayClientFactory,
        app_url: str,
        encryption_key: str | None = None,
    ):
        self._repo = repo
        self._oauth = oauth_client
        self._monday_factory = monday_factory
        self._app_url = app_url
        self._encryption_key = encryption_key

    def authorize_url(self, user_id: str) -> str:
        return self._oauth.authorize_url(state=user_id)

    async def handle_callback(
        self,
        code: str | None,
        state: str | None,
        error: str | None = None,
    ) -> str:
        """Process the callback and return the redirect location."""
        try:
            await self._connect(code, state, error)
        except _CallbackFailure as failure:
            return integrations_redirect(self._app_url, failure.code)
        except Exception as e:
            # The browser must always land back in the app
            logger.error(f"[oauth] Unexpected error in callback: {e}", exc_info=True)
            return integrations_redirect(self._app_url, CallbackError.UNEXPECTED_ERROR)
        return integrations_redirect(self._app_url)

    async def _connect(self, code: str | None, state: str | None, error: str | None) -> None:
        if error:
            logger.error(f"[oauth] Monday.com returned error: {error}")
            raise _CallbackFailure(CallbackError.OAUTH_DENIED)
        if not code or not state:
            logger.error("[oauth] Missing code or state parameter")
            raise _CallbackFailure(CallbackError.MISSING_PARAMETERS)

        user_id = state
        token = await self._exchange(code)
        me = await self._identify(token.access_token)

        integration = UserIntegration(
            user_id=user_id,
            integration_type="monday",
            monday_account_id=me.account.id,
            monday_user_id=me.id,
            account_name=me.account.name,
            workspace_name=me.account.name,
            access_token=encrypt_token(token.access_token, self._encryption_key),
            status=IntegrationStatus.CONNECTED,
            scopes=token.scopes,
            connected_at=datetime.now(UTC),
        )
        try:
            await self._repo.upsert_integration(integration)
        except StoreError as e:
            logger.error(f"[oauth] Failed to store integration: {e}")
            raise _CallbackFailure(CallbackError.DATABASE_ERROR) from e

        logger.info(
            f"[oauth] Connected Monday.com account '{me.account.name}' "
            f"({me.account.id}) for user {user_id}"
        )

    async def _exchange(self, code: str) -> OAuthToken:
        try:
            return await self._oauth.exchange_code(code)
        except IntegrationError as e:
            logger.error(f"[oauth] Token exchange failed: {e}")
            raise _CallbackFailure(CallbackError.TOKEN_EXCHANGE_FAILED) from e

    async def _identify(self, access_token: str) -> MondayMe:
        client = self._monday_factory(access_token)
        try:
            return await client.get_me()
        except IntegrationError as e:
            logger.error(f"[oauth] Monday.com me query failed: {e}")
            raise _CallbackFailure(CallbackError.MONDAY_API_ERROR) from e
        finally:
            await client.close()

    async def disconnect(self, user_id: str, account_id: str | None = None) -> int:
        count = await self._repo.set_integration_status(
            user_id, IntegrationStatus.DISCONNECTED, account_id
        )
        logger.info(f"[oauth] Disconnected {count} Monday.com integration(s) for user {user_id}")
        return count

    async def list_integrations(self, user_id: str) -> list[UserIntegration]:
        return await self._repo.list_integrations(user_id)

    async def connection_status(self, user_id: str, error: str | None = None) -> OAuthConnection:
        """
        Current connection state for the integrations page.

        `error` is the code the callback redirect carried back to the app;
        it is reported only when no account is connected. Unknown codes are
        reported as unexpected_error.
        """
        connection = OAuthConnection()
        integration = await self._repo.get_connected_integration(user_id)
        if integration is not None:
            connection.start()
            connection.complete(integration.monday_account_id, integration.account_name)
        elif error:
            known = {e.value for e in CallbackError}
            connection.start()
            connection.fail(error if error in known else CallbackError.UNEXPECTED_ERROR.value)
        return connection
