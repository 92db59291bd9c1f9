"""
Tests for the Monday.com OAuth connection flow.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from conftest import ENCRYPTION_KEY, FakeMondayClient, FakeMondayFactory, auth_headers
from mondayease.errors import InvalidTransitionError
from mondayease.integrations.base import IntegrationError
from mondayease.integrations.monday import MondayMe, OAuthToken
from mondayease.integrations.monday.schemas import MondayAccount
from mondayease.security.tokens import decrypt_token
from mondayease.services.oauth import (
    CallbackError,
    ConnectionState,
    OAuthConnection,
    OAuthService,
    integrations_redirect,
)
from mondayease.storage import StoreError

APP_URL = "https://app.mondayease.test"

ME = MondayMe(id="mu-7", name="Olive", account=MondayAccount(id="acct-9", name="Beta Studio"))


def make_oauth(token="fresh-token", error=None):
    oauth = MagicMock()
    oauth.authorize_url = MagicMock(return_value="https://auth.monday.com/oauth2/authorize?x=1")
    oauth.exchange_code = AsyncMock(
        return_value=OAuthToken(access_token=token, scope="boards:read boards:write"),
        side_effect=error,
    )
    oauth.close = AsyncMock()
    return oauth


def service(repo, oauth=None, client=None):
    factory = FakeMondayFactory(client or FakeMondayClient(me=ME))
    return OAuthService(repo, oauth or make_oauth(), factory, APP_URL, ENCRYPTION_KEY), factory


def query_of(location: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(location).query).items()}


# =============================================================================
# Connection state
# =============================================================================


class TestOAuthConnection:
    """Tests for the client-visible connection state machine."""

    def test_connect_flow(self):
        """Test disconnected -> connecting -> connected."""
        connection = OAuthConnection()
        connection.start()
        connection.complete("acct-9", "Beta Studio")

        assert connection.state == ConnectionState.CONNECTED
        assert connection.account_id == "acct-9"
        assert connection.history == [ConnectionState.DISCONNECTED, ConnectionState.CONNECTING]

    def test_retry_after_error(self):
        """Test an errored connection can start again."""
        connection = OAuthConnection()
        connection.start()
        connection.fail("oauth_denied")
        assert connection.error == "oauth_denied"

        connection.start()
        assert connection.state == ConnectionState.CONNECTING
        assert connection.error is None

    def test_disconnect_from_anywhere(self):
        """Test disconnect is allowed from every state and clears the account."""
        connection = OAuthConnection()
        connection.start()
        connection.complete("acct-9")
        connection.disconnect()
        assert connection.state == ConnectionState.DISCONNECTED
        assert connection.account_id is None

    def test_cannot_complete_without_start(self):
        """Test completing a disconnected connection raises."""
        with pytest.raises(InvalidTransitionError):
            OAuthConnection().complete("acct-9")

    def test_cannot_start_twice(self):
        """Test starting while connecting raises."""
        connection = OAuthConnection()
        connection.start()
        with pytest.raises(InvalidTransitionError):
            connection.start()


# =============================================================================
# Callback
# =============================================================================


class TestCallback:
    """Tests for OAuthService.handle_callback."""

    def test_redirect_shapes(self):
        """Test success and failure redirect URLs."""
        assert integrations_redirect(APP_URL + "/") == f"{APP_URL}/integrations?success=true"
        assert integrations_redirect(APP_URL, CallbackError.OAUTH_DENIED) == (
            f"{APP_URL}/integrations?success=false&error=oauth_denied"
        )

    @pytest.mark.asyncio
    async def test_success_stores_encrypted_token(self, repo):
        """Test a good callback stores the account connection."""
        oauth_service, factory = service(repo)

        location = await oauth_service.handle_callback("code-1", "user-owner")

        assert query_of(location) == {"success": "true"}
        assert factory.tokens == ["fresh-token"]
        assert factory.client.closed == 1

        integration = await repo.get_connected_integration("user-owner", "acct-9")
        assert integration.account_name == "Beta Studio"
        assert integration.monday_user_id == "mu-7"
        assert integration.scopes == ["boards:read", "boards:write"]
        assert integration.access_token != "fresh-token"
        assert decrypt_token(integration.access_token, ENCRYPTION_KEY) == "fresh-token"

    @pytest.mark.asyncio
    async def test_reconnect_upserts(self, repo):
        """Test connecting the same account twice keeps one row."""
        oauth_service, _ = service(repo)
        await oauth_service.handle_callback("code-1", "user-owner")
        await oauth_service.handle_callback("code-2", "user-owner")

        assert len(await repo.list_integrations("user-owner")) == 1

    @pytest.mark.asyncio
    async def test_denied(self, repo):
        """Test an error parameter short-circuits."""
        oauth = make_oauth()
        oauth_service, _ = service(repo, oauth)

        location = await oauth_service.handle_callback("code", "user", error="access_denied")

        assert query_of(location) == {"success": "false", "error": "oauth_denied"}
        oauth.exchange_code.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code, state", [(None, "user"), ("code", None), ("", "")])
    async def test_missing_parameters(self, repo, code, state):
        """Test a missing code or state."""
        oauth_service, _ = service(repo)
        location = await oauth_service.handle_callback(code, state)
        assert query_of(location)["error"] == "missing_parameters"

    @pytest.mark.asyncio
    async def test_token_exchange_failed(self, repo):
        """Test a rejected code."""
        oauth = make_oauth(error=IntegrationError("invalid_grant", "monday-oauth", status_code=400))
        oauth_service, _ = service(repo, oauth)

        location = await oauth_service.handle_callback("bad", "user-owner")
        assert query_of(location)["error"] == "token_exchange_failed"

    @pytest.mark.asyncio
    async def test_monday_api_error(self, repo):
        """Test a failing me query."""
        client = FakeMondayClient(error=IntegrationError("Unauthorized", "monday", status_code=401))
        oauth_service, _ = service(repo, client=client)

        location = await oauth_service.handle_callback("code", "user-owner")
        assert query_of(location)["error"] == "monday_api_error"
        assert client.closed == 1

    @pytest.mark.asyncio
    async def test_database_error(self, repo):
        """Test a failing store write."""
        oauth_service, _ = service(repo)
        with patch.object(repo, "upsert_integration", AsyncMock(side_effect=StoreError("down"))):
            location = await oauth_service.handle_callback("code", "user-owner")
        assert query_of(location)["error"] == "database_error"

    @pytest.mark.asyncio
    async def test_unexpected_error(self, repo):
        """Test anything else still redirects."""
        oauth = make_oauth(error=RuntimeError("boom"))
        oauth_service, _ = service(repo, oauth)

        location = await oauth_service.handle_callback("code", "user-owner")
        assert query_of(location)["error"] == "unexpected_error"

    @pytest.mark.asyncio
    async def test_disconnect(self, repo):
        """Test disconnect marks rows disconnected."""
        oauth_service, _ = service(repo)
        await oauth_service.handle_callback("code", "user-owner")

        assert await oauth_service.disconnect("user-owner") == 1
        assert await repo.get_connected_integration("user-owner") is None


class TestConnectionStatus:
    """Tests for OAuthService.connection_status."""

    @pytest.mark.asyncio
    async def test_connected_after_callback(self, repo):
        """Test a stored connection reports connected with its account."""
        oauth_service, _ = service(repo)
        await oauth_service.handle_callback("code", "user-owner")

        connection = await oauth_service.connection_status("user-owner")

        assert connection.to_dict() == {
            "state": "connected",
            "account_id": "acct-9",
            "account_name": "Beta Studio",
            "error": None,
        }
        assert connection.history == [ConnectionState.DISCONNECTED, ConnectionState.CONNECTING]

    @pytest.mark.asyncio
    async def test_disconnected(self, repo):
        """Test a user without a connection is disconnected."""
        oauth_service, _ = service(repo)
        connection = await oauth_service.connection_status("user-owner")
        assert connection.state == ConnectionState.DISCONNECTED
        assert connection.history == []

    @pytest.mark.asyncio
    async def test_failed_callback_reports_error(self, repo):
        """Test the callback's error code is reported as the error state."""
        oauth_service, _ = service(repo)
        location = await oauth_service.handle_callback(None, None, error="access_denied")

        connection = await oauth_service.connection_status("user-owner", query_of(location)["error"])

        assert connection.state == ConnectionState.ERROR
        assert connection.error == "oauth_denied"

    @pytest.mark.asyncio
    async def test_unknown_error_code(self, repo):
        """Test codes the callback never emits collapse to unexpected_error."""
        oauth_service, _ = service(repo)
        connection = await oauth_service.connection_status("user-owner", "<script>")
        assert connection.error == "unexpected_error"

    @pytest.mark.asyncio
    async def test_connection_wins_over_stale_error(self, repo):
        """Test an earlier failure does not hide a live connection."""
        oauth_service, _ = service(repo)
        await oauth_service.handle_callback("code", "user-owner")

        connection = await oauth_service.connection_status("user-owner", "token_exchange_failed")

        assert connection.state == ConnectionState.CONNECTED
        assert connection.error is None

    @pytest.mark.asyncio
    async def test_disconnected_after_disconnect(self, repo):
        """Test disconnecting every account reports disconnected again."""
        oauth_service, _ = service(repo)
        await oauth_service.handle_callback("code", "user-owner")
        await oauth_service.disconnect("user-owner")

        connection = await oauth_service.connection_status("user-owner")
        assert connection.state == ConnectionState.DISCONNECTED


# =============================================================================
# Routes
# =============================================================================


@pytest.fixture
def oauth_api(api):
    """The api client with the OAuth client swapped for a mock."""
    from mondayease.app import dependencies
    from mondayease.app.main import app

    oauth = make_oauth()
    app.dependency_overrides[dependencies.get_oauth_client] = lambda: oauth
    return api


class TestOAuthRoutes:
    """Tests for the connection endpoints."""

    def test_authorize_url(self, oauth_api):
        """Test the authorize URL carries the caller as state."""
        response = oauth_api.get(
            "/api/v1/monday/oauth/authorize-url", headers=auth_headers("user-owner")
        )
        assert response.status_code == 200
        assert response.json()["url"].startswith("https://auth.monday.com/")

    def test_callback_redirects(self, oauth_api, repo, monday_client):
        """Test the callback answers 302 into the app."""
        monday_client.me = ME

        response = oauth_api.get(
            "/api/v1/monday/oauth/callback", params={"code": "c", "state": "user-owner"}
        )

        assert response.status_code == 302
        assert response.headers["location"] == f"{APP_URL}/integrations?success=true"
        assert asyncio.run(repo.get_connected_integration("user-owner")) is not None

    def test_callback_error_redirects(self, oauth_api):
        """Test failures also redirect, with an error code."""
        response = oauth_api.get("/api/v1/monday/oauth/callback", params={"error": "denied"})
        assert response.status_code == 302
        assert query_of(response.headers["location"])["error"] == "oauth_denied"

    def test_list_and_disconnect(self, oauth_api, tenant):
        """Test listing hides tokens and disconnect reports a count."""
        headers = auth_headers("user-owner")

        integrations = oauth_api.get("/api/v1/integrations", headers=headers).json()["integrations"]
        assert [i["monday_account_id"] for i in integrations] == ["acct-1"]
        assert "access_token" not in integrations[0]

        response = oauth_api.delete(
            "/api/v1/integrations/monday", params={"account_id": "acct-1"}, headers=headers
        )
        assert response.json() == {"success": True, "disconnected": 1}

    def test_status(self, oauth_api, tenant):
        """Test the status endpoint reports the caller's connection."""
        response = oauth_api.get("/api/v1/monday/oauth/status", headers=auth_headers("user-owner"))
        assert response.status_code == 200
        assert response.json() == {
            "state": "connected",
            "account_id": "acct-1",
            "account_name": "Acme Monday",
            "error": None,
        }

        response = oauth_api.get(
            "/api/v1/monday/oauth/status",
            params={"error": "monday_api_error"},
            headers=auth_headers("user-member"),
        )
        assert response.json()["state"] == "error"
        assert response.json()["error"] == "monday_api_error"

    def test_status_requires_auth(self, oauth_api):
        """Test the status endpoint needs a session."""
        response = oauth_api.get("/api/v1/monday/oauth/status")
        assert response.status_code == 401
