"""
Tests for the upstream HTTP clients.

Tests cover:
- MondayClient headers, GraphQL error handling and pagination
- MondayOAuthClient authorize URL and code exchange
- IntegrationClient retry and error mapping
- Resend, auth provider admin and webhook clients
"""

from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from mondayease.integrations.auth_admin import AuthAdminClient, AuthAdminConfig
from mondayease.integrations.base import (
    AuthenticationError,
    IntegrationError,
    MondayAPIError,
    NotFoundError,
    RateLimitError,
    ValidationError,
    error_for_response,
)
from mondayease.integrations.email import EmailClient, EmailConfig
from mondayease.integrations.monday import (
    MondayClient,
    MondayConfig,
    MondayOAuthClient,
    MondayOAuthConfig,
)
from mondayease.integrations.monday.client import bearer
from mondayease.integrations.webhook import WebhookClient


def graphql(data=None, **extra):
    """A mocked httpx response carrying a GraphQL payload."""
    payload = {"data": data, **extra}
    return MagicMock(json=lambda: payload)


def item_payload(item_id, name):
    return {
        "id": item_id,
        "name": name,
        "column_values": [{"id": "status", "text": "Done", "type": "status", "value": None}],
    }


@pytest.fixture
def monday():
    return MondayClient(MondayConfig(access_token="tok"))


# =============================================================================
# MondayClient
# =============================================================================


class TestMondayConfig:
    """Tests for MondayConfig."""

    def test_requires_token(self):
        """Test that an access token is required."""
        with pytest.raises(ValueError, match="access token is required"):
            MondayConfig(access_token="")

    def test_defaults(self):
        """Test default endpoint and API version."""
        config = MondayConfig(access_token="tok")
        assert config.base_url == "https://api.monday.com"
        assert config.api_version == "2024-10"


class TestMondayClient:
    """Tests for MondayClient."""

    def test_bearer_prefix(self):
        """Test Bearer is added only when missing."""
        assert bearer("abc") == "Bearer abc"
        assert bearer("Bearer abc") == "Bearer abc"

    def test_headers(self, monday):
        """Test auth and version headers."""
        headers = monday._auth_headers()
        assert headers["Authorization"] == "Bearer tok"
        assert headers["API-Version"] == "2024-10"

    @pytest.mark.asyncio
    async def test_query_posts_to_v2(self, monday):
        """Test queries go to POST /v2 with variables."""
        with patch.object(monday, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = graphql({"me": None})
            await monday.query("query { me { id } }", {"x": 1})

            mock_request.assert_called_once_with(
                "POST", "/v2", json={"query": "query { me { id } }", "variables": {"x": 1}}
            )

    @pytest.mark.asyncio
    async def test_graphql_errors_raise(self, monday):
        """Test the first GraphQL error message is surfaced."""
        with patch.object(monday, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = graphql(None, errors=[{"message": "Not authorized"}])
            with pytest.raises(MondayAPIError, match="Not authorized") as exc:
                await monday.query("query { me { id } }")
            assert exc.value.code == "MONDAY_API_ERROR"

    @pytest.mark.asyncio
    async def test_error_without_message(self, monday):
        """Test a bare errors list falls back to a generic message."""
        with patch.object(monday, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = graphql(None, errors=[{}])
            with pytest.raises(MondayAPIError, match="Monday.com API error"):
                await monday.query("query { me { id } }")

    @pytest.mark.asyncio
    async def test_get_me(self, monday):
        """Test me is parsed with its account."""
        with patch.object(monday, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = graphql(
                {"me": {"id": 42, "name": "Ann", "email": "a@b.c", "account": {"id": 7, "name": "Acme"}}}
            )
            me = await monday.get_me()
            assert me.id == "42"
            assert me.account.id == "7"
            assert me.account.name == "Acme"

    @pytest.mark.asyncio
    async def test_get_board_items_follows_cursor(self, monday):
        """Test next_items_page is followed until the cursor runs out."""
        with patch.object(monday, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = [
                graphql({
                    "boards": [{
                        "id": "1001",
                        "name": "Projects",
                        "columns": [{"id": "status", "title": "Status", "type": "status"}],
                        "items_page": {"cursor": "c1", "items": [item_payload("1", "A")]},
                    }]
                }),
                graphql({"next_items_page": {"cursor": "c2", "items": [item_payload("2", "B")]}}),
                graphql({"next_items_page": {"cursor": None, "items": [item_payload("3", "C")]}}),
            ]
            board = await monday.get_board_items("1001")

            assert board.board_name == "Projects"
            assert [i.id for i in board.items] == ["1", "2", "3"]
            assert board.column_map()["status"].title == "Status"
            assert mock_request.call_count == 3
            assert mock_request.call_args.kwargs["json"]["variables"]["cursor"] == "c2"

    @pytest.mark.asyncio
    async def test_missing_board(self, monday):
        """Test an unknown board gives None."""
        with patch.object(monday, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = graphql({"boards": []})
            assert await monday.get_board_items("999") is None

    @pytest.mark.asyncio
    async def test_list_boards_pages(self, monday):
        """Test boards are requested page by page until a short page."""
        with patch.object(monday, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = [
                graphql({"boards": [{"id": 1, "name": "A", "workspace": {"name": "Main"}}, {"id": 2}]}),
                graphql({"boards": [{"id": 3, "name": "C", "workspace": None}]}),
            ]
            boards = await monday.list_boards(page_size=2)

            assert [b.id for b in boards] == ["1", "2", "3"]
            assert boards[0].workspace_name == "Main"
            assert boards[2].workspace_name is None

    @pytest.mark.asyncio
    async def test_list_users(self, monday):
        """Test workspace users are parsed."""
        with patch.object(monday, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = graphql({"users": [{"id": 5, "name": "Bo", "email": "b@c.d"}]})
            users = await monday.list_users()
            assert users[0].id == "5"


# =============================================================================
# MondayOAuthClient
# =============================================================================


class TestMondayOAuthClient:
    """Tests for the authorization-code flow."""

    @pytest.fixture
    def oauth(self):
        return MondayOAuthClient(
            MondayOAuthConfig(
                client_id="cid",
                client_secret="csecret",
                redirect_uri="https://api.test/callback",
                scopes="boards:read,boards:write",
            )
        )

    def test_authorize_url(self, oauth):
        """Test the URL carries client id, redirect, state and scopes."""
        url = urlparse(oauth.authorize_url("user-1"))
        query = parse_qs(url.query)
        assert f"{url.scheme}://{url.netloc}{url.path}" == "https://auth.monday.com/oauth2/authorize"
        assert query["client_id"] == ["cid"]
        assert query["redirect_uri"] == ["https://api.test/callback"]
        assert query["state"] == ["user-1"]
        assert query["scopes"] == ["boards:read boards:write"]

    def test_no_retries(self, oauth):
        """Test codes are never replayed."""
        assert oauth.config.max_retries == 0

    @pytest.mark.asyncio
    async def test_exchange_code(self, oauth):
        """Test the code is posted with client credentials."""
        with patch.object(oauth, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = MagicMock(
                json=lambda: {"access_token": "new-token", "scope": "boards:read boards:write"}
            )
            token = await oauth.exchange_code("the-code")

            assert token.access_token == "new-token"
            assert token.scopes == ["boards:read", "boards:write"]
            body = mock_request.call_args.kwargs["json"]
            assert body["code"] == "the-code"
            assert body["client_secret"] == "csecret"

    @pytest.mark.asyncio
    async def test_exchange_without_token(self, oauth):
        """Test a response without access_token raises."""
        with patch.object(oauth, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = MagicMock(json=lambda: {"error": "invalid_grant"})
            with pytest.raises(IntegrationError):
                await oauth.exchange_code("bad")


# =============================================================================
# IntegrationClient
# =============================================================================


def http_response(status, text="", headers=None):
    return httpx.Response(status, text=text, headers=headers, request=httpx.Request("POST", "https://x"))


class TestErrorMapping:
    """Tests for error_for_response."""

    @pytest.mark.parametrize(
        "status, error_type, retryable",
        [
            (401, AuthenticationError, False),
            (403, AuthenticationError, False),
            (404, NotFoundError, False),
            (400, ValidationError, False),
            (422, ValidationError, False),
            (429, RateLimitError, True),
            (500, IntegrationError, True),
            (418, IntegrationError, False),
        ],
    )
    def test_status_mapping(self, status, error_type, retryable):
        """Test each status maps to its error type."""
        error = error_for_response(http_response(status, "nope"), "monday")
        assert type(error) is error_type
        assert error.retryable is retryable
        assert error.status_code == status

    def test_retry_after(self):
        """Test Retry-After is parsed."""
        error = error_for_response(http_response(429, headers={"Retry-After": "3"}), "monday")
        assert error.retry_after == 3.0


class TestRetry:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, monday):
        """Test retryable errors are retried with backoff."""
        ok = MagicMock()
        with patch.object(monday, "_send", new_callable=AsyncMock) as mock_send, \
                patch("mondayease.integrations.base.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            mock_send.side_effect = [
                IntegrationError("timeout", "monday", retryable=True),
                RateLimitError("slow down", "monday", retry_after=2.0),
                ok,
            ]
            assert await monday._request("POST", "/v2") is ok
            assert mock_send.call_count == 3
            assert mock_sleep.await_args_list[1].args[0] == 2.0

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self, monday):
        """Test 4xx errors are not retried."""
        with patch.object(monday, "_send", new_callable=AsyncMock) as mock_send:
            mock_send.side_effect = AuthenticationError("bad token", "monday", status_code=401)
            with pytest.raises(AuthenticationError):
                await monday._request("POST", "/v2")
            assert mock_send.call_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, monday):
        """Test retries stop at max_retries."""
        with patch.object(monday, "_send", new_callable=AsyncMock) as mock_send, \
                patch("mondayease.integrations.base.asyncio.sleep", new_callable=AsyncMock):
            mock_send.side_effect = IntegrationError("down", "monday", status_code=503, retryable=True)
            with pytest.raises(IntegrationError):
                await monday._request("POST", "/v2")
            assert mock_send.call_count == monday.config.max_retries + 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, retryable",
        [
            (httpx.ConnectTimeout("timed out"), True),
            (httpx.ConnectError("refused"), True),
            (httpx.RemoteProtocolError("Server disconnected without sending a response"), True),
            (httpx.UnsupportedProtocol("Request URL has an unsupported protocol"), False),
        ],
    )
    async def test_transport_errors_are_mapped(self, monday, error, retryable):
        """Test every httpx transport failure surfaces as an IntegrationError."""
        http = MagicMock(request=AsyncMock(side_effect=error))
        with patch.object(monday, "_get_client", AsyncMock(return_value=http)):
            with pytest.raises(IntegrationError) as exc_info:
                await monday._send("POST", "/v2")

        assert exc_info.value.integration == "monday"
        assert exc_info.value.retryable is retryable
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_dropped_connection_is_retried(self, monday):
        """Test a server that hangs up mid-response gets another attempt."""
        ok = MagicMock(is_success=True)
        http = MagicMock(
            request=AsyncMock(side_effect=[httpx.RemoteProtocolError("Server disconnected"), ok])
        )
        with patch.object(monday, "_get_client", AsyncMock(return_value=http)), \
                patch("mondayease.integrations.base.asyncio.sleep", new_callable=AsyncMock):
            assert await monday._request("POST", "/v2") is ok
        assert http.request.await_count == 2

    def test_backoff_is_capped(self, monday):
        """Test backoff never exceeds max_backoff."""
        error = IntegrationError("x", "monday", retryable=True)
        assert monday._backoff(20, error) == monday.config.max_backoff


# =============================================================================
# Resend and webhooks
# =============================================================================


class TestEmailClient:
    """Tests for the Resend client."""

    def test_requires_api_key(self):
        """Test that an API key is required."""
        with pytest.raises(ValueError, match="API key is required"):
            EmailConfig(api_key="")

    def test_signup_url(self):
        """Test the invite link encodes the email."""
        client = EmailClient(EmailConfig(api_key="re_x", site_url="https://app.test"))
        assert client.signup_url("a+b@c.d") == "https://app.test/auth?mode=signup&email=a%2Bb%40c.d"

    @pytest.mark.asyncio
    async def test_send_invite(self):
        """Test invites are sent from the configured sender."""
        client = EmailClient(EmailConfig(api_key="re_x", sender="Team <team@x.y>"))
        with patch.object(client, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = MagicMock(json=lambda: {"id": "email-1"})
            message_id = await client.send_invite_email("ann@x.y", "Ann", "Acme", "Olive")

            assert message_id == "email-1"
            body = mock_request.call_args.kwargs["json"]
            assert body["from"] == "Team <team@x.y>"
            assert body["to"] == ["ann@x.y"]
            assert "Acme" in body["subject"] or "Acme" in body["html"]

    @pytest.mark.asyncio
    async def test_send_password_reset(self):
        """Test the reset email carries the organization and the recovery link."""
        client = EmailClient(EmailConfig(api_key="re_x"))
        with patch.object(client, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = MagicMock(json=lambda: {"id": "email-3"})
            await client.send_password_reset_email(
                "max@x.y", "Max", "Acme & Co", "https://auth.test/verify?token=r1&type=recovery"
            )

            body = mock_request.call_args.kwargs["json"]
            assert body["subject"] == "Reset Your MondayEase Password"
            assert "Acme &amp; Co" in body["html"]
            assert "https://auth.test/verify?token=r1&amp;type=recovery" in body["html"]


class TestAuthAdminClient:
    """Tests for the auth provider admin client."""

    @pytest.fixture
    def admin(self):
        return AuthAdminClient(AuthAdminConfig(base_url="https://auth.test", service_key="svc"))

    def test_requires_key_and_url(self):
        """Test the service key and base URL are required."""
        with pytest.raises(ValueError, match="service key is required"):
            AuthAdminConfig(base_url="https://auth.test")
        with pytest.raises(ValueError, match="base URL is required"):
            AuthAdminConfig(service_key="svc")

    def test_headers(self, admin):
        """Test the service key is sent as apikey and bearer token."""
        headers = admin._auth_headers()
        assert headers["apikey"] == "svc"
        assert headers["Authorization"] == "Bearer svc"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"action_link": "https://auth.test/verify?token=r1"},
            {"properties": {"action_link": "https://auth.test/verify?token=r1"}},
        ],
    )
    async def test_generate_recovery_link(self, admin, payload):
        """Test the recovery link is read from either response shape."""
        with patch.object(admin, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = MagicMock(json=lambda: payload)
            link = await admin.generate_recovery_link("max@x.y", "https://app.test/auth")

            assert link == "https://auth.test/verify?token=r1"
            assert mock_request.call_args.args == ("POST", "/auth/v1/admin/generate_link")
            assert mock_request.call_args.kwargs["json"] == {
                "type": "recovery",
                "email": "max@x.y",
                "redirect_to": "https://app.test/auth",
            }

    @pytest.mark.asyncio
    async def test_missing_link(self, admin):
        """Test a response without a link raises."""
        with patch.object(admin, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = MagicMock(json=lambda: {"properties": {}})
            with pytest.raises(IntegrationError, match="recovery link"):
                await admin.generate_recovery_link("max@x.y", "https://app.test/auth")


class TestWebhookClient:
    """Tests for workflow webhooks."""

    def test_no_retries(self):
        """Test webhook posts are never retried."""
        assert WebhookClient().config.max_retries == 0

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        """Test text responses are wrapped."""
        client = WebhookClient()
        response = MagicMock(text="accepted")
        response.json.side_effect = ValueError("not json")
        with patch.object(client, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = response
            assert await client.post("https://hooks.test/x", {"a": 1}) == {"response": "accepted"}
