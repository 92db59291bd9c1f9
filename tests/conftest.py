"""
Pytest configuration and fixtures for MondayEase tests.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
import pytest

# Add the repository root to path for imports
# This allows `from mondayease.services import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from mondayease.config import AppSettings  # noqa: E402
from mondayease.integrations.monday.schemas import (  # noqa: E402
    BoardItems,
    ColumnValue,
    MondayColumn,
    MondayItem,
)
from mondayease.security.tokens import encrypt_token  # noqa: E402
from mondayease.storage import InMemoryStore, Repository  # noqa: E402
from mondayease.storage.schemas import (  # noqa: E402
    BoardConfig,
    MemberRole,
    MemberStatus,
    Organization,
    OrganizationMember,
    UserIntegration,
    UserProfile,
)

JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"
ENCRYPTION_KEY = "test-encryption-key"
OWNER_TOKEN = "monday-owner-token"
ACCOUNT_ID = "acct-1"
BOARD_ID = "1001"


# =============================================================================
# Builders
# =============================================================================


def make_token(
    user_id: str,
    email: str | None = None,
    *,
    secret: str = JWT_SECRET,
    audience: str = "authenticated",
    expires_in: int = 3600,
    **metadata,
) -> str:
    """Sign an access token the way the auth provider does."""
    now = datetime.now(UTC)
    claims = {
        "sub": user_id,
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "user_metadata": metadata,
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(user_id: str, email: str | None = None, **metadata) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, email, **metadata)}"}


def make_item(
    item_id: str,
    name: str,
    client: str | None = None,
    status: str | None = None,
    due: str | None = None,
    status_color: str | None = None,
) -> MondayItem:
    """A board row with client (text), status and due date columns."""
    values = [
        ColumnValue(id="client", type="text", text=client),
        ColumnValue(
            id="status",
            type="status",
            text=status,
            label=status,
            label_style={"color": status_color} if status_color else None,
        ),
        ColumnValue(id="due", type="date", text=due, value=None),
    ]
    return MondayItem(id=item_id, name=name, column_values=values)


def make_board(items: list[MondayItem], board_id: str = BOARD_ID, name: str = "Projects") -> BoardItems:
    return BoardItems(
        board_id=board_id,
        board_name=name,
        columns=[
            MondayColumn(id="client", title="Client", type="text"),
            MondayColumn(id="status", title="Status", type="status"),
            MondayColumn(id="due", title="Due", type="date"),
        ],
        items=items,
    )


def techcorp_board() -> BoardItems:
    """Three rows whose client column reads TechCorp, Acme, TechCorp."""
    return make_board([
        make_item("1", "Website redesign", client="TechCorp", status="Working on it"),
        make_item("2", "Logo refresh", client="Acme", status="Done"),
        make_item("3", "API migration", client="TechCorp", status="Stuck"),
    ])


# =============================================================================
# Fake Monday.com client
# =============================================================================


class FakeMondayClient:
    """Stands in for MondayClient; serves canned boards."""

    def __init__(self, boards=None, remote_boards=None, users=None, me=None, error=None):
        self.boards: dict[str, BoardItems] = boards or {}
        self.remote_boards = remote_boards or []
        self.users = users or []
        self.me = me
        self.error = error
        self.closed = 0

    async def get_board_items(self, board_id: str):
        if self.error:
            raise self.error
        return self.boards.get(str(board_id))

    async def list_boards(self):
        if self.error:
            raise self.error
        return self.remote_boards

    async def list_users(self):
        if self.error:
            raise self.error
        return self.users

    async def get_me(self):
        if self.error:
            raise self.error
        return self.me

    async def close(self):
        self.closed += 1


class FakeMondayFactory:
    """Records the tokens clients are built with."""

    def __init__(self, client: FakeMondayClient):
        self.client = client
        self.tokens: list[str] = []

    def __call__(self, token: str) -> FakeMondayClient:
        self.tokens.append(token)
        return self.client


# =============================================================================
# Tenant
# =============================================================================


@dataclass
class Tenant:
    organization: Organization
    owner: OrganizationMember
    admin: OrganizationMember
    member: OrganizationMember
    config: BoardConfig
    extras: dict = field(default_factory=dict)


async def seed_tenant(repo: Repository, *, connect_monday: bool = True) -> Tenant:
    """One organization with an owner, an admin, a member and one board config."""
    organization = Organization(id="org-1", name="Acme Agency", slug="acme-agency", owner_id="user-owner")
    await repo.save_organization(organization)

    now = datetime.now(UTC)
    owner = OrganizationMember(
        id="m-owner", organization_id="org-1", user_id="user-owner",
        email="owner@acme.test", display_name="Olive Owner",
        role=MemberRole.OWNER, status=MemberStatus.ACTIVE, invited_at=now, joined_at=now,
    )
    admin = OrganizationMember(
        id="m-admin", organization_id="org-1", user_id="user-admin",
        email="admin@acme.test", display_name="Ada Admin",
        role=MemberRole.ADMIN, status=MemberStatus.ACTIVE,
        invited_at=now + timedelta(seconds=1), joined_at=now,
    )
    member = OrganizationMember(
        id="m-member", organization_id="org-1", user_id="user-member",
        email="member@acme.test", display_name="Max Member",
        role=MemberRole.MEMBER, status=MemberStatus.ACTIVE,
        invited_at=now + timedelta(seconds=2), joined_at=now,
    )
    for m in (owner, admin, member):
        await repo.insert_member(m)
        await repo.save_profile(UserProfile(id=m.user_id, email=m.email, full_name=m.display_name))

    if connect_monday:
        await repo.upsert_integration(
            UserIntegration(
                user_id="user-owner",
                monday_account_id=ACCOUNT_ID,
                account_name="Acme Monday",
                workspace_name="Acme Monday",
                access_token=encrypt_token(OWNER_TOKEN, ENCRYPTION_KEY),
                connected_at=now,
            )
        )

    config = BoardConfig(
        id="cfg-1",
        organization_id="org-1",
        monday_board_id=BOARD_ID,
        board_name="Projects",
        filter_column_id="client",
        filter_column_name="Client",
        visible_columns=["client", "status"],
        monday_account_id=ACCOUNT_ID,
    )
    await repo.insert_board_config(config)

    return Tenant(organization=organization, owner=owner, admin=admin, member=member, config=config)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings():
    return AppSettings(
        jwt_secret=JWT_SECRET,
        encryption_key=ENCRYPTION_KEY,
        app_url="https://app.mondayease.test",
        site_url="https://app.mondayease.test",
        email_hook_secret="whsec_dGVzdC1ob29rLXNlY3JldA==",
        monday_client_id="client-123",
        monday_client_secret="shh",
        monday_redirect_uri="https://api.mondayease.test/api/v1/monday/oauth/callback",
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def repo(store):
    return Repository(store)


@pytest.fixture
def tenant(repo):
    """
    Seeded tenant for route tests.

    Async tests call `await seed_tenant(repo)` themselves instead, so no
    second event loop is started next to the test's own.
    """
    return asyncio.run(seed_tenant(repo))


@pytest.fixture
def monday_client():
    return FakeMondayClient(boards={BOARD_ID: techcorp_board()})


@pytest.fixture
def monday_factory(monday_client):
    return FakeMondayFactory(monday_client)


@pytest.fixture
def webhook_client():
    from unittest.mock import AsyncMock, MagicMock

    client = MagicMock()
    client.post = AsyncMock(return_value={"ok": True})
    client.close = AsyncMock()
    return client


@pytest.fixture
def email_client():
    from unittest.mock import AsyncMock, MagicMock

    client = MagicMock()
    client.send_invite_email = AsyncMock(return_value="email-1")
    client.send_auth_email = AsyncMock(return_value="email-2")
    client.send_password_reset_email = AsyncMock(return_value="email-3")
    client.close = AsyncMock()
    return client


@pytest.fixture
def auth_admin_client():
    from unittest.mock import AsyncMock, MagicMock

    client = MagicMock()
    client.generate_recovery_link = AsyncMock(return_value="https://auth.mondayease.test/verify?token=rec-1")
    client.close = AsyncMock()
    return client


@pytest.fixture
def api(settings, repo, monday_factory, webhook_client, email_client, auth_admin_client):
    """TestClient with storage and upstream clients swapped for fakes."""
    from fastapi.testclient import TestClient

    from mondayease.app import dependencies
    from mondayease.app.main import app

    app.dependency_overrides[dependencies.get_settings] = lambda: settings
    app.dependency_overrides[dependencies.get_repository] = lambda: repo
    app.dependency_overrides[dependencies.get_monday_factory] = lambda: monday_factory
    app.dependency_overrides[dependencies.get_webhook_client] = lambda: webhook_client
    app.dependency_overrides[dependencies.get_email_client] = lambda: email_client
    app.dependency_overrides[dependencies.get_auth_admin_client] = lambda: auth_admin_client

    client = TestClient(app, follow_redirects=False)
    yield client
    app.dependency_overrides.clear()
