"""
Monday.com API clients for MondayEase.

MondayClient talks to the GraphQL endpoint on behalf of one access token.
MondayOAuthClient builds authorize URLs and exchanges authorization codes.

Usage:
    async with MondayClient(MondayConfig(access_token=token)) as client:
        me = await client.get_me()
        board = await client.get_board_items("1234567890")

API Reference:
    https://developer.monday.com/api-reference/docs
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from mondayease.integrations.base import (
    ClientConfig,
    IntegrationClient,
    IntegrationError,
    MondayAPIError,
)
from mondayease.integrations.monday.schemas import (
    BoardItems,
    MondayBoard,
    MondayItem,
    MondayMe,
    MondayUser,
    OAuthToken,
)

logger = logging.getLogger(__name__)

MONDAY_API_URL = "https://api.monday.com"
MONDAY_AUTH_URL = "https://auth.monday.com"
DEFAULT_API_VERSION = "2024-10"

ITEMS_PAGE_SIZE = 500

_COLUMN_VALUE_FIELDS = """
    id
    text
    type
    value
    ... on StatusValue {
        label
        label_style { color }
    }
"""

_ITEM_FIELDS = f"""
    id
    name
    created_at
    updated_at
    column_values {{ {_COLUMN_VALUE_FIELDS} }}
"""

ME_QUERY = "query { me { id name email account { id name } } }"

USERS_QUERY = "query { users { id name email } }"

BOARDS_QUERY = """
query ($limit: Int!, $page: Int!) {
    boards(limit: $limit, page: $page, state: active) {
        id
        name
        workspace { name }
        columns { id title type }
    }
}
"""

BOARD_ITEMS_QUERY = f"""
query ($boardIds: [ID!], $limit: Int!) {{
    boards(ids: $boardIds) {{
        id
        name
        columns {{ id title type }}
        items_page(limit: $limit) {{
            cursor
            items {{ {_ITEM_FIELDS} }}
        }}
    }}
}}
"""

NEXT_ITEMS_QUERY = f"""
query ($cursor: String!, $limit: Int!) {{
    next_items_page(cursor: $cursor, limit: $limit) {{
        cursor
        items {{ {_ITEM_FIELDS} }}
    }}
}}
"""


def bearer(token: str) -> str:
    """Monday.com requires the Bearer prefix; add it when missing."""
    return token if token.startswith("Bearer ") else f"Bearer {token}"


# =============================================================================
# GraphQL client
# =============================================================================


@dataclass(frozen=True, slots=True)
class MondayConfig(ClientConfig):
    """Configuration for MondayClient."""

    access_token: str = ""
    base_url: str = MONDAY_API_URL
    api_version: str = DEFAULT_API_VERSION

    def __post_init__(self):
        if not self.access_token:
            raise ValueError("Monday.com access token is required")


class MondayClient(IntegrationClient):
    """
    Async GraphQL client for one Monday.com access token.

    Every call goes to POST /v2. A payload carrying `errors` raises
    MondayAPIError with the first error message.
    """

    def __init__(self, config: MondayConfig):
        super().__init__(config)
        self._config: MondayConfig = config

    @property
    def name(self) -> str:
        return "monday"

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": bearer(self._config.access_token),
            "API-Version": self._config.api_version,
            "Content-Type": "application/json",
        }

    async def query(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Run a GraphQL query and return its `data` object.

        Raises:
            MondayAPIError: If the response carries GraphQL errors.
            IntegrationError: On HTTP failures.
        """
        response = await self._request(
            "POST", "/v2", json={"query": query, "variables": variables or {}}
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise MondayAPIError("Invalid JSON from Monday.com") from e

        if payload.get("errors"):
            logger.error(f"[monday] GraphQL errors: {payload['errors']}")
            raise MondayAPIError.from_errors(payload["errors"])
        if payload.get("error_message"):
            logger.error(f"[monday] API error: {payload['error_message']}")
            raise MondayAPIError(payload["error_message"])

        return payload.get("data") or {}

    # =========================================================================
    # Operations
    # =========================================================================

    async def get_me(self) -> MondayMe:
        data = await self.query(ME_QUERY)
        if not data.get("me"):
            raise MondayAPIError("Monday.com returned no user")
        return MondayMe(**data["me"])

    async def list_users(self) -> list[MondayUser]:
        data = await self.query(USERS_QUERY)
        return [MondayUser(**u) for u in data.get("users") or []]

    async def list_boards(self, page_size: int = 100) -> list[MondayBoard]:
        """List active boards with their columns, following page numbers."""
        boards: list[MondayBoard] = []
        page = 1
        while True:
            data = await self.query(BOARDS_QUERY, {"limit": page_size, "page": page})
            batch = data.get("boards") or []
            boards.extend(MondayBoard(**b) for b in batch)
            if len(batch) < page_size:
                return boards
            page += 1

    async def get_board_items(
        self,
        board_id: str,
        page_size: int = ITEMS_PAGE_SIZE,
    ) -> BoardItems | None:
        """
        Fetch every item of a board.

        Follows next_items_page cursors until exhausted. Returns None if the
        board does not exist or is not visible to this token.
        """
        data = await self.query(
            BOARD_ITEMS_QUERY, {"boardIds": [str(board_id)], "limit": page_size}
        )
        boards = data.get("boards") or []
        if not boards:
            logger.info(f"[monday] Board {board_id} not found")
            return None

        board = boards[0]
        items_page = board.get("items_page") or {}
        items = [MondayItem(**i) for i in items_page.get("items") or []]
        cursor = items_page.get("cursor")

        while cursor:
            data = await self.query(NEXT_ITEMS_QUERY, {"cursor": cursor, "limit": page_size})
            next_page = data.get("next_items_page") or {}
            items.extend(MondayItem(**i) for i in next_page.get("items") or [])
            cursor = next_page.get("cursor")

        logger.debug(f"[monday] Board {board_id}: {len(items)} items")
        return BoardItems(
            board_id=str(board["id"]),
            board_name=board.get("name") or "",
            columns=board.get("columns") or [],
            items=items,
        )


# =============================================================================
# OAuth client
# =============================================================================


@dataclass(frozen=True, slots=True)
class MondayOAuthConfig(ClientConfig):
    """Configuration for MondayOAuthClient."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""
    base_url: str = MONDAY_AUTH_URL
    scopes: str = ""
    # Authorization codes are single use
    max_retries: int = 0


class MondayOAuthClient(IntegrationClient):
    """Authorization-code flow against auth.monday.com."""

    def __init__(self, config: MondayOAuthConfig):
        super().__init__(config)
        self._config: MondayOAuthConfig = config

    @property
    def name(self) -> str:
        return "monday-oauth"

    def _auth_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "state": state,
        }
        if self._config.scopes:
            params["scopes"] = self._config.scopes.replace(",", " ")
        return f"{self._config.base_url}/oauth2/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str) -> OAuthToken:
        """
        Exchange an authorization code for an access token.

        Raises:
            IntegrationError: If the token endpoint rejects the code.
        """
        response = await self._request(
            "POST",
            "/oauth2/token",
            json={
                "client_id": self._config.client_id,
                "client_secret": self._config.client_secret,
                "code": code,
                "redirect_uri": self._config.redirect_uri,
            },
        )
        payload = response.json()
        if not payload.get("access_token"):
            raise IntegrationError("Token response missing access_token", self.name)
        return OAuthToken(**payload)
