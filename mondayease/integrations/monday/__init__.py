"""
Monday.com Integration for MondayEase.

- GraphQL reads: current user, boards, board items, workspace users
- OAuth authorization-code flow

Usage:
    from mondayease.integrations.monday import MondayClient, MondayConfig

    client = MondayClient(MondayConfig(access_token=token))
    board = await client.get_board_items("1234567890")
"""

from mondayease.integrations.monday.client import (
    MondayClient,
    MondayConfig,
    MondayOAuthClient,
    MondayOAuthConfig,
    bearer,
)
from mondayease.integrations.monday.schemas import (
    BoardItems,
    ColumnValue,
    MondayBoard,
    MondayColumn,
    MondayItem,
    MondayMe,
    MondayUser,
    OAuthToken,
)

__all__ = [
    "BoardItems",
    "ColumnValue",
    "MondayBoard",
    "MondayClient",
    "MondayColumn",
    "MondayConfig",
    "MondayItem",
    "MondayMe",
    "MondayOAuthClient",
    "MondayOAuthConfig",
    "MondayUser",
    "OAuthToken",
    "bearer",
]
