"""
Pydantic schemas for the Monday.com API.

Only the fields MondayEase reads are modelled; everything else in the
GraphQL payloads is ignored.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class _MondayModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("id", mode="before", check_fields=False)
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        # GraphQL ids arrive as strings, but tests and older payloads use ints
        return str(v) if isinstance(v, int) else v


# =============================================================================
# Accounts and users
# =============================================================================


class MondayAccount(_MondayModel):
    id: str
    name: str = ""


class MondayMe(_MondayModel):
    """The authenticated Monday.com user and their account."""

    id: str
    name: str = ""
    email: str | None = None
    account: MondayAccount


class MondayUser(_MondayModel):
    id: str
    name: str = ""
    email: str | None = None


class OAuthToken(BaseModel):
    """Token endpoint response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., repr=False)
    token_type: str = "Bearer"
    scope: str | None = None

    @property
    def scopes(self) -> list[str] | None:
        if not self.scope:
            return None
        return [s.strip() for s in self.scope.replace(" ", ",").split(",") if s.strip()]


# =============================================================================
# Boards
# =============================================================================


class LabelStyle(BaseModel):
    model_config = ConfigDict(extra="ignore")

    color: str | None = None


class MondayColumn(_MondayModel):
    id: str
    title: str = ""
    type: str = "text"


class MondayBoard(_MondayModel):
    """Board summary as listed for board configuration."""

    id: str
    name: str = ""
    workspace_name: str | None = Field(
        None, validation_alias=AliasChoices("workspace", "workspace_name")
    )
    columns: list[MondayColumn] = Field(default_factory=list)

    @field_validator("workspace_name", mode="before")
    @classmethod
    def _workspace(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v.get("name")
        return v


class ColumnValue(_MondayModel):
    """
    One cell of an item.

    `label` and `label_style` are only present for status columns.
    """

    id: str
    text: str | None = None
    type: str | None = None
    value: str | None = None
    label: str | None = None
    label_style: LabelStyle | None = None

    @property
    def display_text(self) -> str:
        """Text shown to users: text, else label, trimmed."""
        return (self.text or self.label or "").strip()

    @property
    def parsed_value(self) -> Any:
        if not self.value:
            return None
        try:
            return json.loads(self.value)
        except (TypeError, ValueError):
            return self.value


class MondayItem(_MondayModel):
    id: str
    name: str = ""
    created_at: str | None = None
    updated_at: str | None = None
    column_values: list[ColumnValue] = Field(default_factory=list)

    def column(self, column_id: str) -> ColumnValue | None:
        for cv in self.column_values:
            if cv.id == column_id:
                return cv
        return None


class BoardItems(BaseModel):
    """All items of one board together with its column definitions."""

    board_id: str
    board_name: str = ""
    columns: list[MondayColumn] = Field(default_factory=list)
    items: list[MondayItem] = Field(default_factory=list)

    def column_map(self) -> dict[str, MondayColumn]:
        return {c.id: c for c in self.columns}
