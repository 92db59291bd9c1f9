"""
Row schemas for MondayEase storage.

Each model maps to one external table (one MongoDB collection of the same
name). Table names are part of the external schema and are not owned by
this service; see TABLES.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from mondayease.errors import InvalidTransitionError


def _utc_now() -> datetime:
    """Get current UTC time with timezone awareness."""
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid4())


# =============================================================================
# Table names
# =============================================================================


class Table:
    """External table names."""

    ORGANIZATIONS = "organizations"
    ORGANIZATION_MEMBERS = "organization_members"
    CLIENTS = "clients"
    BOARD_CONFIGS = "board_configs"
    MEMBER_BOARD_ACCESS = "member_board_access"
    CLIENT_BOARD_ACCESS = "client_board_access"
    CUSTOM_BOARD_VIEWS = "custom_board_views"
    WORKFLOW_TEMPLATES = "workflow_templates"
    WORKFLOW_EXECUTIONS = "workflow_executions"
    USER_INTEGRATIONS = "user_integrations"
    USER_PROFILES = "user_profiles"


TABLES = tuple(
    value for name, value in vars(Table).items() if not name.startswith("_")
)


# =============================================================================
# Enums
# =============================================================================


class MemberRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class MemberStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    DISABLED = "disabled"


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class IntegrationStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ExecutionStatus(str, Enum):
    """
    Workflow execution status.

    Moves forward only: pending -> running -> success | failed.
    A pending execution may also fail before it starts running.
    """

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.SUCCESS, ExecutionStatus.FAILED)

    def can_transition_to(self, target: ExecutionStatus) -> bool:
        return target in _EXECUTION_TRANSITIONS[self]


_EXECUTION_TRANSITIONS: dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
    ExecutionStatus.PENDING: frozenset({ExecutionStatus.RUNNING, ExecutionStatus.FAILED}),
    ExecutionStatus.RUNNING: frozenset({ExecutionStatus.SUCCESS, ExecutionStatus.FAILED}),
    ExecutionStatus.SUCCESS: frozenset(),
    ExecutionStatus.FAILED: frozenset(),
}


# =============================================================================
# Tenancy
# =============================================================================


class Organization(BaseModel):
    """Tenant boundary. Owns members, board configs, clients and views."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=_new_id)
    name: str
    slug: str
    owner_id: str = Field(..., description="User id of the owner")
    monday_workspace_id: str | None = None
    max_members: int | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class OrganizationMember(BaseModel):
    """A user's membership in one organization."""

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str = Field(default_factory=_new_id)
    organization_id: str
    user_id: str | None = Field(None, description="Null until an invite is accepted")
    email: str
    display_name: str | None = None
    role: MemberRole = MemberRole.MEMBER
    status: MemberStatus = MemberStatus.PENDING
    invited_at: datetime | None = None
    joined_at: datetime | None = None

    @property
    def is_owner(self) -> bool:
        return self.role == MemberRole.OWNER.value

    @property
    def can_manage(self) -> bool:
        return self.role in (MemberRole.OWNER.value, MemberRole.ADMIN.value)


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Auth user id")
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    user_type: str | None = None
    primary_organization_id: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class Client(BaseModel):
    """External viewer authenticated by share slug and password."""

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str = Field(default_factory=_new_id)
    organization_id: str
    company_name: str
    contact_name: str
    contact_email: str
    phone: str | None = None
    client_type: str | None = None
    notes: str | None = None
    slug: str
    password_hash: str = Field(..., repr=False)
    status: ClientStatus = ClientStatus.ACTIVE
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def public_dict(self) -> dict[str, Any]:
        """Serialize without the password hash."""
        return self.model_dump(mode="json", exclude={"password_hash"})


# =============================================================================
# Integrations
# =============================================================================


class UserIntegration(BaseModel):
    """
    OAuth connection to a Monday.com account.

    Keyed by (user_id, integration_type, monday_account_id), so one user
    may hold several simultaneous account connections.
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str = Field(default_factory=_new_id)
    user_id: str
    integration_type: str = "monday"
    monday_account_id: str | None = None
    monday_user_id: str | None = None
    account_name: str | None = None
    workspace_name: str | None = None
    access_token: str = Field(..., repr=False, description="Possibly AES-GCM encrypted")
    refresh_token: str | None = Field(None, repr=False)
    status: IntegrationStatus = IntegrationStatus.CONNECTED
    scopes: list[str] | None = None
    connected_at: datetime | None = None
    last_used_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def public_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"access_token", "refresh_token"})


# =============================================================================
# Boards and access
# =============================================================================


class BoardConfig(BaseModel):
    """
    Organization-scoped binding to one remote board.

    filter_column_id names the discriminator column; visible_columns is the
    column allowlist (empty means every column is visible).
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=_new_id)
    organization_id: str
    monday_board_id: str
    board_name: str
    filter_column_id: str | None = None
    filter_column_name: str | None = None
    filter_column_type: str | None = None
    visible_columns: list[str] = Field(default_factory=list)
    is_active: bool = True
    monday_account_id: str | None = None
    workspace_name: str | None = None
    target_audience: str | None = Field(None, description="team, clients or both")
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def is_active_for(self, account_id: str | None) -> bool:
        """Legacy configs (no account) are active for any account."""
        if not self.is_active:
            return False
        return self.monday_account_id is None or self.monday_account_id == account_id


class MemberBoardAccess(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=_new_id)
    member_id: str
    board_config_id: str
    filter_value: str = Field("", description="Comma-separated discriminator values")
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class ClientBoardAccess(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=_new_id)
    client_id: str
    board_config_id: str
    filter_value: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# =============================================================================
# Custom views
# =============================================================================


class ViewColumn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    type: str = "text"
    width: int | None = None


class ViewSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    show_item_name: bool = True
    row_height: str = "default"
    enable_search: bool = True
    enable_filters: bool = True
    default_sort_column: str | None = None
    default_sort_order: str = "asc"
    view_mode: str = "table"


class CustomBoardView(BaseModel):
    """Named, slugged projection of one board."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=_new_id)
    organization_id: str
    name: str = Field(..., min_length=1)
    slug: str
    description: str | None = None
    icon: str | None = None
    monday_board_id: str
    monday_board_name: str | None = None
    selected_columns: list[ViewColumn] = Field(default_factory=list)
    settings: ViewSettings = Field(default_factory=ViewSettings)
    display_order: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @property
    def column_ids(self) -> list[str]:
        return [c.id for c in self.selected_columns]


# =============================================================================
# Workflows
# =============================================================================


class WorkflowTemplate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=_new_id)
    name: str
    description: str | None = None
    category: str = "general"
    icon: str | None = None
    input_schema: dict[str, Any] = Field(default_factory=dict)
    webhook_url: str = Field(..., repr=False)
    is_active: bool = True
    is_premium: bool = False
    execution_count: int = 0
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def public_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"webhook_url"})


class WorkflowExecution(BaseModel):
    """Append-only record of one template invocation."""

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str = Field(default_factory=_new_id)
    template_id: str | None = None
    organization_id: str | None = None
    user_id: str | None = None
    status: ExecutionStatus = ExecutionStatus.PENDING
    input_params: dict[str, Any] = Field(default_factory=dict)
    output_result: Any = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    execution_time_ms: int | None = None
    created_at: datetime = Field(default_factory=_utc_now)

    @property
    def current_status(self) -> ExecutionStatus:
        return ExecutionStatus(self.status)

    def advance(self, target: ExecutionStatus, **fields: Any) -> dict[str, Any]:
        """
        Move to `target`, applying `fields` alongside the status change.

        Returns the changed fields so the caller can persist them.

        Raises:
            InvalidTransitionError: If the move is not forward, or the
                execution is already terminal.
        """
        current = self.current_status
        if not current.can_transition_to(target):
            raise InvalidTransitionError(current.value, target.value)

        changes: dict[str, Any] = {"status": target.value, **fields}
        if target == ExecutionStatus.RUNNING and self.started_at is None:
            changes.setdefault("started_at", _utc_now())
        if target.is_terminal:
            completed_at = changes.setdefault("completed_at", _utc_now())
            if self.started_at is not None or "started_at" in changes:
                started = changes.get("started_at", self.started_at)
                changes.setdefault(
                    "execution_time_ms",
                    int((completed_at - started).total_seconds() * 1000),
                )

        for key, value in changes.items():
            setattr(self, key, value)
        return changes
