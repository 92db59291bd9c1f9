"""
MondayEase service layer.

Business rules on top of the repository and the upstream clients:

    services/
    ├── access.py        # Row filtering and column projection
    ├── monday.py        # Stored token lookup
    ├── tasks.py         # Member task lists
    ├── views.py         # Custom views and view data
    ├── slugs.py         # Slug generation
    ├── boards.py        # Board configs and remote boards
    ├── members.py       # Members and invitations
    ├── clients.py       # Clients and share-link dashboards
    ├── workflows.py     # Workflow execution
    ├── oauth.py         # Monday.com OAuth connection
    ├── auth_email.py    # Auth provider email hook
    └── presentation.py  # Stats, kanban and timeline summaries
"""

from mondayease.services.access import parse_filter_values, project_columns, visible_rows
from mondayease.services.boards import BoardService
from mondayease.services.clients import ClientService
from mondayease.services.members import MemberService
from mondayease.services.monday import MondayTokens
from mondayease.services.oauth import ConnectionState, OAuthConnection, OAuthService
from mondayease.services.slugs import slugify, unique_slug
from mondayease.services.tasks import TaskService
from mondayease.services.views import ViewService
from mondayease.services.workflows import WorkflowService

__all__ = [
    "BoardService",
    "ClientService",
    "ConnectionState",
    "MemberService",
    "MondayTokens",
    "OAuthConnection",
    "OAuthService",
    "TaskService",
    "ViewService",
    "WorkflowService",
    "parse_filter_values",
    "project_columns",
    "slugify",
    "unique_slug",
    "visible_rows",
]
