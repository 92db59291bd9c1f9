"""
API routers, mounted under /api/v1.
"""

from mondayease.app.api.boards import router as boards_router
from mondayease.app.api.clients import router as clients_router
from mondayease.app.api.hooks import router as hooks_router
from mondayease.app.api.members import router as members_router
from mondayease.app.api.oauth import router as oauth_router
from mondayease.app.api.tasks import router as tasks_router
from mondayease.app.api.views import router as views_router
from mondayease.app.api.workflows import router as workflows_router

__all__ = [
    "boards_router",
    "clients_router",
    "hooks_router",
    "members_router",
    "oauth_router",
    "tasks_router",
    "views_router",
    "workflows_router",
]
