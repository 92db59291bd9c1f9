"""
Member task endpoints.

Tasks are the rows of a member's assigned boards, filtered down to the
rows their filter values allow and the columns each config exposes.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query

from mondayease.app.auth import get_current_user
from mondayease.app.dependencies import get_task_service
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services import TaskService
from mondayease.services.presentation import task_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/member-tasks", tags=["tasks"])


@router.get(
    "",
    summary="List the caller's tasks",
    responses={
        200: {"description": "Tasks, or an empty list with a message"},
        403: {"description": "Non-owner asked for another member's tasks"},
        404: {"description": "Member not found"},
    },
)
async def list_member_tasks(
    member_id: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    """
    Tasks across every active board assigned to the caller.

    Owners may pass member_id to see another member's tasks.
    """
    result = await service.member_tasks(user, member_id)
    return result.model_dump(mode="json", exclude_none=True)


@router.get("/summary", summary="Task stats, kanban columns and timeline")
async def member_task_summary(
    member_id: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    result = await service.member_tasks(user, member_id)
    summary = task_summary(result.tasks, datetime.now(UTC).date())
    if result.message:
        summary["message"] = result.message
    return summary
