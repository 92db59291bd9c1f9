"""
Workflow endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from mondayease.app.auth import get_current_user
from mondayease.app.dependencies import get_workflow_service
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services import WorkflowService
from mondayease.services.workflows import ExecuteRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post(
    "/execute",
    summary="Run a workflow template",
    responses={
        200: {"description": "Webhook succeeded"},
        404: {"description": "Template not found or inactive"},
        500: {"description": "Webhook failed; the execution is recorded as failed"},
    },
)
async def execute_workflow(
    request: ExecuteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
) -> Any:
    outcome = await service.execute(user, request.template_id, request.input_params)
    if not outcome.success:
        return JSONResponse(
            status_code=500,
            content={"error": outcome.error, "executionId": outcome.execution_id},
        )
    return {"success": True, "executionId": outcome.execution_id, "result": outcome.result}


@router.get("/templates", summary="Active workflow templates")
async def list_workflow_templates(
    user: AuthenticatedUser = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
) -> dict[str, Any]:
    templates = await service.list_templates()
    return {"templates": [t.public_dict() for t in templates]}


@router.get("/executions", summary="Recent executions in the caller's organization")
async def list_workflow_executions(
    limit: int = Query(50, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
) -> dict[str, Any]:
    executions = await service.list_executions(user, limit)
    return {"executions": [e.model_dump(mode="json") for e in executions]}
