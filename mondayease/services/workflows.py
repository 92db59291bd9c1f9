"""
Workflow execution.

Templates point at an automation webhook. Executing one records a
WorkflowExecution, posts the caller's inputs (plus context and the
owner's Monday.com token) to the webhook, and records the outcome.
Webhook failures are recorded and reported, never raised.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mondayease.errors import AccessDeniedError, NotFoundError
from mondayease.integrations.base import IntegrationError
from mondayease.integrations.webhook import WebhookClient
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services.monday import MondayTokens
from mondayease.storage import Repository
from mondayease.storage.schemas import (
    ExecutionStatus,
    WorkflowExecution,
    WorkflowTemplate,
)

logger = logging.getLogger(__name__)


class ExecutionOutcome(BaseModel):
    """Result of one execute call."""

    success: bool
    execution_id: str
    result: Any = None
    error: str | None = None


class ExecuteRequest(BaseModel):
    template_id: str = Field(..., alias="templateId")
    input_params: dict[str, Any] = Field(default_factory=dict, alias="inputParams")

    model_config = ConfigDict(populate_by_name=True)


class WorkflowService:
    def __init__(
        self,
        repo: Repository,
        tokens: MondayTokens,
        webhook: WebhookClient,
    ):
        self._repo = repo
        self._tokens = tokens
        self._webhook = webhook

    async def list_templates(self) -> list[WorkflowTemplate]:
        return await self._repo.list_templates(active_only=True)

    async def list_executions(self, user: AuthenticatedUser, limit: int = 50) -> list[WorkflowExecution]:
        member = await self._repo.get_active_membership(user.id)
        if member is None:
            raise AccessDeniedError("No active organization membership")
        return await self._repo.list_executions(member.organization_id, limit=limit)

    async def execute(
        self,
        user: AuthenticatedUser,
        template_id: str,
        input_params: dict[str, Any] | None = None,
    ) -> ExecutionOutcome:
        """
        Run a template's webhook and record the execution.

        Raises:
            AccessDeniedError: If the caller has no active membership.
            NotFoundError: If the template is missing or inactive.
        """
        params = dict(input_params or {})

        member = await self._repo.get_active_membership(user.id)
        if member is None:
            raise AccessDeniedError("No active organization membership")

        template = await self._repo.get_template(template_id)
        if template is None:
            raise NotFoundError("Template not found")

        organization = await self._repo.get_organization(member.organization_id)
        if organization is None:
            raise NotFoundError("Organization not found")

        # Some workflows do not touch Monday.com, so the token is optional
        resolved = await self._tokens.resolve_optional(
            organization.owner_id, params.get("monday_account_id") or None
        )

        execution = WorkflowExecution(
            template_id=template.id,
            organization_id=member.organization_id,
            user_id=user.id,
            input_params=params,
        )
        await self._repo.insert_execution(execution)
        await self._repo.update_execution(
            execution.id, execution.advance(ExecutionStatus.RUNNING)
        )

        payload = {
            **params,
            "execution_id": execution.id,
            "organization_id": member.organization_id,
            "user_id": user.id,
            "monday_token": resolved.token if resolved else None,
        }

        try:
            result = await self._webhook.post(template.webhook_url, payload)
        except IntegrationError as e:
            message = f"Webhook failed: {e.status_code}" if e.status_code else e.message
            await self._repo.update_execution(
                execution.id,
                execution.advance(ExecutionStatus.FAILED, error_message=message),
            )
            logger.error(f"[workflows] Execution {execution.id} failed: {e}")
            return ExecutionOutcome(
                success=False, execution_id=execution.id, error="Workflow failed"
            )

        await self._repo.update_execution(
            execution.id,
            execution.advance(ExecutionStatus.SUCCESS, output_result=result),
        )
        await self._repo.increment_execution_count(template)
        logger.info(
            f"[workflows] Execution {execution.id} succeeded in {execution.execution_time_ms}ms"
        )
        return ExecutionOutcome(success=True, execution_id=execution.id, result=result)
