"""
Tests for workflow templates and executions.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import ENCRYPTION_KEY, OWNER_TOKEN, auth_headers, seed_tenant
from mondayease.errors import AccessDeniedError, NotFoundError
from mondayease.integrations.base import IntegrationError
from mondayease.security.sessions import AuthenticatedUser
from mondayease.services import MondayTokens, WorkflowService
from mondayease.storage.schemas import ExecutionStatus, WorkflowTemplate

MEMBER = AuthenticatedUser(id="user-member")
WEBHOOK_URL = "https://hooks.example.test/run/42"


def make_template(**kwargs) -> WorkflowTemplate:
    fields = {"id": "tpl-1", "name": "Weekly report", "webhook_url": WEBHOOK_URL}
    fields.update(kwargs)
    return WorkflowTemplate(**fields)


def make_webhook(result=None, error=None):
    webhook = MagicMock()
    webhook.post = AsyncMock(return_value=result, side_effect=error)
    return webhook


def service(repo, webhook):
    return WorkflowService(repo, MondayTokens(repo, ENCRYPTION_KEY), webhook)


class TestExecute:
    """Tests for WorkflowService.execute."""

    @pytest.mark.asyncio
    async def test_success(self, repo):
        """Test a successful run is recorded and counted."""
        await seed_tenant(repo)
        await repo.save_template(make_template())
        webhook = make_webhook(result={"rows": 3})

        outcome = await service(repo, webhook).execute(MEMBER, "tpl-1", {"week": "12"})

        assert outcome.success
        assert outcome.result == {"rows": 3}

        execution = await repo.get_execution(outcome.execution_id)
        assert execution.status == ExecutionStatus.SUCCESS.value
        assert execution.organization_id == "org-1"
        assert execution.input_params == {"week": "12"}
        assert execution.output_result == {"rows": 3}
        assert execution.started_at is not None
        assert execution.completed_at is not None
        assert execution.execution_time_ms is not None

        template = await repo.get_template("tpl-1")
        assert template.execution_count == 1

    @pytest.mark.asyncio
    async def test_payload(self, repo):
        """Test the webhook receives inputs, context and the owner's token."""
        await seed_tenant(repo)
        await repo.save_template(make_template())
        webhook = make_webhook(result={})

        outcome = await service(repo, webhook).execute(MEMBER, "tpl-1", {"week": "12"})

        url, payload = webhook.post.call_args.args
        assert url == WEBHOOK_URL
        assert payload == {
            "week": "12",
            "execution_id": outcome.execution_id,
            "organization_id": "org-1",
            "user_id": "user-member",
            "monday_token": OWNER_TOKEN,
        }

    @pytest.mark.asyncio
    async def test_runs_without_monday(self, repo):
        """Test workflows run with a null token when Monday.com is not connected."""
        await seed_tenant(repo, connect_monday=False)
        await repo.save_template(make_template())
        webhook = make_webhook(result={})

        outcome = await service(repo, webhook).execute(MEMBER, "tpl-1")

        assert outcome.success
        assert webhook.post.call_args.args[1]["monday_token"] is None

    @pytest.mark.asyncio
    async def test_webhook_status_failure(self, repo):
        """Test a failing status is recorded and reported, not raised."""
        await seed_tenant(repo)
        await repo.save_template(make_template())
        webhook = make_webhook(error=IntegrationError("Server error", "webhook", status_code=500))

        outcome = await service(repo, webhook).execute(MEMBER, "tpl-1")

        assert not outcome.success
        assert outcome.error == "Workflow failed"

        execution = await repo.get_execution(outcome.execution_id)
        assert execution.status == ExecutionStatus.FAILED.value
        assert execution.error_message == "Webhook failed: 500"
        assert (await repo.get_template("tpl-1")).execution_count == 0

    @pytest.mark.asyncio
    async def test_webhook_transport_failure(self, repo):
        """Test a transport failure records the error message."""
        await seed_tenant(repo)
        await repo.save_template(make_template())
        webhook = make_webhook(error=IntegrationError("Connection refused", "webhook"))

        outcome = await service(repo, webhook).execute(MEMBER, "tpl-1")

        execution = await repo.get_execution(outcome.execution_id)
        assert execution.error_message == "Connection refused"

    @pytest.mark.asyncio
    async def test_inactive_template(self, repo):
        """Test inactive templates are not found."""
        await seed_tenant(repo)
        await repo.save_template(make_template(is_active=False))

        with pytest.raises(NotFoundError):
            await service(repo, make_webhook()).execute(MEMBER, "tpl-1")

    @pytest.mark.asyncio
    async def test_no_membership(self, repo):
        """Test callers without a membership get 403."""
        await seed_tenant(repo)
        await repo.save_template(make_template())
        webhook = make_webhook()

        with pytest.raises(AccessDeniedError):
            await service(repo, webhook).execute(AuthenticatedUser(id="stranger"), "tpl-1")
        webhook.post.assert_not_called()


class TestWorkflowRoutes:
    """Tests for the workflow endpoints."""

    def test_execute(self, api, repo, tenant, webhook_client):
        """Test a successful execution over HTTP."""
        asyncio.run(repo.save_template(make_template()))

        response = api.post(
            "/api/v1/workflows/execute",
            json={"templateId": "tpl-1", "inputParams": {"week": "12"}},
            headers=auth_headers("user-member"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["result"] == {"ok": True}
        assert body["executionId"]
        webhook_client.post.assert_awaited_once()

    def test_execute_failure(self, api, repo, tenant, webhook_client):
        """Test a failing webhook gives 500 with the execution id."""
        asyncio.run(repo.save_template(make_template()))
        webhook_client.post.side_effect = IntegrationError("Bad gateway", "webhook", status_code=502)

        response = api.post(
            "/api/v1/workflows/execute",
            json={"templateId": "tpl-1"},
            headers=auth_headers("user-member"),
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Workflow failed"
        execution = asyncio.run(repo.get_execution(body["executionId"]))
        assert execution.error_message == "Webhook failed: 502"

    def test_execute_unknown_template(self, api, tenant):
        """Test an unknown template gives 404."""
        response = api.post(
            "/api/v1/workflows/execute",
            json={"templateId": "missing"},
            headers=auth_headers("user-member"),
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Template not found"}

    def test_templates_hide_webhook_url(self, api, repo, tenant):
        """Test listed templates never expose the webhook URL."""
        asyncio.run(repo.save_template(make_template()))
        asyncio.run(repo.save_template(make_template(id="tpl-2", name="Old", is_active=False)))

        response = api.get("/api/v1/workflows/templates", headers=auth_headers("user-member"))

        assert response.status_code == 200
        templates = response.json()["templates"]
        assert [t["id"] for t in templates] == ["tpl-1"]
        assert "webhook_url" not in templates[0]

    def test_executions(self, api, repo, tenant):
        """Test recent executions of the caller's organization are listed."""
        asyncio.run(repo.save_template(make_template()))
        api.post(
            "/api/v1/workflows/execute",
            json={"templateId": "tpl-1"},
            headers=auth_headers("user-member"),
        )

        response = api.get("/api/v1/workflows/executions", headers=auth_headers("user-owner"))

        assert response.status_code == 200
        executions = response.json()["executions"]
        assert len(executions) == 1
        assert executions[0]["status"] == "success"
