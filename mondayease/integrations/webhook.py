"""
Outbound workflow webhook client.

Workflow templates point at an automation endpoint (n8n, Zapier, ...).
Posting is not idempotent, so nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mondayease.integrations.base import ClientConfig, IntegrationClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WebhookConfig(ClientConfig):
    timeout: float = 60.0
    max_retries: int = 0


class WebhookClient(IntegrationClient):
    """POSTs JSON payloads to absolute webhook URLs."""

    def __init__(self, config: WebhookConfig | None = None):
        super().__init__(config or WebhookConfig())

    @property
    def name(self) -> str:
        return "webhook"

    def _auth_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    async def post(self, url: str, payload: dict[str, Any]) -> Any:
        """
        POST `payload` and return the decoded response body.

        A body that is not JSON is returned as {"response": <text>}.

        Raises:
            IntegrationError: On a non-2xx status or a transport failure.
        """
        response = await self._request("POST", url, json=payload)
        try:
            return response.json()
        except ValueError:
            return {"response": response.text}
