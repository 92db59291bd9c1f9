"""
Base classes for MondayEase upstream clients.

Every third-party HTTP API (Monday.com GraphQL, Monday.com OAuth, Resend,
workflow webhooks) is reached through an IntegrationClient subclass so
that error mapping and retry behave the same everywhere.

Retry Strategy:
    - Retryable errors: timeouts, network and protocol errors, 429, 5xx
    - Non-retryable: other 4xx, GraphQL errors
    - Backoff: exponential with jitter, Retry-After honored, capped at 30s
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class IntegrationError(Exception):
    """Base exception for upstream failures."""

    code = "INTEGRATION_ERROR"

    def __init__(
        self,
        message: str,
        integration: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.integration = integration
        self.status_code = status_code
        self.response_body = response_body
        self.retryable = retryable

    def __str__(self) -> str:
        text = f"[{self.integration}] {self.message}"
        if self.status_code:
            text += f" (status={self.status_code})"
        return text


class AuthenticationError(IntegrationError):
    """Upstream rejected our credentials (401/403)."""

    code = "UPSTREAM_AUTH_ERROR"

    def __init__(self, message: str, integration: str, **kwargs):
        super().__init__(message, integration, retryable=False, **kwargs)


class RateLimitError(IntegrationError):
    """Upstream rate limit hit (429)."""

    code = "RATE_LIMITED"

    def __init__(
        self,
        message: str,
        integration: str,
        *,
        retry_after: float | None = None,
        **kwargs,
    ):
        super().__init__(message, integration, retryable=True, **kwargs)
        self.retry_after = retry_after


class NotFoundError(IntegrationError):
    """Upstream resource does not exist (404)."""

    code = "UPSTREAM_NOT_FOUND"

    def __init__(self, message: str, integration: str, **kwargs):
        super().__init__(message, integration, retryable=False, **kwargs)


class ValidationError(IntegrationError):
    """Upstream refused the request body (400/422)."""

    code = "UPSTREAM_VALIDATION_ERROR"

    def __init__(self, message: str, integration: str, **kwargs):
        super().__init__(message, integration, retryable=False, **kwargs)


class MondayAPIError(IntegrationError):
    """
    Monday.com answered with GraphQL errors or a failing status.

    The message is the first GraphQL error message when there is one.
    """

    code = "MONDAY_API_ERROR"

    def __init__(self, message: str = "Monday.com API error", **kwargs):
        super().__init__(message or "Monday.com API error", "monday", **kwargs)

    @classmethod
    def from_errors(cls, errors: list[dict[str, Any]] | None) -> MondayAPIError:
        first = (errors or [{}])[0] or {}
        return cls(first.get("message") or "Monday.com API error")


class MondayIntegrationError(IntegrationError):
    """The user has no connected Monday.com integration."""

    code = "MONDAY_NOT_CONFIGURED"

    def __init__(self, message: str = "Monday.com integration not configured"):
        super().__init__(message, "monday", retryable=False)


def error_for_response(response: httpx.Response, integration: str) -> IntegrationError:
    """Map a failing HTTP response to the matching IntegrationError."""
    status = response.status_code
    body = response.text

    if status in (401, 403):
        return AuthenticationError(
            f"Authentication failed: {body}", integration,
            status_code=status, response_body=body,
        )
    if status == 429:
        retry_after = response.headers.get("Retry-After")
        try:
            delay = float(retry_after) if retry_after else None
        except ValueError:
            delay = None
        return RateLimitError(
            "Rate limit exceeded", integration,
            status_code=status, response_body=body, retry_after=delay,
        )
    if status == 404:
        return NotFoundError(
            f"Resource not found: {body}", integration,
            status_code=status, response_body=body,
        )
    if status in (400, 422):
        return ValidationError(
            f"Validation error: {body}", integration,
            status_code=status, response_body=body,
        )
    return IntegrationError(
        f"Request failed: {body}", integration,
        status_code=status, response_body=body, retryable=status >= 500,
    )


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Connection settings shared by every upstream client."""

    base_url: str = ""
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 0.5
    max_backoff: float = 30.0
    log_requests: bool = False


# =============================================================================
# Base Client
# =============================================================================


class IntegrationClient(ABC):
    """
    Shared HTTP plumbing for upstream clients.

    Subclasses provide `name` and `_auth_headers()`. The underlying
    httpx.AsyncClient is created on first use and reused until close().
    """

    def __init__(self, config: ClientConfig):
        self.config = config
        self._client: httpx.AsyncClient | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Short integration name used in logs and errors."""
        ...

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        ...

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers={"Accept": "application/json", **self._auth_headers()},
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Raises:
            IntegrationError: On a non-retryable failure, or once retries
                are exhausted.
        """
        attempt = 0
        while True:
            try:
                return await self._send(method, url, json=json, params=params, headers=headers)
            except IntegrationError as e:
                if not e.retryable or attempt >= self.config.max_retries:
                    if e.retryable:
                        logger.warning(
                            f"[{self.name}] Giving up on {method} {url} "
                            f"after {attempt + 1} attempts"
                        )
                    raise
                delay = self._backoff(attempt, e)
                attempt += 1
                logger.info(
                    f"[{self.name}] Retry {attempt}/{self.config.max_retries} "
                    f"for {method} {url} in {delay:.2f}s"
                )
                await asyncio.sleep(delay)

    def _backoff(self, attempt: int, error: IntegrationError) -> float:
        if isinstance(error, RateLimitError) and error.retry_after:
            return min(error.retry_after, self.config.max_backoff)
        delay = self.config.retry_delay * (2 ** attempt)
        delay += delay * 0.25 * (2 * random.random() - 1)
        return min(delay, self.config.max_backoff)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        client = await self._get_client()
        if self.config.log_requests:
            logger.debug(f"[{self.name}] {method} {url}")

        try:
            response = await client.request(
                method, url, json=json, params=params, headers=headers
            )
        except httpx.TimeoutException as e:
            raise IntegrationError(
                f"Request timeout: {e}", self.name, retryable=True
            ) from e
        except httpx.NetworkError as e:
            raise IntegrationError(
                f"Network error: {e}", self.name, retryable=True
            ) from e
        except httpx.TransportError as e:
            # Dropped connections are worth another attempt; a bad URL or proxy is not
            raise IntegrationError(
                f"Transport error: {e}", self.name, retryable=isinstance(e, httpx.ProtocolError)
            ) from e

        if not response.is_success:
            raise error_for_response(response, self.name)
        return response

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
