"""
MondayEase Integrations Layer.

Clients for the third-party services the backend talks to. All of them
share the retry and error mapping in base.py.

Directory Structure:
    integrations/
    ├── base.py           # IntegrationClient, ClientConfig, error types
    ├── monday/           # Monday.com GraphQL and OAuth
    │   ├── client.py
    │   └── schemas.py
    ├── email/            # Resend
    │   ├── client.py
    │   └── templates.py
    ├── auth_admin.py     # Auth provider admin API (recovery links)
    └── webhook.py        # Workflow webhooks
"""

from mondayease.integrations.base import (
    AuthenticationError,
    ClientConfig,
    IntegrationClient,
    IntegrationError,
    MondayAPIError,
    MondayIntegrationError,
    RateLimitError,
)

__all__ = [
    "AuthenticationError",
    "ClientConfig",
    "IntegrationClient",
    "IntegrationError",
    "MondayAPIError",
    "MondayIntegrationError",
    "RateLimitError",
]
