"""
Dependency Injection for MondayEase.

Settings are read once from MONDAYEASE_* environment variables. Storage
and upstream clients are process-wide singletons created on first use;
services are cheap and built per request from those singletons, so tests
can swap any layer with app.dependency_overrides.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from fastapi import Depends

from mondayease.config import AppSettings
from mondayease.integrations.auth_admin import AuthAdminClient, AuthAdminConfig
from mondayease.integrations.email import EmailClient, EmailConfig
from mondayease.integrations.monday import (
    MondayClient,
    MondayConfig,
    MondayOAuthClient,
    MondayOAuthConfig,
)
from mondayease.integrations.webhook import WebhookClient
from mondayease.services import (
    BoardService,
    ClientService,
    MemberService,
    MondayTokens,
    OAuthService,
    TaskService,
    ViewService,
    WorkflowService,
)
from mondayease.services.auth_email import AuthEmailService
from mondayease.services.monday import MondayClientFactory
from mondayease.storage import DocumentStore, InMemoryStore, MongoStore, Repository

logger = logging.getLogger(__name__)


def _env(name: str, default: str = "") -> str:
    return os.getenv(f"MONDAYEASE_{name}", default)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        # Service
        service_name=_env("SERVICE_NAME", "mondayease"),
        environment=_env("ENVIRONMENT", "development"),
        debug=_env("DEBUG", "false").lower() == "true",
        # Storage
        storage_backend=_env("STORAGE_BACKEND", "memory"),
        mongodb_url=_env("MONGODB_URL", "mongodb://localhost:27017"),
        mongodb_database=_env("MONGODB_DATABASE", "mondayease"),
        # Auth
        jwt_secret=_env("JWT_SECRET"),
        jwt_audience=_env("JWT_AUDIENCE", "authenticated"),
        client_token_ttl_seconds=int(_env("CLIENT_TOKEN_TTL_SECONDS", "86400")),
        # Monday.com
        monday_client_id=_env("MONDAY_CLIENT_ID"),
        monday_client_secret=_env("MONDAY_CLIENT_SECRET"),
        monday_redirect_uri=_env("MONDAY_REDIRECT_URI"),
        monday_api_url=_env("MONDAY_API_URL", "https://api.monday.com"),
        monday_auth_url=_env("MONDAY_AUTH_URL", "https://auth.monday.com"),
        monday_api_version=_env("MONDAY_API_VERSION", "2024-10"),
        monday_scopes=_env("MONDAY_SCOPES", "boards:read,boards:write"),
        encryption_key=_env("ENCRYPTION_KEY") or None,
        # Email
        resend_api_key=_env("RESEND_API_KEY"),
        email_from=_env("EMAIL_FROM", "MondayEase <noreply@mondayease.com>"),
        email_hook_secret=_env("EMAIL_HOOK_SECRET"),
        # Auth provider admin
        auth_url=_env("AUTH_URL"),
        auth_service_key=_env("AUTH_SERVICE_KEY"),
        # URLs
        app_url=_env("APP_URL", "https://ai-sprint.mondayease.com"),
        site_url=_env("SITE_URL", "https://ai-sprint.mondayease.com"),
    )


# Global instances (initialized on first access)
_store: DocumentStore | None = None
_repository: Repository | None = None
_oauth_client: MondayOAuthClient | None = None
_email_client: EmailClient | None = None
_webhook_client: WebhookClient | None = None
_auth_admin_client: AuthAdminClient | None = None


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        settings = get_settings()
        if settings.storage_backend == "mongodb":
            _store = MongoStore(
                settings.mongodb_url.get_secret_value(),
                settings.mongodb_database,
            )
        else:
            _store = InMemoryStore()
    return _store


def get_repository() -> Repository:
    global _repository
    if _repository is None:
        _repository = Repository(get_store())
    return _repository


def get_monday_factory() -> MondayClientFactory:
    """Build MondayClient instances for a given access token."""
    settings = get_settings()

    def factory(token: str) -> MondayClient:
        return MondayClient(
            MondayConfig(
                access_token=token,
                base_url=settings.monday_api_url,
                api_version=settings.monday_api_version,
            )
        )

    return factory


def get_oauth_client() -> MondayOAuthClient:
    global _oauth_client
    if _oauth_client is None:
        settings = get_settings()
        _oauth_client = MondayOAuthClient(
            MondayOAuthConfig(
                client_id=settings.monday_client_id,
                client_secret=settings.monday_client_secret.get_secret_value(),
                redirect_uri=settings.monday_redirect_uri,
                base_url=settings.monday_auth_url,
                scopes=settings.monday_scopes,
            )
        )
    return _oauth_client


def get_email_client() -> EmailClient | None:
    """Resend client, or None when no API key is configured."""
    global _email_client
    if _email_client is None:
        settings = get_settings()
        api_key = settings.resend_api_key.get_secret_value()
        if not api_key:
            return None
        _email_client = EmailClient(
            EmailConfig(api_key=api_key, sender=settings.email_from, site_url=settings.site_url)
        )
    return _email_client


def get_webhook_client() -> WebhookClient:
    global _webhook_client
    if _webhook_client is None:
        _webhook_client = WebhookClient()
    return _webhook_client


def get_auth_admin_client() -> AuthAdminClient | None:
    """Auth provider admin client, or None when no service key is configured."""
    global _auth_admin_client
    if _auth_admin_client is None:
        settings = get_settings()
        service_key = settings.auth_service_key.get_secret_value()
        if not service_key:
            return None
        _auth_admin_client = AuthAdminClient(
            AuthAdminConfig(
                base_url=settings.auth_url or settings.site_url,
                service_key=service_key,
            )
        )
    return _auth_admin_client


# =============================================================================
# Services
# =============================================================================


def _encryption_key(settings: AppSettings) -> str | None:
    return settings.encryption_key.get_secret_value() if settings.encryption_key else None


def get_tokens(
    repo: Repository = Depends(get_repository),
    settings: AppSettings = Depends(get_settings),
) -> MondayTokens:
    return MondayTokens(repo, _encryption_key(settings))


def get_task_service(
    repo: Repository = Depends(get_repository),
    tokens: MondayTokens = Depends(get_tokens),
    factory: MondayClientFactory = Depends(get_monday_factory),
) -> TaskService:
    return TaskService(repo, tokens, factory)


def get_view_service(
    repo: Repository = Depends(get_repository),
    tokens: MondayTokens = Depends(get_tokens),
    factory: MondayClientFactory = Depends(get_monday_factory),
) -> ViewService:
    return ViewService(repo, tokens, factory)


def get_board_service(
    repo: Repository = Depends(get_repository),
    tokens: MondayTokens = Depends(get_tokens),
    factory: MondayClientFactory = Depends(get_monday_factory),
) -> BoardService:
    return BoardService(repo, tokens, factory)


def get_workflow_service(
    repo: Repository = Depends(get_repository),
    tokens: MondayTokens = Depends(get_tokens),
    webhook: WebhookClient = Depends(get_webhook_client),
) -> WorkflowService:
    return WorkflowService(repo, tokens, webhook)


def get_oauth_service(
    repo: Repository = Depends(get_repository),
    oauth_client: MondayOAuthClient = Depends(get_oauth_client),
    factory: MondayClientFactory = Depends(get_monday_factory),
    settings: AppSettings = Depends(get_settings),
) -> OAuthService:
    return OAuthService(repo, oauth_client, factory, settings.app_url, _encryption_key(settings))


def get_member_service(
    repo: Repository = Depends(get_repository),
    email: EmailClient | None = Depends(get_email_client),
    auth_admin: AuthAdminClient | None = Depends(get_auth_admin_client),
    settings: AppSettings = Depends(get_settings),
) -> MemberService:
    return MemberService(repo, email, auth_admin=auth_admin, app_url=settings.app_url)


def get_client_service(
    repo: Repository = Depends(get_repository),
    tokens: MondayTokens = Depends(get_tokens),
    factory: MondayClientFactory = Depends(get_monday_factory),
    settings: AppSettings = Depends(get_settings),
) -> ClientService:
    return ClientService(
        repo,
        tokens,
        factory,
        settings.jwt_secret.get_secret_value(),
        settings.client_token_ttl_seconds,
    )


def get_auth_email_service(
    email: EmailClient | None = Depends(get_email_client),
    settings: AppSettings = Depends(get_settings),
) -> AuthEmailService:
    return AuthEmailService(
        email,
        settings.email_hook_secret.get_secret_value(),
        settings.site_url,
    )


# =============================================================================
# Lifecycle
# =============================================================================


async def initialize_services() -> None:
    """Initialize all services on startup."""
    settings = get_settings()
    logger.info(f"Initializing {settings.service_name} ({settings.environment})")

    await get_store().connect()
    get_repository()

    if not settings.jwt_secret.get_secret_value():
        logger.warning("MONDAYEASE_JWT_SECRET is not set; authenticated routes will reject all tokens")
    if get_email_client() is None:
        logger.warning("MONDAYEASE_RESEND_API_KEY is not set; emails will not be sent")
    if get_auth_admin_client() is None:
        logger.warning("MONDAYEASE_AUTH_SERVICE_KEY is not set; member password resets are disabled")
    if settings.encryption_key is None:
        logger.warning("MONDAYEASE_ENCRYPTION_KEY is not set; access tokens are stored in plaintext")


async def shutdown_services() -> None:
    """Cleanup services on shutdown."""
    global _store, _repository, _oauth_client, _email_client, _webhook_client, _auth_admin_client

    for client in (_oauth_client, _email_client, _webhook_client, _auth_admin_client):
        if client is not None:
            await client.close()
    if _store is not None:
        await _store.close()

    _store = None
    _repository = None
    _oauth_client = None
    _email_client = None
    _webhook_client = None
    _auth_admin_client = None
