"""
Configuration Schemas for MondayEase.

Security:
    Sensitive fields use SecretStr to prevent accidental logging
    of credentials. Access the value with `.get_secret_value()`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class AppSettings(BaseModel):
    """
    Application settings model.

    Built from MONDAYEASE_* environment variables by
    mondayease.app.dependencies.get_settings().
    """

    model_config = ConfigDict(extra="ignore")

    # Service identity
    service_name: str = "mondayease"
    environment: str = "development"
    debug: bool = False

    # Storage
    storage_backend: str = Field("memory", description="'memory' or 'mongodb'")
    mongodb_url: SecretStr = Field(default=SecretStr("mongodb://localhost:27017"))
    mongodb_database: str = "mondayease"

    # Auth (BaaS-issued access tokens are HS256 JWTs)
    jwt_secret: SecretStr = Field(default=SecretStr(""), description="JWT signing secret")
    jwt_audience: str = "authenticated"
    client_token_ttl_seconds: int = Field(60 * 60 * 24, ge=60)

    # Monday.com
    monday_client_id: str = ""
    monday_client_secret: SecretStr = Field(default=SecretStr(""))
    monday_redirect_uri: str = ""
    monday_api_url: str = "https://api.monday.com"
    monday_auth_url: str = "https://auth.monday.com"
    monday_api_version: str = "2024-10"
    monday_scopes: str = "boards:read,boards:write"

    # Stored access tokens are AES-GCM encrypted when a key is set
    encryption_key: SecretStr | None = None

    # Email (Resend)
    resend_api_key: SecretStr = Field(default=SecretStr(""))
    email_from: str = "MondayEase <noreply@mondayease.com>"
    email_hook_secret: SecretStr = Field(default=SecretStr(""))

    # Auth provider admin API (member password recovery); falls back to site_url
    auth_url: str = ""
    auth_service_key: SecretStr = Field(default=SecretStr(""))

    # Public URLs
    app_url: str = "https://ai-sprint.mondayease.com"
    site_url: str = "https://ai-sprint.mondayease.com"
