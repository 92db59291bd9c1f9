"""Credential handling: session tokens, client passwords, stored-token encryption, webhook signatures."""

from mondayease.security.passwords import generate_password, hash_password, verify_password
from mondayease.security.sessions import (
    AuthenticatedUser,
    ClientSession,
    issue_client_token,
    verify_access_token,
    verify_client_token,
)
from mondayease.security.tokens import TokenCipher, decrypt_token, encrypt_token
from mondayease.security.webhooks import WebhookVerificationError

__all__ = [
    "AuthenticatedUser",
    "ClientSession",
    "TokenCipher",
    "WebhookVerificationError",
    "decrypt_token",
    "encrypt_token",
    "generate_password",
    "hash_password",
    "issue_client_token",
    "verify_access_token",
    "verify_client_token",
    "verify_password",
]
