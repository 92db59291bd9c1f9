"""
Transactional email via Resend.

Usage:
    from mondayease.integrations.email import EmailClient, EmailConfig

    client = EmailClient(EmailConfig(api_key="re_xxx"))
    await client.send_invite_email("ada@example.com", "Ada", "Acme")
"""

from mondayease.integrations.email.client import EmailClient, EmailConfig

__all__ = ["EmailClient", "EmailConfig"]
