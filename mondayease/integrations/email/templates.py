"""
Minimal HTML bodies for transactional email.

Each function returns (subject, html).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from html import escape

BRAND_COLOR = "#01cb72"


@dataclass(frozen=True, slots=True)
class AuthEmailCopy:
    subject: str
    title: str
    message: str
    button: str
    footer: str


AUTH_EMAIL_COPY: dict[str, AuthEmailCopy] = {
    "signup": AuthEmailCopy(
        subject="Confirm your email - MondayEase",
        title="Confirm your email",
        message="Thanks for signing up! Please confirm your email address to get started with MondayEase.",
        button="Confirm Email",
        footer="If you didn't create an account, you can safely ignore this email.",
    ),
    "recovery": AuthEmailCopy(
        subject="Reset your password - MondayEase",
        title="Reset your password",
        message="We received a request to reset your password. Click the button below to choose a new password.",
        button="Reset Password",
        footer="If you didn't request a password reset, you can safely ignore this email.",
    ),
    "magiclink": AuthEmailCopy(
        subject="Your login link - MondayEase",
        title="Your login link",
        message="Click the button below to log in to your MondayEase account. This link will expire in 1 hour.",
        button="Log In",
        footer="If you didn't request this link, you can safely ignore this email.",
    ),
    "email_change": AuthEmailCopy(
        subject="Confirm email change - MondayEase",
        title="Confirm email change",
        message="You requested to change your email address. Click the button below to confirm this change.",
        button="Confirm Email Change",
        footer="If you didn't request this change, please contact support immediately.",
    ),
}


def _layout(heading: str, body: str, url: str, button: str, footer: str) -> str:
    year = datetime.now(UTC).year
    url = escape(url, quote=True)
    return (
        "<!DOCTYPE html><html><body style=\"font-family: sans-serif;\">"
        f"<h1>{escape(heading)}</h1>"
        f"{body}"
        f"<p><a href=\"{url}\" style=\"background-color: {BRAND_COLOR}; color: #ffffff; "
        f"padding: 12px 32px; border-radius: 12px; text-decoration: none;\">{escape(button)}</a></p>"
        f"<p>Button not working? Copy and paste this link:<br>{url}</p>"
        f"<p style=\"color: #888888;\">{escape(footer)}<br>&copy; {year} MondayEase.</p>"
        "</body></html>"
    )


def invite_email(
    display_name: str,
    organization_name: str,
    inviter_name: str | None,
    signup_url: str,
) -> tuple[str, str]:
    subject = f"You've been invited to join {organization_name} on MondayEase"
    body = (
        f"<p>Hi <strong>{escape(display_name)}</strong>,</p>"
        f"<p>{escape(inviter_name or 'A team member')} has invited you to join "
        f"<strong style=\"color: {BRAND_COLOR};\">{escape(organization_name)}</strong> on MondayEase.</p>"
    )
    html = _layout(
        "Welcome to the team!",
        body,
        signup_url,
        "Accept Invitation",
        f"This invitation was sent by {organization_name}. "
        "If you didn't expect this email, you can safely ignore it.",
    )
    return subject, html


def auth_email(
    email_type: str,
    email: str,
    confirm_url: str,
    display_name: str | None = None,
) -> tuple[str, str]:
    copy = AUTH_EMAIL_COPY.get(email_type, AUTH_EMAIL_COPY["signup"])
    name = display_name or email.split("@")[0]
    body = (
        f"<p>Hi <strong style=\"color: {BRAND_COLOR};\">{escape(name)}</strong>,</p>"
        f"<p>{escape(copy.message)}</p>"
    )
    return copy.subject, _layout(copy.title, body, confirm_url, copy.button, copy.footer)


def password_reset_email(
    display_name: str,
    organization_name: str,
    recovery_url: str,
) -> tuple[str, str]:
    body = (
        f"<p>Hi {escape(display_name)},</p>"
        f"<p>Your organization admin at <strong>{escape(organization_name)}</strong> "
        "has requested a password reset for your MondayEase account.</p>"
        "<p>Click the button below to set a new password:</p>"
    )
    html = _layout(
        "Reset Your Password",
        body,
        recovery_url,
        "Reset Password",
        "Security Notice: If you didn't expect this email or believe it was sent in error, "
        "please contact your organization administrator immediately.",
    )
    return "Reset Your MondayEase Password", html
