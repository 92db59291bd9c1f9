"""
Organization members and invitations.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from mondayease.errors import AccessDeniedError, AppError, BadRequestError, NotFoundError
from mondayease.integrations.auth_admin import AuthAdminClient
from mondayease.integrations.base import IntegrationError
from mondayease.integrations.email import EmailClient
from mondayease.security.sessions import AuthenticatedUser
from mondayease.storage import Repository
from mondayease.storage.schemas import (
    MemberBoardAccess,
    MemberRole,
    MemberStatus,
    OrganizationMember,
)

logger = logging.getLogger(__name__)


class BoardAccessGrant(BaseModel):
    """One board a principal may see, with optional discriminator values."""

    board_config_id: str
    filter_value: str | None = None


class InviteResult(BaseModel):
    member: OrganizationMember
    email_sent: bool = False
    message: str | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def require_membership(repo: Repository, user: AuthenticatedUser) -> OrganizationMember:
    member = await repo.get_active_membership(user.id)
    if member is None:
        raise AccessDeniedError("No active organization membership")
    return member


async def validate_grants(
    repo: Repository,
    organization_id: str,
    grants: list[BoardAccessGrant],
) -> None:
    """All granted board configs must belong to the organization."""
    ids = [g.board_config_id for g in grants]
    found = {c.id for c in await repo.get_board_configs(ids) if c.organization_id == organization_id}
    missing = [i for i in ids if i not in found]
    if missing:
        raise BadRequestError(f"Unknown board config: {missing[0]}")


class MemberService:
    def __init__(
        self,
        repo: Repository,
        email: EmailClient | None = None,
        *,
        auth_admin: AuthAdminClient | None = None,
        app_url: str = "",
    ):
        self._repo = repo
        self._email = email
        self._auth_admin = auth_admin
        self._app_url = app_url.rstrip("/")

    async def list_members(self, caller: OrganizationMember) -> list[dict[str, Any]]:
        """Members of the caller's organization, each with their board access."""
        members = await self._repo.list_members(caller.organization_id)
        result = []
        for member in members:
            access = await self._repo.list_member_access(member.id)
            result.append({
                **member.model_dump(mode="json"),
                "board_access": [a.model_dump(mode="json") for a in access],
            })
        return result

    async def invite(
        self,
        caller: OrganizationMember,
        email: str,
        display_name: str,
        inviter_name: str | None = None,
    ) -> InviteResult:
        """
        Invite someone to the caller's organization.

        People who already have an account join immediately; everyone
        else gets a pending membership and an invite email.

        Raises:
            AccessDeniedError: If the caller is not an owner or admin.
            BadRequestError: On missing input or an existing membership.
        """
        if not caller.can_manage:
            raise AccessDeniedError("Only owners and admins can invite members")

        normalized = normalize_email(email or "")
        name = (display_name or "").strip()
        if not normalized or not name:
            raise BadRequestError("Missing required fields: email, displayName")

        if await self._repo.find_member_by_email(caller.organization_id, normalized):
            raise BadRequestError("This email is already a member of the organization")

        now = datetime.now(UTC)
        profile = await self._repo.get_profile_by_email(normalized)
        if profile is not None:
            member = OrganizationMember(
                organization_id=caller.organization_id,
                user_id=profile.id,
                email=normalized,
                display_name=name,
                role=MemberRole.MEMBER,
                status=MemberStatus.ACTIVE,
                invited_at=now,
                joined_at=now,
            )
            await self._repo.insert_member(member)
            logger.info(f"[members] Added existing user {profile.id} to {caller.organization_id}")
            return InviteResult(
                member=member,
                message="User already has an account and was added to the organization",
            )

        member = OrganizationMember(
            organization_id=caller.organization_id,
            email=normalized,
            display_name=name,
            role=MemberRole.MEMBER,
            status=MemberStatus.PENDING,
            invited_at=now,
        )
        await self._repo.insert_member(member)
        logger.info(f"[members] Created pending membership {member.id}")

        email_sent = await self._send_invite(caller, member, inviter_name)
        return InviteResult(member=member, email_sent=email_sent)

    async def _send_invite(
        self,
        caller: OrganizationMember,
        member: OrganizationMember,
        inviter_name: str | None,
    ) -> bool:
        if self._email is None:
            logger.warning("[members] Email is not configured; invite email not sent")
            return False
        organization = await self._repo.get_organization(caller.organization_id)
        try:
            await self._email.send_invite_email(
                member.email,
                member.display_name or member.email,
                organization.name if organization else "your organization",
                inviter_name or caller.display_name,
            )
        except IntegrationError as e:
            # The membership stands; the invite can be re-sent
            logger.error(f"[members] Invite email to member {member.id} failed: {e}")
            return False
        return True

    async def activate(self, user: AuthenticatedUser) -> dict[str, Any]:
        """
        Activate the caller's pending membership after sign-up.

        Raises:
            BadRequestError: If the token carries no email.
            NotFoundError: If there is no pending membership.
        """
        if not user.email:
            raise BadRequestError("No email found in user claims")

        pending = await self._repo.find_pending_membership(
            normalize_email(user.email), user.invited_to_organization
        )
        if pending is None:
            raise NotFoundError("No pending membership found")

        await self._repo.update_member(
            pending.id,
            user_id=user.id,
            status=MemberStatus.ACTIVE.value,
            joined_at=datetime.now(UTC),
        )
        updated = await self._repo.update_profile(
            user.id,
            user_type="member",
            primary_organization_id=pending.organization_id,
        )
        if not updated:
            logger.warning(f"[members] No profile to update for user {user.id}")

        organization = await self._repo.get_organization(pending.organization_id)
        logger.info(f"[members] Activated membership {pending.id} for user {user.id}")
        return {
            "success": True,
            "message": "Membership activated successfully",
            "organization_id": pending.organization_id,
            "organization_name": organization.name if organization else "Organization",
        }

    async def reset_password(self, caller: OrganizationMember, member_id: str) -> None:
        """
        Mail an owner-requested password recovery link to a member.

        Raises:
            AccessDeniedError: If the caller is not an owner.
            NotFoundError: If the member is not in the caller's organization.
            BadRequestError: If the member has not activated an account yet.
            AppError: If email or the auth provider admin API is not configured.
            IntegrationError: If link generation or sending fails.
        """
        if not caller.is_owner:
            raise AccessDeniedError("Only owners can reset member passwords")

        member = await self._repo.get_member(member_id, caller.organization_id)
        if member is None:
            raise NotFoundError("Member not found")
        if not member.user_id:
            raise BadRequestError(
                "Member has not activated their account yet. Please resend the invitation instead."
            )

        if self._email is None:
            raise AppError("Email service not configured", "EMAIL_NOT_CONFIGURED", 500)
        if self._auth_admin is None:
            raise AppError("Password reset is not configured", "AUTH_ADMIN_NOT_CONFIGURED", 500)

        logger.info(f"[members] Password reset requested by {caller.id} for member {member.id}")
        link = await self._auth_admin.generate_recovery_link(member.email, f"{self._app_url}/auth")

        organization = await self._repo.get_organization(caller.organization_id)
        await self._email.send_password_reset_email(
            member.email,
            member.display_name or member.email.split("@")[0],
            organization.name if organization else "your organization",
            link,
        )
        logger.info(f"[members] Password reset email sent for member {member.id}")

    async def replace_board_access(
        self,
        caller: OrganizationMember,
        member_id: str,
        grants: list[BoardAccessGrant],
    ) -> list[MemberBoardAccess]:
        if not caller.is_owner:
            raise AccessDeniedError("Only owners can change board access")
        member = await self._repo.get_member(member_id, caller.organization_id)
        if member is None:
            raise NotFoundError("Member not found")
        await validate_grants(self._repo, caller.organization_id, grants)

        rows = [
            MemberBoardAccess(
                member_id=member.id,
                board_config_id=g.board_config_id,
                filter_value=g.filter_value or "",
            )
            for g in grants
        ]
        return await self._repo.replace_member_access(member.id, rows)
