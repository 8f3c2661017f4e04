"""
Invitation lifecycle manager.

State machine::

    PENDING --accept--> ACCEPTED
            --reject--> REJECTED
            --cancel--> CANCELLED   (also: sibling of an accepted invitation)
            --expiry--> EXPIRED

Every state other than PENDING is terminal. Expiry is applied in two ways:
resolving a token past its ``expires_at`` transitions that invitation to
EXPIRED as part of the read, and :meth:`InvitationService.sweep_expired`
transitions all overdue invitations in bulk on a schedule.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import ResendEmailService
from core.exceptions import (
    BadRequestError,
    ConflictError,
    EmailDeliveryError,
    ForbiddenError,
    GoneError,
    NotFoundError,
)
from core.roles import ASSIGNABLE_ROLES, ProjectRole
from infrastructure.database.connection import transaction
from infrastructure.database.models.base import utcnow
from infrastructure.database.models.project import (
    InvitationStatus,
    Project,
    ProjectInvitation,
    ProjectMember,
    generate_invitation_token,
)
from infrastructure.database.models.user import User
from services.authorization import ProjectAuthorizationService
from services.subscription import SubscriptionService

logger = logging.getLogger(__name__)


@dataclass
class InvitationView:
    """An invitation together with the project and inviter it refers to."""

    invitation: ProjectInvitation
    project: Optional[Project] = None
    inviter: Optional[User] = None


@dataclass
class AcceptResult:
    invitation: ProjectInvitation
    project_id: str
    role: str
    already_member: bool


class InvitationService:
    """Creates, resolves, answers, cancels and expires project invitations."""

    def __init__(
        self,
        db: AsyncSession,
        email_service: Optional[ResendEmailService] = None,
        expire_days: int = 7,
    ):
        """
        Args:
            db: Async database session
            email_service: Mail adapter used to notify invitees (optional)
            expire_days: Lifetime of a new invitation
        """
        self.db = db
        self.email_service = email_service
        self.ttl = timedelta(days=expire_days)
        self.authz = ProjectAuthorizationService(db)
        self.subscriptions = SubscriptionService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def _is_member(self, project: Project, user_id: str) -> bool:
        if project.owner_id == user_id:
            return True
        return await self.authz.get_membership(project.id, user_id) is not None

    async def _with_relations(self, stmt) -> list[InvitationView]:
        result = await self.db.execute(
            stmt.add_columns(Project, User)
            .join(Project, Project.id == ProjectInvitation.project_id)
            .outerjoin(User, User.id == ProjectInvitation.inviter_id)
        )
        return [InvitationView(invitation=inv, project=project, inviter=inviter) for inv, project, inviter in result.all()]

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(
        self,
        project_id: str,
        inviter: User,
        email: str,
        role: ProjectRole = ProjectRole.VIEWER,
    ) -> InvitationView:
        """
        Invite ``email`` to a project with ``role``.

        Raises:
            ForbiddenError: If the inviter ranks below ADMIN
            BadRequestError: If ``role`` is OWNER
            ConflictError: If the invitee is already a member, or a pending
                unexpired invitation exists for the same project and email
            QuotaExceededError: If the owner's plan has no member capacity left
        """
        project, _ = await self.authz.require_minimum_role(project_id, inviter.id, ProjectRole.ADMIN)
        await self.subscriptions.require_project_access(project, inviter.id)

        role = ProjectRole(role)
        if role not in ASSIGNABLE_ROLES:
            raise BadRequestError("Cannot invite a user as OWNER")

        email = email.strip().lower()
        invitee = await self._user_by_email(email)
        if invitee and await self._is_member(project, invitee.id):
            raise ConflictError("User is already a member of this project")

        # Overdue invitations must not block a fresh one
        await self._expire_overdue(project_id=project.id, email=email)

        existing = await self.db.execute(
            select(ProjectInvitation.id).where(
                ProjectInvitation.project_id == project.id,
                ProjectInvitation.email == email,
                ProjectInvitation.status == InvitationStatus.PENDING.value,
                ProjectInvitation.expires_at > utcnow(),
            )
        )
        if existing.first() is not None:
            raise ConflictError("An invitation is already pending for this email")

        await self.subscriptions.ensure_can_add_member(project)

        invitation = ProjectInvitation(
            project_id=project.id,
            inviter_id=inviter.id,
            email=email,
            role=role.value,
            token=generate_invitation_token(),
            status=InvitationStatus.PENDING.value,
            expires_at=utcnow() + self.ttl,
        )
        async with transaction(self.db):
            self.db.add(invitation)

        logger.info(
            "Invitation %s created for project %s by %s (role=%s)",
            invitation.id,
            project.id,
            inviter.id,
            role.value,
        )

        await self._notify_invitee(invitation, project, inviter)
        return InvitationView(invitation=invitation, project=project, inviter=inviter)

    async def _notify_invitee(self, invitation: ProjectInvitation, project: Project, inviter: User) -> None:
        """Email the invitee. The invitation stands even if delivery fails."""
        if self.email_service is None:
            return
        try:
            await self.email_service.send_project_invitation_email(
                to_email=invitation.email,
                inviter_name=inviter.name,
                project_name=project.name,
                role=invitation.role,
                token=invitation.token,
            )
        except EmailDeliveryError as e:
            logger.warning("Invitation %s saved but email delivery failed: %s", invitation.id, e)

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    async def resolve_by_token(self, token: str) -> ProjectInvitation:
        """
        Look up a pending, unexpired invitation by token.

        A pending invitation found past its expiry is marked EXPIRED and
        committed before :class:`GoneError` is raised.

        Raises:
            NotFoundError: If no invitation has this token
            GoneError: If the invitation has expired
            ConflictError: If the invitation was already answered or cancelled
        """
        result = await self.db.execute(
            select(ProjectInvitation).where(ProjectInvitation.token == token)
        )
        invitation = result.scalar_one_or_none()
        if not invitation:
            raise NotFoundError("Invitation not found")

        if invitation.is_pending and invitation.is_past_expiry():
            async with transaction(self.db):
                invitation.status = InvitationStatus.EXPIRED.value
            logger.info("Invitation %s expired on read", invitation.id)

        if invitation.status == InvitationStatus.EXPIRED.value:
            raise GoneError("Invitation has expired")
        if not invitation.is_pending:
            raise ConflictError(f"Invitation has already been {invitation.status.lower()}")
        return invitation

    async def get_by_token(self, token: str) -> InvitationView:
        """Public view of a pending invitation with project and inviter details."""
        invitation = await self.resolve_by_token(token)
        views = await self._with_relations(
            select(ProjectInvitation).where(ProjectInvitation.id == invitation.id)
        )
        return views[0]

    async def _resolve_for_user(self, token: str, user: User) -> ProjectInvitation:
        invitation = await self.resolve_by_token(token)
        if invitation.email.lower() != (user.email or "").lower():
            raise ForbiddenError("This invitation was sent to a different email address")
        return invitation

    # ------------------------------------------------------------------
    # Answer
    # ------------------------------------------------------------------

    async def _repeat_accept(self, token: str, user: User) -> Optional[AcceptResult]:
        """Result for a second accept of an already-accepted invitation, else None."""
        result = await self.db.execute(
            select(ProjectInvitation).where(
                ProjectInvitation.token == token,
                ProjectInvitation.status == InvitationStatus.ACCEPTED.value,
                ProjectInvitation.email == (user.email or "").lower(),
            )
        )
        invitation = result.scalar_one_or_none()
        if invitation is None:
            return None
        project = await self.authz.get_project(invitation.project_id)
        if not await self._is_member(project, user.id):
            return None
        return AcceptResult(invitation, project.id, invitation.role, already_member=True)

    async def accept(self, token: str, user: User) -> AcceptResult:
        """
        Accept an invitation as ``user``.

        If the user already belongs to the project the invitation is simply
        marked ACCEPTED, and accepting the same invitation again succeeds
        without touching any rows. Otherwise the membership insert, the
        status change and the cancellation of sibling pending invitations
        for the same project and email commit together.

        Raises:
            ForbiddenError: If the user's email does not match the invitation
            QuotaExceededError: If the owner's plan has no member capacity left
        """
        repeat = await self._repeat_accept(token, user)
        if repeat is not None:
            return repeat

        invitation = await self._resolve_for_user(token, user)
        project = await self.authz.get_project(invitation.project_id)
        now = utcnow()

        if await self._is_member(project, user.id):
            async with transaction(self.db):
                invitation.status = InvitationStatus.ACCEPTED.value
                invitation.responded_at = now
            logger.info("Invitation %s accepted by existing member %s", invitation.id, user.id)
            return AcceptResult(invitation, project.id, invitation.role, already_member=True)

        await self.subscriptions.ensure_can_add_member(project)

        try:
            async with transaction(self.db):
                self.db.add(
                    ProjectMember(
                        project_id=project.id,
                        user_id=user.id,
                        role=invitation.role,
                    )
                )
                invitation.status = InvitationStatus.ACCEPTED.value
                invitation.responded_at = now
                await self.db.execute(
                    update(ProjectInvitation)
                    .where(
                        ProjectInvitation.project_id == project.id,
                        ProjectInvitation.email == invitation.email,
                        ProjectInvitation.status == InvitationStatus.PENDING.value,
                        ProjectInvitation.id != invitation.id,
                    )
                    .values(status=InvitationStatus.CANCELLED.value, updated_at=now)
                    .execution_options(synchronize_session="fetch")
                )
        except IntegrityError as e:
            raise ConflictError("User is already a member of this project") from e

        logger.info(
            "Invitation %s accepted; user %s joined project %s as %s",
            invitation.id,
            user.id,
            project.id,
            invitation.role,
        )
        return AcceptResult(invitation, project.id, invitation.role, already_member=False)

    async def reject(self, token: str, user: User) -> ProjectInvitation:
        """
        Decline an invitation as ``user``.

        Raises:
            ForbiddenError: If the user's email does not match the invitation
        """
        invitation = await self._resolve_for_user(token, user)
        async with transaction(self.db):
            invitation.status = InvitationStatus.REJECTED.value
            invitation.responded_at = utcnow()
        logger.info("Invitation %s rejected by %s", invitation.id, user.id)
        return invitation

    async def cancel(self, invitation_id: str, user: User) -> ProjectInvitation:
        """
        Withdraw a pending invitation.

        Allowed for the original inviter, the project owner, and any
        ADMIN or OWNER member.

        Raises:
            NotFoundError: If the invitation does not exist
            ForbiddenError: If the user may not cancel it
            ConflictError: If the invitation is no longer pending
        """
        result = await self.db.execute(
            select(ProjectInvitation).where(ProjectInvitation.id == invitation_id)
        )
        invitation = result.scalar_one_or_none()
        if not invitation:
            raise NotFoundError("Invitation not found")

        if invitation.inviter_id != user.id:
            role = await self.authz.resolve_role(invitation.project_id, user.id)
            if role is None or not role.at_least(ProjectRole.ADMIN):
                raise ForbiddenError("You do not have permission to cancel this invitation")

        if not invitation.is_pending:
            raise ConflictError(f"Only pending invitations can be cancelled (status: {invitation.status})")

        async with transaction(self.db):
            invitation.status = InvitationStatus.CANCELLED.value
        logger.info("Invitation %s cancelled by %s", invitation.id, user.id)
        return invitation

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_project_invitations(self, project_id: str, user: User) -> list[InvitationView]:
        """Pending and accepted invitations of a project, newest first. Requires ADMIN."""
        project, _ = await self.authz.require_minimum_role(project_id, user.id, ProjectRole.ADMIN)
        await self.subscriptions.require_project_access(project, user.id)
        return await self._with_relations(
            select(ProjectInvitation)
            .where(
                ProjectInvitation.project_id == project_id,
                ProjectInvitation.status.in_(
                    [InvitationStatus.PENDING.value, InvitationStatus.ACCEPTED.value]
                ),
            )
            .order_by(ProjectInvitation.created_at.desc(), ProjectInvitation.id.desc())
        )

    async def list_pending_for_user(self, user: User) -> list[InvitationView]:
        """Pending, unexpired invitations addressed to the user's email, newest first."""
        return await self._with_relations(
            select(ProjectInvitation)
            .where(
                ProjectInvitation.email == user.email.lower(),
                ProjectInvitation.status == InvitationStatus.PENDING.value,
                ProjectInvitation.expires_at > utcnow(),
            )
            .order_by(ProjectInvitation.created_at.desc(), ProjectInvitation.id.desc())
        )

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def _expire_overdue(self, project_id: Optional[str] = None, email: Optional[str] = None) -> int:
        stmt = (
            update(ProjectInvitation)
            .where(
                ProjectInvitation.status == InvitationStatus.PENDING.value,
                ProjectInvitation.expires_at < utcnow(),
            )
            .values(status=InvitationStatus.EXPIRED.value, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        if project_id is not None:
            stmt = stmt.where(ProjectInvitation.project_id == project_id)
        if email is not None:
            stmt = stmt.where(ProjectInvitation.email == email)

        async with transaction(self.db):
            result = await self.db.execute(stmt)
        return result.rowcount or 0

    async def sweep_expired(self) -> int:
        """
        Mark every overdue pending invitation as EXPIRED.

        Idempotent; safe to run on a schedule.

        Returns:
            Number of invitations marked as expired
        """
        expired_count = await self._expire_overdue()
        if expired_count:
            logger.info("Marked %d project invitations as expired", expired_count)
        return expired_count
