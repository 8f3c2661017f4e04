"""
Member service: listing, role changes and removal.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from core.roles import ProjectRole
from infrastructure.database.connection import transaction
from infrastructure.database.models.base import as_utc
from infrastructure.database.models.project import Project, ProjectMember
from infrastructure.database.models.user import User
from services.authorization import ProjectAuthorizationService
from services.subscription import SubscriptionService

logger = logging.getLogger(__name__)

_ADMIN_ROLES = (ProjectRole.ADMIN.value, ProjectRole.OWNER.value)


@dataclass
class MemberView:
    """A member as shown to other members."""

    user: User
    role: ProjectRole
    joined_at: datetime


class MemberService:
    """Project membership management."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.authz = ProjectAuthorizationService(db)
        self.subscriptions = SubscriptionService(db)

    @staticmethod
    def _effective_role(project: Project, member: ProjectMember) -> ProjectRole:
        if member.user_id == project.owner_id:
            return ProjectRole.OWNER
        role = ProjectRole(member.role)
        return ProjectRole.ADMIN if role == ProjectRole.OWNER else role

    async def _get_member(self, project_id: str, user_id: str) -> ProjectMember:
        member = await self.authz.get_membership(project_id, user_id)
        if member is None:
            raise NotFoundError("Member not found")
        return member

    async def _other_admin_count(self, project: Project, excluded_user_id: str) -> int:
        """ADMIN+ membership rows on the project, not counting ``excluded_user_id``."""
        result = await self.db.execute(
            select(func.count())
            .select_from(ProjectMember)
            .where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id != excluded_user_id,
                or_(
                    ProjectMember.user_id == project.owner_id,
                    ProjectMember.role.in_(_ADMIN_ROLES),
                ),
            )
        )
        return result.scalar_one()

    async def list_members(self, project_id: str, user: User) -> list[MemberView]:
        """
        Members who keep access under the owner's plan.

        The owner comes first. Others follow by role rank (highest first),
        then by join time.
        """
        project, _ = await self.authz.require_any_access(project_id, user.id)
        await self.subscriptions.require_project_access(project, user.id)

        accessible = await self.subscriptions.accessible_member_ids(project.id, project.owner_id)
        result = await self.db.execute(
            select(ProjectMember, User)
            .join(User, User.id == ProjectMember.user_id)
            .where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id.in_(accessible),
            )
        )

        owner_view = None
        others: list[MemberView] = []
        for member, member_user in result.all():
            view = MemberView(
                user=member_user,
                role=self._effective_role(project, member),
                joined_at=as_utc(member.created_at),
            )
            if member.user_id == project.owner_id:
                owner_view = view
            else:
                others.append(view)

        if owner_view is None:
            owner = await self.subscriptions.get_user(project.owner_id)
            owner_view = MemberView(user=owner, role=ProjectRole.OWNER, joined_at=as_utc(project.created_at))

        others.sort(key=lambda view: (-view.role.rank, view.joined_at))
        return [owner_view, *others]

    async def update_role(
        self, project_id: str, user: User, target_user_id: str, role: ProjectRole
    ) -> MemberView:
        """
        Change a member's role. Requires ADMIN or OWNER.

        Raises:
            BadRequestError: If ``role`` is OWNER
            ForbiddenError: If the target is the project owner
            NotFoundError: If the target is not a member
            ConflictError: If the change would demote the last admin
        """
        project, _ = await self.authz.require_minimum_role(project_id, user.id, ProjectRole.ADMIN)
        await self.subscriptions.require_project_access(project, user.id)

        role = ProjectRole(role)
        if role == ProjectRole.OWNER:
            raise BadRequestError("The OWNER role cannot be assigned")
        if target_user_id == project.owner_id:
            raise ForbiddenError("Cannot change the owner's role")

        member = await self._get_member(project.id, target_user_id)
        current = self._effective_role(project, member)
        if current.at_least(ProjectRole.ADMIN) and not role.at_least(ProjectRole.ADMIN):
            if await self._other_admin_count(project, target_user_id) == 0:
                raise ConflictError("Cannot demote the last admin")

        async with transaction(self.db):
            member.role = role.value

        target = await self.subscriptions.get_user(target_user_id)
        logger.info(
            "Member %s role on project %s changed from %s to %s by %s",
            target_user_id,
            project.id,
            current.value,
            role.value,
            user.id,
        )
        return MemberView(user=target, role=role, joined_at=as_utc(member.created_at))

    async def remove(self, project_id: str, user: User, target_user_id: str) -> None:
        """
        Remove a member from a project. Requires ADMIN or OWNER.

        Raises:
            ForbiddenError: If the target is the project owner
            NotFoundError: If the target is not a member
            ConflictError: If the target is the last admin
        """
        project, _ = await self.authz.require_minimum_role(project_id, user.id, ProjectRole.ADMIN)
        await self.subscriptions.require_project_access(project, user.id)
        if target_user_id == project.owner_id:
            raise ForbiddenError("Cannot remove the project owner")

        member = await self._get_member(project.id, target_user_id)
        if self._effective_role(project, member).at_least(ProjectRole.ADMIN):
            if await self._other_admin_count(project, target_user_id) == 0:
                raise ConflictError("Cannot remove the last admin")

        async with transaction(self.db):
            await self.db.delete(member)

        logger.info("Member %s removed from project %s by %s", target_user_id, project.id, user.id)
