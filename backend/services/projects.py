"""
Project service: creation, listing, updates and deletion.
"""

import logging
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestError
from core.roles import ProjectRole
from infrastructure.database.connection import transaction
from infrastructure.database.models.project import Project, ProjectInvitation, ProjectMember
from infrastructure.database.models.task import Task, TaskDependency
from infrastructure.database.models.user import User
from services.authorization import ProjectAuthorizationService
from services.subscription import SubscriptionService

logger = logging.getLogger(__name__)


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise BadRequestError("Project name is required")
    return name


class ProjectService:
    """Project CRUD gated by roles and subscription limits."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.authz = ProjectAuthorizationService(db)
        self.subscriptions = SubscriptionService(db)

    async def list_projects(self, user: User) -> list[tuple[Project, ProjectRole]]:
        """
        Projects the user owns or belongs to, limited to those the user's
        plan keeps accessible, most recently updated first.
        """
        accessible = await self.subscriptions.accessible_project_ids(user.id)
        if not accessible:
            return []

        member_project_ids = select(ProjectMember.project_id).where(ProjectMember.user_id == user.id)
        result = await self.db.execute(
            select(Project)
            .where(
                Project.id.in_(accessible),
                or_(Project.owner_id == user.id, Project.id.in_(member_project_ids)),
            )
            .order_by(Project.updated_at.desc(), Project.id.desc())
        )
        projects = result.scalars().all()

        memberships = await self.db.execute(
            select(ProjectMember.project_id, ProjectMember.role).where(
                ProjectMember.user_id == user.id,
                ProjectMember.project_id.in_(accessible),
            )
        )
        roles = {row.project_id: row.role for row in memberships.all()}

        listed = []
        for project in projects:
            if project.owner_id == user.id:
                role = ProjectRole.OWNER
            else:
                role = ProjectRole(roles[project.id])
                if role == ProjectRole.OWNER:
                    role = ProjectRole.ADMIN
            listed.append((project, role))
        return listed

    async def get_project(self, project_id: str, user: User) -> tuple[Project, ProjectRole]:
        """
        Read a single project.

        Raises:
            NotFoundError: If the project does not exist or the user's plan
                no longer includes it
            ForbiddenError: If the user has no role on the project
        """
        project, role = await self.authz.require_any_access(project_id, user.id)
        await self.subscriptions.require_project_access(project, user.id)
        return project, role

    async def create_project(self, user: User, name: str, description: Optional[str] = None) -> Project:
        """
        Create a project owned by ``user``.

        The project row and the owner's OWNER membership commit together.

        Raises:
            QuotaExceededError: If the user's plan has no project capacity left
        """
        name = _clean_name(name)
        await self.subscriptions.ensure_can_create_project(user)

        project = Project(name=name, description=description, owner_id=user.id)
        async with transaction(self.db):
            self.db.add(project)
            await self.db.flush()
            self.db.add(
                ProjectMember(
                    project_id=project.id,
                    user_id=user.id,
                    role=ProjectRole.OWNER.value,
                )
            )

        logger.info("Project %s created by %s", project.id, user.id)
        return project

    async def update_project(
        self,
        project_id: str,
        user: User,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> tuple[Project, ProjectRole]:
        """Rename or re-describe a project. Requires ADMIN or OWNER."""
        project, role = await self.authz.require_minimum_role(project_id, user.id, ProjectRole.ADMIN)
        await self.subscriptions.require_project_access(project, user.id)

        async with transaction(self.db):
            if name is not None:
                project.name = _clean_name(name)
            if description is not None:
                project.description = description
        return project, role

    async def delete_project(self, project_id: str, user: User) -> None:
        """
        Delete a project with its tasks, dependencies, invitations and
        memberships. Requires OWNER.
        """
        project, _ = await self.authz.require_minimum_role(project_id, user.id, ProjectRole.OWNER)
        await self.subscriptions.require_project_access(project, user.id)

        task_ids = select(Task.id).where(Task.project_id == project.id)
        async with transaction(self.db):
            await self.db.execute(
                delete(TaskDependency)
                .where(
                    or_(
                        TaskDependency.task_id.in_(task_ids),
                        TaskDependency.depends_on_task_id.in_(task_ids),
                    )
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(Task).where(Task.project_id == project.id).execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(ProjectInvitation)
                .where(ProjectInvitation.project_id == project.id)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(ProjectMember)
                .where(ProjectMember.project_id == project.id)
                .execution_options(synchronize_session=False)
            )
            await self.db.delete(project)

        logger.info("Project %s deleted by %s", project_id, user.id)

    async def backfill_owner_memberships(self) -> int:
        """
        Ensure every project owner has an OWNER membership row.

        Inserts missing rows and repairs owner rows carrying another role.
        Idempotent.

        Returns:
            Number of rows inserted or repaired
        """
        result = await self.db.execute(
            select(Project, ProjectMember)
            .outerjoin(
                ProjectMember,
                (ProjectMember.project_id == Project.id) & (ProjectMember.user_id == Project.owner_id),
            )
        )

        changed = 0
        async with transaction(self.db):
            for project, member in result.all():
                if member is None:
                    self.db.add(
                        ProjectMember(
                            project_id=project.id,
                            user_id=project.owner_id,
                            role=ProjectRole.OWNER.value,
                        )
                    )
                    changed += 1
                elif member.role != ProjectRole.OWNER.value:
                    member.role = ProjectRole.OWNER.value
                    changed += 1

        if changed:
            logger.info("Backfilled %d owner memberships", changed)
        return changed
