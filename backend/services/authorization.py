"""
Project authorization engine.

Computes a user's effective role on a project and gates operations on it.
Ownership comes only from ``Project.owner_id``; a membership row never
grants or removes OWNER rank. Nothing here is cached, so every check
reflects the current database state.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ForbiddenError, NotFoundError
from core.roles import ProjectRole
from infrastructure.database.models.project import Project, ProjectMember

logger = logging.getLogger(__name__)


class ProjectAuthorizationService:
    """Resolves roles and enforces minimum-role requirements on projects."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_project(self, project_id: str) -> Project:
        """
        Get a project by ID.

        Raises:
            NotFoundError: If the project does not exist
        """
        result = await self.db.execute(select(Project).where(Project.id == project_id))
        project = result.scalar_one_or_none()
        if not project:
            raise NotFoundError("Project not found")
        return project

    async def get_membership(self, project_id: str, user_id: str) -> Optional[ProjectMember]:
        result = await self.db.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def role_in(self, project: Project, user_id: str) -> Optional[ProjectRole]:
        """Effective role of ``user_id`` on an already-loaded project."""
        if project.owner_id == user_id:
            return ProjectRole.OWNER

        member = await self.get_membership(project.id, user_id)
        if member is None:
            return None

        role = ProjectRole(member.role)
        # OWNER rank is never granted by a membership row
        if role == ProjectRole.OWNER:
            logger.warning(
                "Non-owner %s holds an OWNER row on project %s; treating as ADMIN",
                user_id,
                project.id,
            )
            return ProjectRole.ADMIN
        return role

    async def resolve_role(self, project_id: str, user_id: str) -> Optional[ProjectRole]:
        """
        Resolve a user's role on a project.

        Returns:
            OWNER for the project owner, the membership role for members,
            or None if the user has no access.

        Raises:
            NotFoundError: If the project does not exist
        """
        project = await self.get_project(project_id)
        return await self.role_in(project, user_id)

    async def require_minimum_role(
        self,
        project_id: str,
        user_id: str,
        min_role: ProjectRole,
    ) -> tuple[Project, ProjectRole]:
        """
        Require that a user holds at least ``min_role`` on a project.

        Returns:
            Tuple of (project, resolved role)

        Raises:
            NotFoundError: If the project does not exist
            ForbiddenError: If the user has no role or ranks below ``min_role``
        """
        project = await self.get_project(project_id)
        role = await self.role_in(project, user_id)

        if role is None:
            raise ForbiddenError("You do not have access to this project")
        if not role.at_least(min_role):
            raise ForbiddenError(
                f"Insufficient permissions. {ProjectRole(min_role).value} role or higher required"
            )
        return project, role

    async def require_any_access(self, project_id: str, user_id: str) -> tuple[Project, ProjectRole]:
        """Require any role on the project (read access)."""
        return await self.require_minimum_role(project_id, user_id, ProjectRole.VIEWER)
