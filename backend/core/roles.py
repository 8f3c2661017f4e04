"""
Project roles and their ordering.

Roles are compared by rank, never by name. ``OWNER`` is derived from
``Project.owner_id`` and cannot be granted through invitations or role updates.
"""

from enum import Enum


class ProjectRole(str, Enum):
    """Project member role enumeration."""

    VIEWER = "VIEWER"  # Read-only access
    EDITOR = "EDITOR"  # Create/edit tasks
    ADMIN = "ADMIN"  # Manage members and invitations
    OWNER = "OWNER"  # Full control, can delete project

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]

    def at_least(self, other: "ProjectRole") -> bool:
        """Return True if this role ranks at or above ``other``."""
        return self.rank >= ROLE_RANK[ProjectRole(other)]


ROLE_RANK: dict[ProjectRole, int] = {
    ProjectRole.VIEWER: 1,
    ProjectRole.EDITOR: 2,
    ProjectRole.ADMIN: 3,
    ProjectRole.OWNER: 4,
}

# Roles that can be handed out by invitation or role update
ASSIGNABLE_ROLES = (ProjectRole.VIEWER, ProjectRole.EDITOR, ProjectRole.ADMIN)
