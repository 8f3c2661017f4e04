"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .project import (
    InvitationStatus,
    Project,
    ProjectInvitation,
    ProjectMember,
    generate_invitation_token,
)
from .task import Task, TaskDependency
from .user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "Project",
    "ProjectMember",
    "ProjectInvitation",
    "InvitationStatus",
    "generate_invitation_token",
    "Task",
    "TaskDependency",
]
