"""
Project, membership and invitation database models.
"""

import secrets
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, validates

from core.roles import ProjectRole

from .base import Base, TimestampMixin, as_utc, utcnow


def generate_invitation_token() -> str:
    """Opaque, URL-safe invitation token with 256 bits of entropy."""
    return secrets.token_urlsafe(32)


class InvitationStatus(str, Enum):
    """Project invitation status enumeration."""

    PENDING = "PENDING"  # Waiting for the invitee to respond
    ACCEPTED = "ACCEPTED"  # Invitee joined the project
    REJECTED = "REJECTED"  # Invitee declined
    EXPIRED = "EXPIRED"  # Passed expires_at while pending
    CANCELLED = "CANCELLED"  # Withdrawn, or superseded by another accepted invitation


class Project(Base, TimestampMixin):
    """Project model. ``owner_id`` is immutable after creation."""

    __tablename__ = "projects"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Owner (creator of the project)
    owner_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, owner_id={self.owner_id})>"


class ProjectMember(Base, TimestampMixin):
    """Project member model (junction table between users and projects).

    The owner's row is a denormalized copy kept for uniform listing; the
    owner's rank always comes from ``Project.owner_id``.
    """

    __tablename__ = "project_members"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Foreign keys
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Role in project
    role: Mapped[str] = mapped_column(
        String(50), default=ProjectRole.VIEWER.value, nullable=False
    )

    __table_args__ = (
        Index("ix_project_members_project_user", "project_id", "user_id", unique=True),
    )

    def __repr__(self) -> str:
        return f"<ProjectMember(project_id={self.project_id}, user_id={self.user_id}, role={self.role})>"


class ProjectInvitation(Base, TimestampMixin):
    """Project invitation model for inviting users to projects by email."""

    __tablename__ = "project_invitations"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Foreign keys
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    inviter_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Invitee info
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(
        String(50), default=ProjectRole.VIEWER.value, nullable=False
    )

    # Invitation token (secure URL-safe token)
    token: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        default=generate_invitation_token,
    )

    # Status tracking
    status: Mapped[str] = mapped_column(
        String(50), default=InvitationStatus.PENDING.value, nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_project_invitations_status", "status"),
        Index("ix_project_invitations_expires_at", "expires_at"),
        Index("ix_project_invitations_project_email", "project_id", "email"),
    )

    def __repr__(self) -> str:
        return f"<ProjectInvitation(id={self.id}, email={self.email}, project_id={self.project_id}, status={self.status})>"

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower() if value else value

    @property
    def is_pending(self) -> bool:
        """Check if invitation is pending."""
        return self.status == InvitationStatus.PENDING.value

    def is_past_expiry(self, now: Optional[datetime] = None) -> bool:
        """Check if the expiry time has passed, regardless of status."""
        return as_utc(self.expires_at) < (now or utcnow())
