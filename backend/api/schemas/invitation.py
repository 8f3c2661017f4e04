"""
Project invitation API schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from api.schemas.common import ensure_utc
from api.schemas.member import MemberUser
from core.roles import ProjectRole
from infrastructure.database.models.project import InvitationStatus


class InvitationCreate(BaseModel):
    """Schema for inviting someone to a project."""

    email: EmailStr
    role: ProjectRole = ProjectRole.VIEWER


class InvitationProject(BaseModel):
    id: str
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class InvitationResponse(BaseModel):
    """Schema for invitation response."""

    id: str
    project_id: str
    email: str
    role: ProjectRole
    status: InvitationStatus
    token: str
    expires_at: datetime
    responded_at: Optional[datetime] = None
    created_at: datetime
    project: Optional[InvitationProject] = None
    inviter: Optional[MemberUser] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("expires_at", "responded_at", "created_at")
    @classmethod
    def dates_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class AcceptInvitationResponse(BaseModel):
    project_id: str
    role: ProjectRole
    already_member: bool = False


def invitation_response(view) -> InvitationResponse:
    """Build a response from a ``services.invitations.InvitationView``."""
    inv = view.invitation
    return InvitationResponse(
        id=inv.id,
        project_id=inv.project_id,
        email=inv.email,
        role=inv.role,
        status=inv.status,
        token=inv.token,
        expires_at=inv.expires_at,
        responded_at=inv.responded_at,
        created_at=inv.created_at,
        project=InvitationProject.model_validate(view.project) if view.project else None,
        inviter=MemberUser.model_validate(view.inviter) if view.inviter else None,
    )
