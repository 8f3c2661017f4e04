"""
Project member API schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from api.schemas.common import ensure_utc
from core.roles import ProjectRole


class MemberUser(BaseModel):
    """Public profile of a project member."""

    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class MemberResponse(BaseModel):
    user_id: str
    role: ProjectRole
    joined_at: datetime
    user: MemberUser

    @field_validator("joined_at")
    @classmethod
    def joined_at_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class UpdateMemberRoleRequest(BaseModel):
    """Request to change a member's role."""

    role: ProjectRole


def member_response(view) -> MemberResponse:
    """Build a response from a ``services.members.MemberView``."""
    return MemberResponse(
        user_id=view.user.id,
        role=view.role,
        joined_at=view.joined_at,
        user=MemberUser.model_validate(view.user),
    )
