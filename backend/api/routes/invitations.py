"""
Invitation API routes for invitees.

Project admins create and list invitations under ``/projects/{id}/invitations``.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends

from api.dependencies import CurrentUser, get_invitation_service
from api.schemas.common import ApiResponse, MessageData
from api.schemas.invitation import AcceptInvitationResponse, InvitationResponse, invitation_response
from services.invitations import InvitationService

router = APIRouter(prefix="/invitations", tags=["Invitations"])

Invitations = Annotated[InvitationService, Depends(get_invitation_service)]


@router.get("/pending", response_model=ApiResponse[List[InvitationResponse]])
async def list_pending_invitations(current_user: CurrentUser, invitations: Invitations):
    """Pending invitations addressed to the current user's email."""
    views = await invitations.list_pending_for_user(current_user)
    return ApiResponse(data=[invitation_response(v) for v in views])


@router.get("/{token}", response_model=ApiResponse[InvitationResponse])
async def get_invitation(token: str, invitations: Invitations):
    """
    Public endpoint: show an invitation before the invitee signs in.

    Expired invitations answer 410; answered or cancelled ones answer 409.
    """
    view = await invitations.get_by_token(token)
    return ApiResponse(data=invitation_response(view))


@router.post("/{token}/accept", response_model=ApiResponse[AcceptInvitationResponse])
async def accept_invitation(token: str, current_user: CurrentUser, invitations: Invitations):
    """Accept an invitation sent to the current user's email."""
    result = await invitations.accept(token, current_user)
    message = (
        "You are already a member of this project"
        if result.already_member
        else "Invitation accepted"
    )
    return ApiResponse(
        data=AcceptInvitationResponse(
            project_id=result.project_id,
            role=result.role,
            already_member=result.already_member,
        ),
        message=message,
    )


@router.post("/{token}/reject", response_model=ApiResponse[MessageData])
async def reject_invitation(token: str, current_user: CurrentUser, invitations: Invitations):
    await invitations.reject(token, current_user)
    return ApiResponse(message="Invitation rejected")


@router.delete("/{invitation_id}", response_model=ApiResponse[MessageData])
async def cancel_invitation(invitation_id: str, current_user: CurrentUser, invitations: Invitations):
    """Cancel a pending invitation. Allowed for the inviter and project admins."""
    await invitations.cancel(invitation_id, current_user)
    return ApiResponse(message="Invitation cancelled")
