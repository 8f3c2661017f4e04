"""
Project API routes, including the project-scoped task, invitation and
member endpoints.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Request, status

from api.dependencies import (
    CurrentUser,
    get_invitation_service,
    get_member_service,
    get_project_service,
    get_task_service,
)
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.common import ApiResponse, MessageData
from api.schemas.invitation import InvitationCreate, InvitationResponse, invitation_response
from api.schemas.member import MemberResponse, UpdateMemberRoleRequest, member_response
from api.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from api.schemas.task import TaskCreate, TaskResponse
from core.roles import ProjectRole
from services.invitations import InvitationService
from services.members import MemberService
from services.projects import ProjectService
from services.tasks import TaskService

router = APIRouter(prefix="/projects", tags=["Projects"])

Projects = Annotated[ProjectService, Depends(get_project_service)]
Tasks = Annotated[TaskService, Depends(get_task_service)]
Members = Annotated[MemberService, Depends(get_member_service)]
Invitations = Annotated[InvitationService, Depends(get_invitation_service)]


# =============================================================================
# Projects
# =============================================================================


@router.get("", response_model=ApiResponse[List[ProjectResponse]])
async def list_projects(current_user: CurrentUser, projects: Projects):
    """List projects the user can access, most recently updated first."""
    listed = await projects.list_projects(current_user)
    return ApiResponse(data=[ProjectResponse.from_project(p, role) for p, role in listed])


@router.post("", response_model=ApiResponse[ProjectResponse], status_code=status.HTTP_201_CREATED)
async def create_project(data: ProjectCreate, current_user: CurrentUser, projects: Projects):
    """
    Create a new project.

    The current user becomes the owner of the project.
    """
    project = await projects.create_project(current_user, data.name, data.description)
    return ApiResponse(data=ProjectResponse.from_project(project, ProjectRole.OWNER))


@router.get("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def get_project(project_id: str, current_user: CurrentUser, projects: Projects):
    project, role = await projects.get_project(project_id, current_user)
    return ApiResponse(data=ProjectResponse.from_project(project, role))


@router.put("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    current_user: CurrentUser,
    projects: Projects,
):
    """Update project name or description. Requires admin or owner."""
    project, role = await projects.update_project(
        project_id, current_user, name=data.name, description=data.description
    )
    return ApiResponse(data=ProjectResponse.from_project(project, role))


@router.delete("/{project_id}", response_model=ApiResponse[MessageData])
async def delete_project(project_id: str, current_user: CurrentUser, projects: Projects):
    """Delete a project and everything in it. Owner only."""
    await projects.delete_project(project_id, current_user)
    return ApiResponse(message="Project deleted successfully")


# =============================================================================
# Tasks
# =============================================================================


@router.get("/{project_id}/tasks", response_model=ApiResponse[List[TaskResponse]])
async def list_project_tasks(project_id: str, current_user: CurrentUser, tasks: Tasks):
    listed = await tasks.list_tasks(project_id, current_user)
    return ApiResponse(data=[TaskResponse.from_task(t, deps) for t, deps in listed])


@router.post(
    "/{project_id}/tasks",
    response_model=ApiResponse[TaskResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_project_task(
    project_id: str,
    data: TaskCreate,
    current_user: CurrentUser,
    tasks: Tasks,
):
    task, deps = await tasks.create_task(project_id, current_user, data.model_dump())
    return ApiResponse(data=TaskResponse.from_task(task, deps))


# =============================================================================
# Invitations
# =============================================================================


@router.get("/{project_id}/invitations", response_model=ApiResponse[List[InvitationResponse]])
async def list_project_invitations(
    project_id: str,
    current_user: CurrentUser,
    invitations: Invitations,
):
    """List pending and accepted invitations. Requires admin or owner."""
    views = await invitations.list_project_invitations(project_id, current_user)
    return ApiResponse(data=[invitation_response(v) for v in views])


@router.post(
    "/{project_id}/invitations",
    response_model=ApiResponse[InvitationResponse],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(get_rate_limit("invitation"))
async def create_project_invitation(
    request: Request,
    project_id: str,
    data: InvitationCreate,
    current_user: CurrentUser,
    invitations: Invitations,
):
    """
    Invite someone to the project by email.

    The invitee receives an email with a link to accept. Requires admin or owner.
    """
    view = await invitations.create(project_id, current_user, data.email, data.role)
    return ApiResponse(data=invitation_response(view), message="Invitation sent")


# =============================================================================
# Members
# =============================================================================


@router.get("/{project_id}/members", response_model=ApiResponse[List[MemberResponse]])
async def list_members(project_id: str, current_user: CurrentUser, members: Members):
    views = await members.list_members(project_id, current_user)
    return ApiResponse(data=[member_response(v) for v in views])


@router.put("/{project_id}/members/{member_user_id}", response_model=ApiResponse[MemberResponse])
async def update_member_role(
    project_id: str,
    member_user_id: str,
    data: UpdateMemberRoleRequest,
    current_user: CurrentUser,
    members: Members,
):
    """Update a project member's role. Requires admin or owner."""
    view = await members.update_role(project_id, current_user, member_user_id, data.role)
    return ApiResponse(data=member_response(view))


@router.delete("/{project_id}/members/{member_user_id}", response_model=ApiResponse[MessageData])
async def remove_member(
    project_id: str,
    member_user_id: str,
    current_user: CurrentUser,
    members: Members,
):
    """Remove a member from the project. Requires admin or owner. Cannot remove owner."""
    await members.remove(project_id, current_user, member_user_id)
    return ApiResponse(message="Member removed from project")
