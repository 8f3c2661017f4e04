"""
Task API routes.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from api.dependencies import CurrentUser, get_task_service
from api.schemas.common import ApiResponse, MessageData
from api.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from services.tasks import TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])

Tasks = Annotated[TaskService, Depends(get_task_service)]


@router.get("/projects/{project_id}/tasks", response_model=ApiResponse[List[TaskResponse]])
async def list_tasks(project_id: str, current_user: CurrentUser, tasks: Tasks):
    """List a project's tasks ordered by start date."""
    listed = await tasks.list_tasks(project_id, current_user)
    return ApiResponse(data=[TaskResponse.from_task(t, deps) for t, deps in listed])


@router.post(
    "/projects/{project_id}/tasks",
    response_model=ApiResponse[TaskResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_task(project_id: str, data: TaskCreate, current_user: CurrentUser, tasks: Tasks):
    """Create a task. Requires editor role or higher."""
    task, deps = await tasks.create_task(project_id, current_user, data.model_dump())
    return ApiResponse(data=TaskResponse.from_task(task, deps))


@router.get("/{task_id}", response_model=ApiResponse[TaskResponse])
async def get_task(task_id: str, current_user: CurrentUser, tasks: Tasks):
    task, deps = await tasks.get_task(task_id, current_user)
    return ApiResponse(data=TaskResponse.from_task(task, deps))


@router.put("/{task_id}", response_model=ApiResponse[TaskResponse])
async def update_task(task_id: str, data: TaskUpdate, current_user: CurrentUser, tasks: Tasks):
    """
    Update a task. Only fields present in the body change; ``dependencies``
    replaces the whole dependency set.
    """
    task, deps = await tasks.update_task(task_id, current_user, data.model_dump(exclude_unset=True))
    return ApiResponse(data=TaskResponse.from_task(task, deps))


@router.delete("/{task_id}", response_model=ApiResponse[MessageData])
async def delete_task(task_id: str, current_user: CurrentUser, tasks: Tasks):
    await tasks.delete_task(task_id, current_user)
    return ApiResponse(message="Task deleted successfully")
