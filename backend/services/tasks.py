"""
Task service: Gantt tasks and their dependency edges.

Dependencies are directed edges within a single project. Cycles are not
checked.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestError, NotFoundError
from core.roles import ProjectRole
from infrastructure.database.connection import transaction
from infrastructure.database.models.base import as_utc
from infrastructure.database.models.project import Project
from infrastructure.database.models.task import Task, TaskDependency
from infrastructure.database.models.user import User
from services.authorization import ProjectAuthorizationService
from services.subscription import SubscriptionService

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "description", "start_date", "end_date", "progress", "color", "assignee")

TaskWithDependencies = tuple[Task, list[str]]


def validate_task_fields(
    name: Optional[str],
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    progress: Optional[int],
) -> None:
    """
    Check the invariants of a task's fields.

    Raises:
        BadRequestError: On an empty name, missing or inverted dates, or
            progress outside 0..100
    """
    if name is None or not name.strip():
        raise BadRequestError("Task name is required")
    if start_date is None or end_date is None:
        raise BadRequestError("Start date and end date are required")
    if as_utc(start_date) >= as_utc(end_date):
        raise BadRequestError("Start date must be before end date")
    if progress is not None and not 0 <= progress <= 100:
        raise BadRequestError("Progress must be between 0 and 100")


class TaskService:
    """Task CRUD. Reads need any role, writes need EDITOR or above."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.authz = ProjectAuthorizationService(db)
        self.subscriptions = SubscriptionService(db)

    async def _require(self, project_id: str, user: User, min_role: ProjectRole) -> Project:
        project, _ = await self.authz.require_minimum_role(project_id, user.id, min_role)
        await self.subscriptions.require_project_access(project, user.id)
        return project

    async def _load_task(self, task_id: str) -> Task:
        result = await self.db.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if not task:
            raise NotFoundError("Task not found")
        return task

    async def _dependency_ids(self, task_ids: list[str]) -> dict[str, list[str]]:
        deps: dict[str, list[str]] = {task_id: [] for task_id in task_ids}
        if not task_ids:
            return deps
        result = await self.db.execute(
            select(TaskDependency.task_id, TaskDependency.depends_on_task_id)
            .where(TaskDependency.task_id.in_(task_ids))
            .order_by(TaskDependency.created_at.asc(), TaskDependency.id.asc())
        )
        for row in result.all():
            deps[row.task_id].append(row.depends_on_task_id)
        return deps

    async def _resolve_dependencies(
        self, project_id: str, dependency_ids: list[str], exclude_task_id: Optional[str] = None
    ) -> list[str]:
        """
        Confirm every dependency id names a task in the same project.

        Raises:
            BadRequestError: If any id is unknown, in another project, or the task itself
        """
        unique_ids = list(dict.fromkeys(dependency_ids))
        if not unique_ids:
            return []
        stmt = select(Task.id).where(Task.id.in_(unique_ids), Task.project_id == project_id)
        if exclude_task_id is not None:
            stmt = stmt.where(Task.id != exclude_task_id)
        result = await self.db.execute(stmt)
        found = set(result.scalars().all())
        if len(found) != len(unique_ids):
            raise BadRequestError("Some dependency tasks not found")
        return unique_ids

    async def list_tasks(self, project_id: str, user: User) -> list[TaskWithDependencies]:
        """Tasks of a project ordered by start date."""
        await self._require(project_id, user, ProjectRole.VIEWER)
        result = await self.db.execute(
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.start_date.asc(), Task.created_at.asc())
        )
        tasks = list(result.scalars().all())
        deps = await self._dependency_ids([t.id for t in tasks])
        return [(task, deps[task.id]) for task in tasks]

    async def get_task(self, task_id: str, user: User) -> TaskWithDependencies:
        """
        Read a single task.

        Raises:
            NotFoundError: If the task does not exist or its project is no
                longer included in the user's plan
        """
        task = await self._load_task(task_id)
        await self._require(task.project_id, user, ProjectRole.VIEWER)
        deps = await self._dependency_ids([task.id])
        return task, deps[task.id]

    async def create_task(self, project_id: str, user: User, data: dict[str, Any]) -> TaskWithDependencies:
        """
        Create a task and its dependency edges in one transaction.

        All validation runs before anything is written.
        """
        await self._require(project_id, user, ProjectRole.EDITOR)

        progress = data.get("progress")
        validate_task_fields(data.get("name"), data.get("start_date"), data.get("end_date"), progress)
        dependency_ids = await self._resolve_dependencies(project_id, data.get("dependencies") or [])

        task = Task(
            project_id=project_id,
            name=data["name"].strip(),
            description=data.get("description"),
            start_date=data["start_date"],
            end_date=data["end_date"],
            progress=progress if progress is not None else 0,
            color=data.get("color"),
            assignee=data.get("assignee"),
        )
        async with transaction(self.db):
            self.db.add(task)
            await self.db.flush()
            for dep_id in dependency_ids:
                self.db.add(TaskDependency(task_id=task.id, depends_on_task_id=dep_id))

        logger.info("Task %s created in project %s by %s", task.id, project_id, user.id)
        return task, dependency_ids

    async def update_task(self, task_id: str, user: User, data: dict[str, Any]) -> TaskWithDependencies:
        """
        Apply a partial update. A ``dependencies`` key replaces the whole edge set.
        """
        task = await self._load_task(task_id)
        await self._require(task.project_id, user, ProjectRole.EDITOR)

        changes = {k: data[k] for k in _EDITABLE_FIELDS if k in data}
        for field in ("name", "start_date", "end_date"):
            if field in changes and changes[field] is None:
                raise BadRequestError(f"{field} cannot be null")
        validate_task_fields(
            changes.get("name", task.name),
            changes.get("start_date", task.start_date),
            changes.get("end_date", task.end_date),
            changes.get("progress", task.progress),
        )
        if changes.get("progress", 0) is None:
            changes["progress"] = 0
        if "name" in changes:
            changes["name"] = changes["name"].strip()

        replace_deps = "dependencies" in data and data["dependencies"] is not None
        dependency_ids: list[str] = []
        if replace_deps:
            dependency_ids = await self._resolve_dependencies(
                task.project_id, data["dependencies"], exclude_task_id=task.id
            )

        async with transaction(self.db):
            for field, value in changes.items():
                setattr(task, field, value)
            if replace_deps:
                await self.db.execute(
                    delete(TaskDependency)
                    .where(TaskDependency.task_id == task.id)
                    .execution_options(synchronize_session=False)
                )
                for dep_id in dependency_ids:
                    self.db.add(TaskDependency(task_id=task.id, depends_on_task_id=dep_id))

        deps = await self._dependency_ids([task.id])
        return task, deps[task.id]

    async def delete_task(self, task_id: str, user: User) -> None:
        """Delete a task and every dependency edge touching it."""
        task = await self._load_task(task_id)
        await self._require(task.project_id, user, ProjectRole.EDITOR)

        async with transaction(self.db):
            await self.db.execute(
                delete(TaskDependency)
                .where(
                    or_(
                        TaskDependency.task_id == task.id,
                        TaskDependency.depends_on_task_id == task.id,
                    )
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.delete(task)

        logger.info("Task %s deleted by %s", task_id, user.id)
