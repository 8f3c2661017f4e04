"""
Integration tests for the Tasks API.

Tests cover:
- Role checks (viewers read, editors write)
- Date, progress and dependency validation before any write
- Dependency replacement and cleanup on delete
- Both project-scoped route forms
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from infrastructure.database.models import Task, TaskDependency


def _task(name="Design", start="2024-01-01T00:00:00Z", end="2024-01-05T00:00:00Z", **extra) -> dict:
    return {"name": name, "start_date": start, "end_date": end, **extra}


async def _create(client: AsyncClient, project_id: str, headers: dict, **kwargs) -> dict:
    response = await client.post(f"/api/projects/{project_id}/tasks", json=_task(**kwargs), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_editor_creates_task(
        self, async_client: AsyncClient, other_auth: dict, other_user, project: dict, add_member
    ):
        await add_member(project, other_user, role="EDITOR")

        response = await async_client.post(
            f"/api/projects/{project['id']}/tasks",
            json=_task(progress=40, color="#ff0000", assignee="Ann", description="Mockups"),
            headers=other_auth,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["project_id"] == project["id"]
        assert data["progress"] == 40
        assert data["color"] == "#ff0000"
        assert data["dependencies"] == []
        assert data["start_date"].startswith("2024-01-01T00:00:00")

    @pytest.mark.asyncio
    async def test_viewer_cannot_create_task(
        self, async_client: AsyncClient, other_auth: dict, other_user, project: dict, add_member
    ):
        await add_member(project, other_user, role="VIEWER")

        response = await async_client.post(
            f"/api/projects/{project['id']}/tasks", json=_task(), headers=other_auth
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_inverted_dates_fail_before_any_write(
        self, async_client: AsyncClient, auth_headers: dict, project: dict, db_session
    ):
        response = await async_client.post(
            f"/api/projects/{project['id']}/tasks",
            json=_task(start="2024-01-10T00:00:00Z", end="2024-01-05T00:00:00Z"),
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Start date must be before end date"
        assert await db_session.scalar(select(func.count()).select_from(Task)) == 0

    @pytest.mark.asyncio
    async def test_equal_dates_are_rejected(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        response = await async_client.post(
            f"/api/projects/{project['id']}/tasks",
            json=_task(start="2024-01-05T00:00:00Z", end="2024-01-05T00:00:00Z"),
            headers=auth_headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_progress_out_of_range_is_rejected(
        self, async_client: AsyncClient, auth_headers: dict, project: dict
    ):
        response = await async_client.post(
            f"/api/projects/{project['id']}/tasks", json=_task(progress=101), headers=auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_blank_name_is_rejected(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        response = await async_client.post(
            f"/api/projects/{project['id']}/tasks", json=_task(name="  "), headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Task name is required"

    @pytest.mark.asyncio
    async def test_dependency_in_other_project_is_rejected(
        self, async_client: AsyncClient, auth_headers: dict, test_user, project: dict, make_project, db_session
    ):
        other_project = await make_project(test_user, name="Elsewhere")
        foreign = await _create(async_client, other_project["id"], auth_headers, name="Foreign")

        response = await async_client.post(
            f"/api/projects/{project['id']}/tasks",
            json=_task(dependencies=[foreign["id"]]),
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Some dependency tasks not found"
        assert await db_session.scalar(select(func.count()).select_from(Task)) == 1

    @pytest.mark.asyncio
    async def test_create_with_dependencies(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        first = await _create(async_client, project["id"], auth_headers, name="First")
        second = await _create(async_client, project["id"], auth_headers, name="Second")

        third = await _create(
            async_client,
            project["id"],
            auth_headers,
            name="Third",
            dependencies=[first["id"], second["id"], first["id"]],
        )

        assert third["dependencies"] == [first["id"], second["id"]]


class TestReadTasks:
    @pytest.mark.asyncio
    async def test_list_is_ordered_by_start_date(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        late = await _create(async_client, project["id"], auth_headers, name="Late", start="2024-03-01T00:00:00Z", end="2024-03-02T00:00:00Z")
        early = await _create(async_client, project["id"], auth_headers, name="Early", start="2024-01-01T00:00:00Z", end="2024-01-02T00:00:00Z")

        response = await async_client.get(f"/api/projects/{project['id']}/tasks", headers=auth_headers)

        assert [t["id"] for t in response.json()["data"]] == [early["id"], late["id"]]

    @pytest.mark.asyncio
    async def test_alternate_route_form(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        created = await async_client.post(
            f"/api/tasks/projects/{project['id']}/tasks", json=_task(), headers=auth_headers
        )
        assert created.status_code == 201

        response = await async_client.get(f"/api/tasks/projects/{project['id']}/tasks", headers=auth_headers)

        assert [t["id"] for t in response.json()["data"]] == [created.json()["data"]["id"]]

    @pytest.mark.asyncio
    async def test_viewer_reads_single_task(
        self, async_client: AsyncClient, auth_headers: dict, other_auth: dict, other_user, project: dict, add_member
    ):
        await add_member(project, other_user, role="VIEWER")
        task = await _create(async_client, project["id"], auth_headers)

        response = await async_client.get(f"/api/tasks/{task['id']}", headers=other_auth)

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Design"

    @pytest.mark.asyncio
    async def test_outsider_cannot_read_tasks(
        self, async_client: AsyncClient, auth_headers: dict, other_auth: dict, project: dict
    ):
        task = await _create(async_client, project["id"], auth_headers)

        assert (await async_client.get(f"/api/tasks/{task['id']}", headers=other_auth)).status_code == 403
        assert (
            await async_client.get(f"/api/projects/{project['id']}/tasks", headers=other_auth)
        ).status_code == 403

    @pytest.mark.asyncio
    async def test_missing_task_is_not_found(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.get(
            "/api/tasks/9b2f0c1e-0000-4000-8000-000000000000", headers=auth_headers
        )

        assert response.status_code == 404


class TestUpdateTask:
    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        task = await _create(async_client, project["id"], auth_headers, color="#00ff00")

        response = await async_client.put(f"/api/tasks/{task['id']}", json={"progress": 75}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["progress"] == 75
        assert data["color"] == "#00ff00"
        assert data["name"] == "Design"

    @pytest.mark.asyncio
    async def test_merged_dates_are_revalidated(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        task = await _create(async_client, project["id"], auth_headers)

        response = await async_client.put(
            f"/api/tasks/{task['id']}", json={"end_date": "2023-12-31T00:00:00Z"}, headers=auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_dependencies_are_replaced(
        self, async_client: AsyncClient, auth_headers: dict, project: dict, db_session
    ):
        a = await _create(async_client, project["id"], auth_headers, name="A")
        b = await _create(async_client, project["id"], auth_headers, name="B")
        c = await _create(async_client, project["id"], auth_headers, name="C", dependencies=[a["id"]])

        response = await async_client.put(
            f"/api/tasks/{c['id']}", json={"dependencies": [b["id"]]}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["dependencies"] == [b["id"]]
        assert await db_session.scalar(select(func.count()).select_from(TaskDependency)) == 1

    @pytest.mark.asyncio
    async def test_self_dependency_is_rejected(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        task = await _create(async_client, project["id"], auth_headers)

        response = await async_client.put(
            f"/api/tasks/{task['id']}", json={"dependencies": [task["id"]]}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Some dependency tasks not found"

    @pytest.mark.asyncio
    async def test_viewer_cannot_update(
        self, async_client: AsyncClient, auth_headers: dict, other_auth: dict, other_user, project: dict, add_member
    ):
        await add_member(project, other_user, role="VIEWER")
        task = await _create(async_client, project["id"], auth_headers)

        response = await async_client.put(f"/api/tasks/{task['id']}", json={"progress": 10}, headers=other_auth)

        assert response.status_code == 403


class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_delete_removes_edges_in_both_directions(
        self, async_client: AsyncClient, auth_headers: dict, project: dict, db_session
    ):
        a = await _create(async_client, project["id"], auth_headers, name="A")
        b = await _create(async_client, project["id"], auth_headers, name="B", dependencies=[a["id"]])
        await _create(async_client, project["id"], auth_headers, name="C", dependencies=[b["id"]])

        response = await async_client.delete(f"/api/tasks/{b['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert await db_session.scalar(select(func.count()).select_from(Task)) == 2
        assert await db_session.scalar(select(func.count()).select_from(TaskDependency)) == 0

    @pytest.mark.asyncio
    async def test_cycles_are_not_rejected(self, async_client: AsyncClient, auth_headers: dict, project: dict):
        a = await _create(async_client, project["id"], auth_headers, name="A")
        b = await _create(async_client, project["id"], auth_headers, name="B", dependencies=[a["id"]])

        response = await async_client.put(
            f"/api/tasks/{a['id']}", json={"dependencies": [b["id"]]}, headers=auth_headers
        )

        assert response.status_code == 200
