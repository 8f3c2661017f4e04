"""
Integration tests for the Projects API.

Tests cover:
- Creating projects and the owner's OWNER membership
- The FREE plan project quota
- Listing, reading, updating and deleting with role checks
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from infrastructure.database.models import Project, ProjectInvitation, ProjectMember, Task, TaskDependency
from services.projects import ProjectService


class TestCreateProject:
    """Tests for POST /projects."""

    @pytest.mark.asyncio
    async def test_create_project_makes_creator_owner(
        self, async_client: AsyncClient, auth_headers: dict, test_user, db_session
    ):
        user_id = test_user.id
        response = await async_client.post(
            "/api/projects", json={"name": "Launch", "description": "Q3 launch"}, headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Launch"
        assert data["owner_id"] == user_id
        assert data["user_role"] == "OWNER"

        member = await db_session.scalar(
            select(ProjectMember).where(ProjectMember.project_id == data["id"])
        )
        assert member.user_id == user_id
        assert member.role == "OWNER"

    @pytest.mark.asyncio
    async def test_blank_name_is_rejected(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post("/api/projects", json={"name": "   "}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Project name is required"

    @pytest.mark.asyncio
    async def test_sixth_project_on_free_plan_exceeds_quota(
        self, async_client: AsyncClient, auth_headers: dict, test_user, make_project, db_session
    ):
        for i in range(5):
            await make_project(test_user, name=f"P{i}")

        response = await async_client.post("/api/projects", json={"name": "P6"}, headers=auth_headers)

        assert response.status_code == 403
        body = response.json()
        assert body["status"] == "fail"
        assert body["data"] == {"plan": "FREE"}
        assert "project limit" in body["message"]
        assert await db_session.scalar(select(func.count()).select_from(Project)) == 5

    @pytest.mark.asyncio
    async def test_member_projects_count_toward_quota(
        self, async_client: AsyncClient, auth_headers: dict, test_user, other_user, make_project, add_member
    ):
        for i in range(3):
            await make_project(test_user, name=f"Own {i}")
        for i in range(2):
            shared = await make_project(other_user, name=f"Shared {i}")
            await add_member(shared, test_user)

        response = await async_client.post("/api/projects", json={"name": "One more"}, headers=auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_paid_plan_has_no_project_quota(self, async_client: AsyncClient, make_user, make_project, headers_for):
        pro = await make_user("pro@example.com", plan="PRO")
        for i in range(6):
            await make_project(pro, name=f"P{i}")

        response = await async_client.post("/api/projects", json={"name": "P7"}, headers=headers_for(pro))

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_create_requires_authentication(self, async_client: AsyncClient):
        response = await async_client.post("/api/projects", json={"name": "Nope"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_failed_owner_membership_rolls_back_project(self, test_user, db_session, monkeypatch):
        def _fail(**kwargs):
            raise RuntimeError("membership insert failed")

        monkeypatch.setattr("services.projects.ProjectMember", _fail)

        with pytest.raises(RuntimeError):
            await ProjectService(db_session).create_project(test_user, "Launch")

        assert await db_session.scalar(select(func.count()).select_from(Project)) == 0
        assert await db_session.scalar(select(func.count()).select_from(ProjectMember)) == 0


class TestListAndGetProjects:
    """Tests for GET /projects and GET /projects/{id}."""

    @pytest.mark.asyncio
    async def test_list_includes_owned_and_member_projects_with_roles(
        self, async_client: AsyncClient, auth_headers: dict, test_user, other_user, make_project, add_member
    ):
        own = await make_project(test_user, name="Mine")
        shared = await make_project(other_user, name="Theirs")
        await add_member(shared, test_user, role="VIEWER")
        await make_project(other_user, name="Private")

        response = await async_client.get("/api/projects", headers=auth_headers)

        assert response.status_code == 200
        roles = {p["id"]: p["user_role"] for p in response.json()["data"]}
        assert roles == {own["id"]: "OWNER", shared["id"]: "VIEWER"}

    @pytest.mark.asyncio
    async def test_list_is_ordered_by_last_update(
        self, async_client: AsyncClient, auth_headers: dict, test_user, make_project
    ):
        now = datetime.now(timezone.utc)
        older = await make_project(test_user, name="Older", created_at=now - timedelta(days=2))
        newer = await make_project(test_user, name="Newer", created_at=now - timedelta(days=1))

        response = await async_client.get("/api/projects", headers=auth_headers)

        assert [p["id"] for p in response.json()["data"]] == [newer["id"], older["id"]]

    @pytest.mark.asyncio
    async def test_get_project_as_member(
        self, async_client: AsyncClient, other_auth: dict, other_user, project: dict, add_member
    ):
        await add_member(project, other_user, role="EDITOR")

        response = await async_client.get(f"/api/projects/{project['id']}", headers=other_auth)

        assert response.status_code == 200
        assert response.json()["data"]["user_role"] == "EDITOR"

    @pytest.mark.asyncio
    async def test_get_project_without_role_is_forbidden(
        self, async_client: AsyncClient, other_auth: dict, project: dict
    ):
        response = await async_client.get(f"/api/projects/{project['id']}", headers=other_auth)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_get_missing_project_is_not_found(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.get(
            "/api/projects/9b2f0c1e-0000-4000-8000-000000000000", headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json() == {"status": "fail", "message": "Project not found"}


class TestUpdateProject:
    """Tests for PUT /projects/{id}."""

    @pytest.mark.asyncio
    async def test_admin_can_update(
        self, async_client: AsyncClient, other_auth: dict, other_user, project: dict, add_member
    ):
        await add_member(project, other_user, role="ADMIN")

        response = await async_client.put(
            f"/api/projects/{project['id']}",
            json={"name": "Renamed", "description": "New"},
            headers=other_auth,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed"
        assert data["description"] == "New"
        assert data["user_role"] == "ADMIN"

    @pytest.mark.asyncio
    async def test_editor_cannot_update(
        self, async_client: AsyncClient, other_auth: dict, other_user, project: dict, add_member
    ):
        await add_member(project, other_user, role="EDITOR")

        response = await async_client.put(
            f"/api/projects/{project['id']}", json={"name": "Renamed"}, headers=other_auth
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient permissions. ADMIN role or higher required"


class TestDeleteProject:
    """Tests for DELETE /projects/{id}."""

    @pytest.mark.asyncio
    async def test_owner_deletes_project_and_everything_in_it(
        self, async_client: AsyncClient, auth_headers: dict, project: dict, db_session
    ):
        first = await async_client.post(
            f"/api/projects/{project['id']}/tasks",
            json={"name": "A", "start_date": "2024-01-01T00:00:00Z", "end_date": "2024-01-02T00:00:00Z"},
            headers=auth_headers,
        )
        await async_client.post(
            f"/api/projects/{project['id']}/tasks",
            json={
                "name": "B",
                "start_date": "2024-01-02T00:00:00Z",
                "end_date": "2024-01-03T00:00:00Z",
                "dependencies": [first.json()["data"]["id"]],
            },
            headers=auth_headers,
        )
        await async_client.post(
            f"/api/projects/{project['id']}/invitations",
            json={"email": "guest@example.com"},
            headers=auth_headers,
        )

        response = await async_client.delete(f"/api/projects/{project['id']}", headers=auth_headers)

        assert response.status_code == 200
        for model in (Project, ProjectMember, ProjectInvitation, Task, TaskDependency):
            assert await db_session.scalar(select(func.count()).select_from(model)) == 0

    @pytest.mark.asyncio
    async def test_admin_cannot_delete(
        self, async_client: AsyncClient, other_auth: dict, other_user, project: dict, add_member
    ):
        await add_member(project, other_user, role="ADMIN")

        response = await async_client.delete(f"/api/projects/{project['id']}", headers=other_auth)

        assert response.status_code == 403
