"""
Tests for the maintenance jobs: owner backfill and the invitation sweep.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrastructure.database.models import InvitationStatus, ProjectInvitation, ProjectMember
from services import maintenance


@pytest.fixture
def job_sessions(db_engine, monkeypatch):
    """Point the jobs at the test database."""
    maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(maintenance, "async_session_maker", maker)
    return maker


class TestBackfillOwnerMemberships:
    @pytest.mark.asyncio
    async def test_inserts_missing_and_repairs_wrong_rows(
        self, job_sessions, test_user, other_user, make_project, add_member
    ):
        missing = await make_project(test_user, name="No row", with_owner_row=False)
        wrong = await make_project(other_user, name="Wrong row", with_owner_row=False)
        await add_member(wrong, other_user, role="EDITOR")
        await make_project(test_user, name="Fine")

        assert await maintenance.backfill_owner_memberships() == 2
        assert await maintenance.backfill_owner_memberships() == 0

        async with job_sessions() as session:
            rows = await session.execute(
                select(ProjectMember.project_id, ProjectMember.role).where(
                    ProjectMember.project_id.in_([missing["id"], wrong["id"]])
                )
            )
            assert {row.role for row in rows.all()} == {"OWNER"}


class TestSweepExpiredInvitations:
    @pytest.mark.asyncio
    async def test_marks_only_overdue_pending(self, job_sessions, db_session, test_user, project):
        now = datetime.now(timezone.utc)
        invitations = [
            ProjectInvitation(project_id=project["id"], inviter_id=test_user.id, email="a@x.com",
                              status=InvitationStatus.PENDING.value, expires_at=now - timedelta(days=1)),
            ProjectInvitation(project_id=project["id"], inviter_id=test_user.id, email="b@x.com",
                              status=InvitationStatus.PENDING.value, expires_at=now + timedelta(days=1)),
            ProjectInvitation(project_id=project["id"], inviter_id=test_user.id, email="c@x.com",
                              status=InvitationStatus.REJECTED.value, expires_at=now - timedelta(days=1)),
        ]
        db_session.add_all(invitations)
        await db_session.commit()

        assert await maintenance.sweep_expired_invitations() == 1
        assert await maintenance.sweep_expired_invitations() == 0

        async with job_sessions() as session:
            result = await session.execute(
                select(ProjectInvitation.email, ProjectInvitation.status).order_by(ProjectInvitation.email)
            )
            assert [tuple(row) for row in result.all()] == [
                ("a@x.com", "EXPIRED"),
                ("b@x.com", "PENDING"),
                ("c@x.com", "REJECTED"),
            ]


class TestInvitationSweeper:
    @pytest.mark.asyncio
    async def test_stop_ends_loop(self, monkeypatch):
        sweeper = maintenance.InvitationSweeper(interval_seconds=0)
        calls = []

        async def fake_sweep():
            calls.append(1)
            await sweeper.stop()
            return 0

        monkeypatch.setattr(maintenance, "sweep_expired_invitations", fake_sweep)

        await sweeper.start()

        assert calls == [1]
        assert sweeper.is_running is False
