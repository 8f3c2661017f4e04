"""Backfill OWNER membership rows for project owners

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute(
        sa.text(
            """
            UPDATE project_members pm
            SET role = 'OWNER', updated_at = now()
            FROM projects p
            WHERE pm.project_id = p.id
              AND pm.user_id = p.owner_id
              AND pm.role <> 'OWNER'
            """
        )
    )
    op.execute(
        sa.text(
            """
            INSERT INTO project_members (id, project_id, user_id, role, created_at, updated_at)
            SELECT gen_random_uuid(), p.id, p.owner_id, 'OWNER', p.created_at, now()
            FROM projects p
            WHERE NOT EXISTS (
                SELECT 1 FROM project_members pm
                WHERE pm.project_id = p.id AND pm.user_id = p.owner_id
            )
            """
        )
    )


def downgrade() -> None:
    # Owner rows are indistinguishable from ones created by the app
    pass
