"""
Maintenance jobs: owner-membership backfill and the invitation sweeper.

Run from the backend directory:

    python -m services.maintenance backfill
    python -m services.maintenance sweep
"""

import asyncio
import logging
import sys

from infrastructure.database.connection import async_session_maker
from services.invitations import InvitationService
from services.projects import ProjectService

logger = logging.getLogger(__name__)


async def backfill_owner_memberships() -> int:
    """Insert or repair OWNER membership rows for every project."""
    async with async_session_maker() as db:
        return await ProjectService(db).backfill_owner_memberships()


async def sweep_expired_invitations() -> int:
    """Mark overdue pending invitations as EXPIRED."""
    async with async_session_maker() as db:
        return await InvitationService(db).sweep_expired()


class InvitationSweeper:
    """Periodically expires overdue invitations while the app is running."""

    def __init__(self, interval_seconds: int = 3600):
        self.is_running = False
        self.check_interval = interval_seconds

    async def start(self):
        """Run the sweep loop until stopped or cancelled."""
        if self.is_running:
            logger.warning("Invitation sweeper is already running")
            return

        self.is_running = True
        logger.info("Invitation sweeper started - checking every %d seconds", self.check_interval)

        while self.is_running:
            try:
                await sweep_expired_invitations()
            except Exception as e:
                logger.error(f"Invitation sweep failed: {e}", exc_info=True)

            await asyncio.sleep(self.check_interval)

    async def stop(self):
        if not self.is_running:
            return

        self.is_running = False
        logger.info("Invitation sweeper stopped")


async def _run(command: str) -> int:
    if command == "backfill":
        changed = await backfill_owner_memberships()
        print(f"Backfilled {changed} owner memberships")
    elif command == "sweep":
        expired = await sweep_expired_invitations()
        print(f"Expired {expired} invitations")
    else:
        print(f"Unknown command: {command}. Use 'backfill' or 'sweep'.", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    from infrastructure.logging_config import setup_logging

    setup_logging(json_output=False, level="INFO")
    sys.exit(asyncio.run(_run(sys.argv[1] if len(sys.argv) > 1 else "backfill")))
