"""
Subscription-limit evaluator.

Computes per-plan quotas and decides which projects and members stay
accessible after a plan downgrade. Downgrades never delete rows: projects
and members beyond the new limits are filtered out on every read and come
back once the plan is upgraded or the counts drop.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestError, ForbiddenError, NotFoundError, QuotaExceededError
from core.plans import (
    CURRENCY,
    BillingPeriod,
    PlanLimits,
    SubscriptionPlan,
    SubscriptionStatus,
    checkout_amount,
    plan_limits,
)
from infrastructure.database.models.base import as_utc, utcnow
from infrastructure.database.models.project import Project, ProjectMember
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Service for plan limits, accessible-set computation and subscription state.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize subscription service.

        Args:
            db: Async database session
        """
        self.db = db

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    @staticmethod
    def effective_plan(user: User, now: Optional[datetime] = None) -> SubscriptionPlan:
        """
        The plan whose limits currently apply to ``user``.

        Expired subscriptions, or paid plans whose end date has passed,
        fall back to FREE.
        """
        try:
            plan = SubscriptionPlan(user.subscription_plan)
        except ValueError:
            return SubscriptionPlan.FREE

        if plan == SubscriptionPlan.FREE:
            return plan
        if user.subscription_status == SubscriptionStatus.EXPIRED.value:
            return SubscriptionPlan.FREE

        end_date = as_utc(user.subscription_end_date)
        if end_date is not None and end_date < (now or utcnow()):
            return SubscriptionPlan.FREE
        return plan

    def limits_for(self, user: User) -> PlanLimits:
        return plan_limits(self.effective_plan(user))

    async def get_user(self, user_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise NotFoundError("User not found")
        return user

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    @staticmethod
    def _related_projects_stmt(user_id: str):
        """Projects the user owns or holds a membership row in (each counted once)."""
        member_project_ids = select(ProjectMember.project_id).where(
            ProjectMember.user_id == user_id
        )
        return select(Project.id, Project.created_at).where(
            or_(Project.owner_id == user_id, Project.id.in_(member_project_ids))
        )

    async def count_user_projects(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(self._related_projects_stmt(user_id).subquery())
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def can_create_project(self, user_id: str) -> bool:
        """
        Check whether a user may create another project.

        True if the plan allows unlimited projects, or the number of owned
        plus member projects is below the plan's ``max_projects``.
        """
        user = await self.get_user(user_id)
        limits = self.limits_for(user)
        if limits.unlimited_projects:
            return True
        return await self.count_user_projects(user_id) < limits.max_projects

    async def ensure_can_create_project(self, user: User) -> None:
        """
        Raises:
            QuotaExceededError: If the user's plan has no project capacity left
        """
        if not await self.can_create_project(user.id):
            plan = self.effective_plan(user).value
            logger.info("Project limit reached for user %s on %s plan", user.id, plan)
            raise QuotaExceededError(
                plan,
                f"Your {plan} plan has reached the project limit. "
                "Please upgrade to create more projects.",
            )

    async def accessible_project_ids(self, user_id: str) -> list[str]:
        """
        Projects still visible to a user under the current plan.

        Unlimited plans see every owned or member project. Limited plans see
        only the ``max_projects`` most recently created ones.
        """
        user = await self.get_user(user_id)
        limits = self.limits_for(user)

        stmt = self._related_projects_stmt(user_id).order_by(
            Project.created_at.desc(), Project.id.desc()
        )
        if not limits.unlimited_projects:
            stmt = stmt.limit(limits.max_projects)

        result = await self.db.execute(stmt)
        return [row.id for row in result.all()]

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def _non_owner_member_ids(self, project_id: str, owner_id: str) -> list[str]:
        """Member user ids other than the owner, earliest-joined first."""
        result = await self.db.execute(
            select(ProjectMember.user_id)
            .where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id != owner_id,
            )
            .order_by(ProjectMember.created_at.asc(), ProjectMember.id.asc())
        )
        return list(result.scalars().all())

    async def count_members(self, project_id: str, owner_id: str) -> int:
        """Member count including the owner, who is counted exactly once."""
        return len(await self._non_owner_member_ids(project_id, owner_id)) + 1

    async def can_add_member(self, project_id: str, owner_user_id: str) -> bool:
        """
        Check whether a project can take one more member.

        Evaluated against the project owner's plan, not the acting user's.
        """
        owner = await self.get_user(owner_user_id)
        limits = self.limits_for(owner)
        if limits.unlimited_members:
            return True
        return await self.count_members(project_id, owner_user_id) < limits.max_members

    async def ensure_can_add_member(self, project: Project) -> None:
        """
        Raises:
            QuotaExceededError: If the owner's plan has no member capacity left
        """
        if not await self.can_add_member(project.id, project.owner_id):
            owner = await self.get_user(project.owner_id)
            plan = self.effective_plan(owner).value
            raise QuotaExceededError(
                plan,
                f"The project owner's {plan} plan has reached the member limit. "
                "Please upgrade to add more members.",
            )

    async def accessible_member_ids(self, project_id: str, owner_id: str) -> list[str]:
        """
        Members who keep access under the owner's current plan, owner first.

        Limited plans keep the owner plus the earliest-joined
        ``max_members - 1`` members.
        """
        owner = await self.get_user(owner_id)
        limits = self.limits_for(owner)
        member_ids = await self._non_owner_member_ids(project_id, owner_id)

        if not limits.unlimited_members:
            member_ids = member_ids[: max(limits.max_members - 1, 0)]
        return [owner_id, *member_ids]

    async def require_member_access(self, project: Project, user_id: str) -> None:
        """
        Deny project data to members pushed out by an owner's downgrade.

        Raises:
            ForbiddenError: If ``user_id`` is outside the accessible member set
        """
        if user_id == project.owner_id:
            return
        if user_id not in await self.accessible_member_ids(project.id, project.owner_id):
            raise ForbiddenError(
                "The project owner's subscription plan no longer includes your membership"
            )

    async def require_project_access(self, project: Project, user_id: str) -> None:
        """
        Gate every read and write on a project by the current plans.

        The project must be in the user's accessible projects, and the user
        must be in the owner's accessible members.

        Raises:
            NotFoundError: If the user's plan no longer includes the project
            ForbiddenError: If the owner's plan no longer includes the user
        """
        if project.id not in await self.accessible_project_ids(user_id):
            raise NotFoundError("Project not found")
        await self.require_member_access(project, user_id)

    # ------------------------------------------------------------------
    # Subscription state
    # ------------------------------------------------------------------

    def current_subscription(self, user: User) -> dict:
        """Summary of a user's subscription and the limits that apply to it."""
        return {
            "plan": user.subscription_plan,
            "effective_plan": self.effective_plan(user).value,
            "status": user.subscription_status,
            "start_date": as_utc(user.subscription_start_date),
            "end_date": as_utc(user.subscription_end_date),
            "is_first_time_subscriber": user.is_first_time_subscriber,
            "limits": self.limits_for(user).as_dict(),
        }

    async def update_user_subscription(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> User:
        """
        Persist a subscription change.

        Downgrades take effect through the accessible-set filters; no
        projects or memberships are removed.
        """
        user = await self.get_user(user_id)
        previous = user.subscription_plan

        user.subscription_plan = SubscriptionPlan(plan).value
        user.subscription_status = SubscriptionStatus(status).value
        user.subscription_start_date = start_date
        user.subscription_end_date = end_date
        if plan != SubscriptionPlan.FREE:
            user.is_first_time_subscriber = False

        await self.db.commit()
        logger.info("Subscription for user %s changed from %s to %s", user_id, previous, user.subscription_plan)
        return user

    def create_checkout(self, user: User, plan: SubscriptionPlan, period: BillingPeriod) -> dict:
        """
        Price a checkout for ``plan``. Payment capture is not wired up; the
        returned session carries no URL.

        Raises:
            BadRequestError: For the FREE plan
        """
        if plan == SubscriptionPlan.FREE:
            raise BadRequestError("Cannot checkout free plan")

        is_first_time = bool(user.is_first_time_subscriber) and period == BillingPeriod.YEARLY
        return {
            "checkout_url": None,
            "plan": plan.value,
            "period": period.value,
            "amount": checkout_amount(plan, period, is_first_time),
            "currency": CURRENCY,
            "is_first_time": is_first_time,
        }
