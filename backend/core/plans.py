"""
Plan configuration for subscription tiers.

This module is the single source of truth for plan limits and prices.
It lives in core/ so both service and API layers can import from it
without creating circular dependencies.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SubscriptionPlan(str, Enum):
    """Subscription plan enumeration."""

    FREE = "FREE"
    BASIC = "BASIC"
    PRO = "PRO"


class SubscriptionStatus(str, Enum):
    """Subscription status enumeration."""

    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class BillingPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class PlanLimits:
    """Quotas for a plan. ``None`` means unlimited."""

    max_projects: Optional[int]
    max_members: Optional[int]

    @property
    def unlimited_projects(self) -> bool:
        return self.max_projects is None

    @property
    def unlimited_members(self) -> bool:
        return self.max_members is None

    def as_dict(self) -> dict:
        """Render limits for API responses, spelling out unlimited values."""
        return {
            "max_projects": "unlimited" if self.max_projects is None else self.max_projects,
            "max_members": "unlimited" if self.max_members is None else self.max_members,
        }


PLAN_LIMITS: dict[SubscriptionPlan, PlanLimits] = {
    SubscriptionPlan.FREE: PlanLimits(max_projects=5, max_members=2),
    SubscriptionPlan.BASIC: PlanLimits(max_projects=None, max_members=10),
    SubscriptionPlan.PRO: PlanLimits(max_projects=None, max_members=50),
}

# Prices in cents (USD)
PLAN_PRICES: dict[SubscriptionPlan, dict[str, int]] = {
    SubscriptionPlan.FREE: {"monthly": 0, "yearly": 0, "yearly_first_time": 0},
    SubscriptionPlan.BASIC: {"monthly": 400, "yearly": 4000, "yearly_first_time": 1500},
    SubscriptionPlan.PRO: {"monthly": 1000, "yearly": 10000, "yearly_first_time": 4000},
}

PLAN_NAMES: dict[SubscriptionPlan, str] = {
    SubscriptionPlan.FREE: "Free",
    SubscriptionPlan.BASIC: "Basic",
    SubscriptionPlan.PRO: "Pro",
}

CURRENCY = "usd"


def plan_limits(plan: SubscriptionPlan | str) -> PlanLimits:
    """Quotas for ``plan``; unknown values fall back to FREE."""
    try:
        return PLAN_LIMITS[SubscriptionPlan(plan)]
    except ValueError:
        return PLAN_LIMITS[SubscriptionPlan.FREE]


def checkout_amount(plan: SubscriptionPlan, period: BillingPeriod, first_time: bool) -> int:
    """Price in cents for a checkout of ``plan`` billed every ``period``."""
    prices = PLAN_PRICES[plan]
    if period == BillingPeriod.YEARLY:
        return prices["yearly_first_time"] if first_time else prices["yearly"]
    return prices["monthly"]


def plan_catalog() -> list[dict]:
    """Public description of every plan, in upgrade order."""
    return [
        {
            "id": plan.value,
            "name": PLAN_NAMES[plan],
            "limits": PLAN_LIMITS[plan].as_dict(),
            "prices": dict(PLAN_PRICES[plan]),
            "currency": CURRENCY,
        }
        for plan in SubscriptionPlan
    ]
