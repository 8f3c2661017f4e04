"""
Subscription and checkout API schemas.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel

from core.plans import BillingPeriod, SubscriptionPlan

Limit = Union[int, str]  # a count, or "unlimited"


class PlanLimitsResponse(BaseModel):
    max_projects: Limit
    max_members: Limit


class PlanResponse(BaseModel):
    """A purchasable plan with its limits and prices in cents."""

    id: SubscriptionPlan
    name: str
    limits: PlanLimitsResponse
    prices: dict[str, int]
    currency: str


class CurrentSubscriptionResponse(BaseModel):
    plan: SubscriptionPlan
    effective_plan: SubscriptionPlan
    status: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_first_time_subscriber: bool
    limits: PlanLimitsResponse


class CheckoutRequest(BaseModel):
    plan: SubscriptionPlan
    period: BillingPeriod = BillingPeriod.MONTHLY


class CheckoutResponse(BaseModel):
    checkout_url: Optional[str] = None
    plan: SubscriptionPlan
    period: BillingPeriod
    amount: int  # cents
    currency: str
    is_first_time: bool


class WebhookAck(BaseModel):
    received: bool = True
