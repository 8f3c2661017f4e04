"""
Subscription API routes: plan catalog, current subscription and checkout.
"""

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, Request

from api.dependencies import CurrentUser, get_subscription_service
from api.schemas.common import ApiResponse
from api.schemas.subscription import (
    CheckoutRequest,
    CheckoutResponse,
    CurrentSubscriptionResponse,
    PlanResponse,
    WebhookAck,
)
from core.plans import plan_catalog
from services.subscription import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["Subscription"])

Subscriptions = Annotated[SubscriptionService, Depends(get_subscription_service)]


@router.get("/plans", response_model=ApiResponse[List[PlanResponse]])
async def get_plans():
    """Public plan catalog with limits and prices in cents."""
    return ApiResponse(data=plan_catalog())


@router.get("/current", response_model=ApiResponse[CurrentSubscriptionResponse])
async def get_current_subscription(current_user: CurrentUser, subscriptions: Subscriptions):
    return ApiResponse(data=subscriptions.current_subscription(current_user))


@router.post("/create-checkout", response_model=ApiResponse[CheckoutResponse])
async def create_checkout(data: CheckoutRequest, current_user: CurrentUser, subscriptions: Subscriptions):
    """Price a checkout for a paid plan."""
    checkout = subscriptions.create_checkout(current_user, data.plan, data.period)
    logger.info("Checkout priced for user %s: %s/%s", current_user.id, data.plan.value, data.period.value)
    return ApiResponse(data=checkout)


@router.post("/webhook", response_model=ApiResponse[WebhookAck])
async def subscription_webhook(request: Request):
    """
    Payment provider webhook. Events are acknowledged but not processed.
    """
    body = await request.body()
    logger.info("Subscription webhook received (%d bytes)", len(body))
    return ApiResponse(data=WebhookAck())
