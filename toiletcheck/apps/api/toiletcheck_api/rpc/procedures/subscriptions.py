"""subscription.* procedures. All of them act on the caller's organization."""

from typing import Literal

from pydantic import BaseModel, Field

from toiletcheck_api.billing import subscriptions
from toiletcheck_api.rpc.registry import RpcContext, procedure


class CreateSubscriptionInput(BaseModel):
    planId: str = Field(..., min_length=1)
    billingCycle: Literal["monthly", "yearly"] = "monthly"


class LimitInput(BaseModel):
    resource: Literal["locations", "users", "inspections"]


@procedure("subscription.getPlans")
def get_plans(ctx: RpcContext, _):
    return subscriptions.get_plans(ctx.db)


@procedure("subscription.getCurrentSubscription")
def get_current_subscription(ctx: RpcContext, _):
    return subscriptions.get_current_subscription(ctx.db, ctx.user.organization_id)


@procedure("subscription.getCurrentPlan")
def get_current_plan(ctx: RpcContext, _):
    return subscriptions.get_current_plan(ctx.db, ctx.user.organization_id)


@procedure("subscription.createSubscription", input=CreateSubscriptionInput)
async def create_subscription(ctx: RpcContext, data: CreateSubscriptionInput):
    return await subscriptions.create_subscription(
        ctx.db,
        user_id=ctx.user.user_id,
        organization_id=ctx.user.organization_id,
        plan_id=data.planId,
        billing_cycle=data.billingCycle,
    )


@procedure("subscription.checkLimit", input=LimitInput)
def check_limit(ctx: RpcContext, data: LimitInput):
    return subscriptions.check_limit(ctx.db, ctx.user.organization_id, data.resource)


@procedure("subscription.getPaymentHistory")
def get_payment_history(ctx: RpcContext, _):
    return subscriptions.get_payment_history(ctx.db, ctx.user.organization_id)


@procedure("subscription.cancelSubscription")
def cancel_subscription(ctx: RpcContext, _):
    return subscriptions.cancel_subscription(ctx.db, ctx.user.organization_id)
