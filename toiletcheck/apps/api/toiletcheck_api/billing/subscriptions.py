"""Plans, subscriptions, usage limits and payment history for an organization."""

import calendar
import logging
import secrets
import string
import time
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from toiletcheck_api.billing.midtrans import MidtransClient, get_midtrans_client
from toiletcheck_api.config.env import get_app_url
from toiletcheck_api.db.models import (
    InspectionRecord,
    Location,
    Organization,
    Payment,
    Plan,
    Subscription,
    User,
)
from toiletcheck_api.errors import BadRequestError, InternalServiceError, NotFoundError
from toiletcheck_api.services.serializers import (
    payment_to_dict,
    plan_to_dict,
    subscription_to_dict,
)

logger = logging.getLogger(__name__)

BILLING_CYCLES = ("monthly", "yearly")
LIMITED_RESOURCES = ("locations", "users", "inspections")

# Plan prices are stored in hundred-thousandths of the gateway amount
PRICE_DIVISOR = 100000
NEAR_LIMIT_PERCENT = 80
PAYMENT_HISTORY_LIMIT = 20

_ID_ALPHABET = string.ascii_letters + string.digits


def _random_id(length: int) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def new_subscription_id() -> str:
    return f"sub_{_random_id(16)}"


def new_payment_id() -> str:
    return f"pay_{_random_id(16)}"


def new_order_id() -> str:
    return f"ORDER-{int(time.time() * 1000)}-{_random_id(8)}"


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def billing_period(start: datetime, billing_cycle: str) -> tuple[datetime, datetime]:
    return start, add_months(start, 12 if billing_cycle == "yearly" else 1)


def get_plans(db: Session) -> list[dict[str, Any]]:
    stmt = select(Plan).where(Plan.is_active.is_(True)).order_by(Plan.sort_order)
    return [plan_to_dict(p) for p in db.execute(stmt).scalars()]


def _subscription_row(db: Session, organization_id: Optional[str]) -> Optional[Subscription]:
    stmt = (
        select(Subscription)
        .where(Subscription.organization_id == organization_id)
        .order_by(Subscription.created_at.desc())
        .limit(1)
    )
    return db.execute(stmt).unique().scalar_one_or_none()


def get_current_subscription(db: Session, organization_id: Optional[str]) -> Optional[dict[str, Any]]:
    subscription = _subscription_row(db, organization_id)
    return subscription_to_dict(subscription) if subscription else None


def _current_plan(db: Session, organization_id: Optional[str]) -> Optional[Plan]:
    org = db.get(Organization, organization_id) if organization_id else None
    if org is None:
        raise NotFoundError("Organization not found")
    if not org.current_plan_id:
        return None
    return db.get(Plan, org.current_plan_id)


def get_current_plan(db: Session, organization_id: Optional[str]) -> Optional[dict[str, Any]]:
    plan = _current_plan(db, organization_id)
    return plan_to_dict(plan) if plan else None


async def create_subscription(
    db: Session,
    *,
    user_id: str,
    organization_id: Optional[str],
    plan_id: str,
    billing_cycle: str,
    client: Optional[MidtransClient] = None,
) -> dict[str, Any]:
    """Upsert a pending subscription, record a pending payment and open a Snap transaction.

    Returns:
        {subscriptionId, orderId, paymentToken, paymentUrl}

    Raises:
        NotFoundError: plan unknown or inactive
        BadRequestError: free plan, custom-priced plan or bad billing cycle
        InternalServiceError: gateway not configured or transaction rejected
    """
    if billing_cycle not in BILLING_CYCLES:
        raise BadRequestError("billingCycle must be monthly or yearly")
    if not organization_id:
        raise BadRequestError("User is not associated with an organization")

    if client is None:
        try:
            client = get_midtrans_client()
        except ValueError:
            raise InternalServiceError("Payment gateway not configured. Please contact support.")

    plan = db.execute(
        select(Plan).where(Plan.id == plan_id, Plan.is_active.is_(True))
    ).scalar_one_or_none()
    if plan is None:
        raise NotFoundError("Plan not found or inactive")
    if plan.id == "free":
        raise BadRequestError("Cannot create subscription for free plan")

    price = plan.price_yearly if billing_cycle == "yearly" else plan.price_monthly
    amount = price / PRICE_DIVISOR
    if amount == 0:
        raise BadRequestError("This plan requires custom pricing. Please contact sales.")
    gross_amount = int(amount) if float(amount).is_integer() else amount

    period_start, period_end = billing_period(datetime.now(timezone.utc), billing_cycle)
    order_id = new_order_id()

    subscription = _subscription_row(db, organization_id)
    if subscription is not None:
        subscription.plan_id = plan.id
        subscription.status = "pending"
        subscription.billing_cycle = billing_cycle
        subscription.current_period_start = period_start
        subscription.current_period_end = period_end
    else:
        subscription = Subscription(
            id=new_subscription_id(),
            organization_id=organization_id,
            plan_id=plan.id,
            status="pending",
            billing_cycle=billing_cycle,
            current_period_start=period_start,
            current_period_end=period_end,
        )
        db.add(subscription)
    db.flush()

    db.add(
        Payment(
            id=new_payment_id(),
            subscription_id=subscription.id,
            organization_id=organization_id,
            order_id=order_id,
            amount=amount,
            status="pending",
        )
    )
    db.commit()
    subscription_id = subscription.id

    user = db.get(User, user_id)
    app_url = get_app_url()
    payload = {
        "transaction_details": {"order_id": order_id, "gross_amount": gross_amount},
        "customer_details": {
            "first_name": (user.full_name if user else None) or "User",
            "email": (user.email if user else None) or "",
            "phone": (user.phone if user else None) or "",
        },
        "item_details": [
            {
                "id": plan.id,
                "price": gross_amount,
                "quantity": 1,
                "name": f"{plan.name} Plan - {billing_cycle}",
            }
        ],
        "callbacks": {
            "finish": f"{app_url}/subscription/success",
            "error": f"{app_url}/subscription/error",
            "pending": f"{app_url}/subscription/pending",
        },
    }

    try:
        transaction = await client.create_transaction(payload)
    except Exception as e:
        logger.error(
            "Midtrans transaction failed",
            extra={
                "event": "subscription.transaction.failed",
                "order_id": order_id,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        raise InternalServiceError(f"Failed to create payment transaction: {e}")

    logger.info(
        "Subscription checkout started",
        extra={
            "event": "subscription.checkout.started",
            "subscription_id": subscription_id,
            "order_id": order_id,
            "plan_id": plan.id,
            "billing_cycle": billing_cycle,
        },
    )
    return {
        "subscriptionId": subscription_id,
        "orderId": order_id,
        "paymentToken": transaction.get("token"),
        "paymentUrl": transaction.get("redirect_url"),
    }


def _current_count(db: Session, organization_id: str, resource: str) -> int:
    if resource == "locations":
        stmt = select(func.count()).select_from(Location).where(
            Location.organization_id == organization_id, Location.is_active.is_(True)
        )
    elif resource == "users":
        stmt = select(func.count()).select_from(User).where(
            User.organization_id == organization_id, User.is_active.is_(True)
        )
    else:
        month_start = date.today().replace(day=1)
        stmt = select(func.count()).select_from(InspectionRecord).where(
            InspectionRecord.organization_id == organization_id,
            InspectionRecord.inspection_date >= month_start,
        )
    return db.execute(stmt).scalar_one()


def check_limit(db: Session, organization_id: Optional[str], resource: str) -> dict[str, Any]:
    """Usage of one plan-limited resource. A limit of -1 means unlimited."""
    if resource not in LIMITED_RESOURCES:
        raise BadRequestError("resource must be one of: locations, users, inspections")

    # A missing organization is reported like a missing plan, not as an error
    org = db.get(Organization, organization_id) if organization_id else None
    plan = db.get(Plan, org.current_plan_id) if org is not None and org.current_plan_id else None
    if plan is None:
        return {
            "canPerform": False,
            "reason": "No active plan",
            "currentCount": 0,
            "limit": 0,
            "planName": "Unknown",
            "utilizationPercent": 0,
        }

    if resource == "locations":
        limit = plan.max_locations
    elif resource == "users":
        limit = plan.max_users
    else:
        limit = plan.max_inspections_per_month or -1

    count = _current_count(db, organization_id, resource)
    can_perform = limit == -1 or count < limit
    utilization = round(count / limit * 100) if limit > 0 else 0
    return {
        "canPerform": can_perform,
        "currentCount": count,
        "limit": limit,
        "planName": plan.name,
        "utilizationPercent": utilization,
        "isNearLimit": utilization >= NEAR_LIMIT_PERCENT,
        "isAtLimit": not can_perform,
    }


def get_payment_history(db: Session, organization_id: Optional[str]) -> list[dict[str, Any]]:
    stmt = (
        select(Payment)
        .where(Payment.organization_id == organization_id)
        .order_by(Payment.created_at.desc())
        .limit(PAYMENT_HISTORY_LIMIT)
    )
    return [payment_to_dict(p) for p in db.execute(stmt).unique().scalars()]


def cancel_subscription(db: Session, organization_id: Optional[str]) -> dict[str, Any]:
    subscription = _subscription_row(db, organization_id)
    if subscription is None:
        raise NotFoundError("No active subscription found")

    subscription.cancel_at_period_end = True
    db.commit()
    db.refresh(subscription)
    logger.info(
        "Subscription marked for cancellation",
        extra={"event": "subscription.cancel_scheduled", "subscription_id": subscription.id},
    )
    return {
        "success": True,
        "message": "Subscription will be cancelled at the end of current period",
        "periodEnd": subscription.current_period_end.isoformat()
        if subscription.current_period_end
        else None,
    }
