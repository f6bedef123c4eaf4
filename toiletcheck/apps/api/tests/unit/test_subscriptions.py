"""Plan limits, checkout and cancellation.

T1: check_limit with no plan reports "No active plan"
T2: check_limit counts active locations against the plan limit (-1 = unlimited)
T3: create_subscription records pending subscription + payment and calls Snap
T4: free / custom-priced / unknown plans are rejected before any write
T5: gateway failure surfaces as a 500-class service error
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from toiletcheck_api.billing.subscriptions import (
    add_months,
    cancel_subscription,
    check_limit,
    create_subscription,
    get_current_plan,
    get_payment_history,
    get_plans,
)
from toiletcheck_api.db.models import Location, Payment, Plan, Subscription
from toiletcheck_api.errors import BadRequestError, InternalServiceError, NotFoundError


@pytest.fixture
def plans(db_session):
    rows = [
        Plan(id="free", name="Free", price_monthly=0, price_yearly=0, max_locations=3, sort_order=0),
        Plan(
            id="pro",
            name="Pro",
            price_monthly=15_000_000_000,
            price_yearly=150_000_000_000,
            max_locations=2,
            max_users=-1,
            sort_order=1,
        ),
        Plan(id="enterprise", name="Enterprise", price_monthly=0, price_yearly=0, sort_order=2),
        Plan(id="legacy", name="Legacy", is_active=False, sort_order=3),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return {p.id: p for p in rows}


@pytest.fixture
def snap():
    client = AsyncMock()
    client.create_transaction.return_value = {"token": "snap-token", "redirect_url": "https://pay/x"}
    return client


def test_get_plans_lists_active_in_order(db_session, plans):
    assert [p["id"] for p in get_plans(db_session)] == ["free", "pro", "enterprise"]


def test_check_limit_without_plan(db_session, facility):
    result = check_limit(db_session, facility["organization"].id, "locations")

    assert result["canPerform"] is False
    assert result["reason"] == "No active plan"


@pytest.mark.parametrize("organization_id", [None, "00000000-0000-0000-0000-000000000000"])
def test_check_limit_without_organization(db_session, plans, organization_id):
    result = check_limit(db_session, organization_id, "users")

    assert result["canPerform"] is False
    assert result["reason"] == "No active plan"
    assert result["planName"] == "Unknown"


def test_check_limit_counts_active_locations(db_session, facility, plans):
    org = facility["organization"]
    org.current_plan_id = "pro"
    db_session.add(
        Location(organization_id=org.id, building_id=facility["building"].id, name="Inactive", is_active=False)
    )
    db_session.commit()

    result = check_limit(db_session, org.id, "locations")

    assert result["currentCount"] == 1
    assert result["limit"] == 2
    assert result["canPerform"] is True
    assert result["utilizationPercent"] == 50
    assert result["isNearLimit"] is False
    assert result["planName"] == "Pro"


def test_check_limit_at_limit(db_session, facility, plans):
    org = facility["organization"]
    org.current_plan_id = "pro"
    db_session.add(Location(organization_id=org.id, building_id=facility["building"].id, name="Second"))
    db_session.commit()

    result = check_limit(db_session, org.id, "locations")

    assert result["canPerform"] is False
    assert result["isAtLimit"] is True
    assert result["isNearLimit"] is True


def test_unlimited_resource(db_session, facility, plans, make_user):
    org = facility["organization"]
    org.current_plan_id = "pro"
    db_session.commit()
    make_user(organization_id=org.id)

    result = check_limit(db_session, org.id, "users")

    assert result["limit"] == -1
    assert result["canPerform"] is True
    assert result["utilizationPercent"] == 0


def test_check_limit_rejects_unknown_resource(db_session, facility):
    with pytest.raises(BadRequestError):
        check_limit(db_session, facility["organization"].id, "buildings")


@pytest.mark.asyncio
async def test_create_subscription_opens_checkout(db_session, facility, plans, make_user, snap):
    org = facility["organization"]
    user = make_user(organization_id=org.id, full_name="Budi")

    result = await create_subscription(
        db_session,
        user_id=user.id,
        organization_id=org.id,
        plan_id="pro",
        billing_cycle="monthly",
        client=snap,
    )

    assert result["paymentToken"] == "snap-token"
    assert result["paymentUrl"] == "https://pay/x"
    assert result["orderId"].startswith("ORDER-")

    subscription = db_session.get(Subscription, result["subscriptionId"])
    assert subscription.status == "pending"
    assert subscription.plan_id == "pro"
    payment = db_session.query(Payment).filter_by(order_id=result["orderId"]).one()
    assert payment.amount == 150000
    assert payment.status == "pending"

    payload = snap.create_transaction.call_args.args[0]
    assert payload["transaction_details"]["gross_amount"] == 150000
    assert payload["customer_details"]["first_name"] == "Budi"
    assert payload["item_details"][0]["name"] == "Pro Plan - monthly"


@pytest.mark.asyncio
async def test_second_checkout_reuses_subscription_row(db_session, facility, plans, make_user, snap):
    org = facility["organization"]
    user = make_user(organization_id=org.id)
    kwargs = dict(user_id=user.id, organization_id=org.id, plan_id="pro", client=snap)

    first = await create_subscription(db_session, billing_cycle="monthly", **kwargs)
    second = await create_subscription(db_session, billing_cycle="yearly", **kwargs)

    assert first["subscriptionId"] == second["subscriptionId"]
    assert db_session.query(Subscription).count() == 1
    assert db_session.query(Payment).count() == 2
    assert db_session.get(Subscription, first["subscriptionId"]).billing_cycle == "yearly"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "plan_id,error",
    [("free", BadRequestError), ("enterprise", BadRequestError), ("legacy", NotFoundError), ("nope", NotFoundError)],
)
async def test_unpurchasable_plans(db_session, facility, plans, make_user, snap, plan_id, error):
    user = make_user(organization_id=facility["organization"].id)

    with pytest.raises(error):
        await create_subscription(
            db_session,
            user_id=user.id,
            organization_id=facility["organization"].id,
            plan_id=plan_id,
            billing_cycle="monthly",
            client=snap,
        )
    snap.create_transaction.assert_not_called()
    assert db_session.query(Payment).count() == 0


@pytest.mark.asyncio
async def test_gateway_failure(db_session, facility, plans, make_user, snap):
    snap.create_transaction.side_effect = RuntimeError("gateway down")
    user = make_user(organization_id=facility["organization"].id)

    with pytest.raises(InternalServiceError):
        await create_subscription(
            db_session,
            user_id=user.id,
            organization_id=facility["organization"].id,
            plan_id="pro",
            billing_cycle="monthly",
            client=snap,
        )


def test_current_plan_requires_organization(db_session):
    with pytest.raises(NotFoundError):
        get_current_plan(db_session, "missing-org")


@pytest.mark.asyncio
async def test_cancel_and_history(db_session, facility, plans, make_user, snap):
    org = facility["organization"]
    user = make_user(organization_id=org.id)
    await create_subscription(
        db_session, user_id=user.id, organization_id=org.id, plan_id="pro", billing_cycle="monthly", client=snap
    )

    result = cancel_subscription(db_session, org.id)

    assert result["success"] is True
    assert result["periodEnd"] is not None
    assert len(get_payment_history(db_session, org.id)) == 1


def test_cancel_without_subscription(db_session, facility):
    with pytest.raises(NotFoundError):
        cancel_subscription(db_session, facility["organization"].id)


@pytest.mark.parametrize(
    "start,months,end",
    [
        (datetime(2026, 1, 31), 1, datetime(2026, 2, 28)),
        (datetime(2026, 11, 15), 2, datetime(2027, 1, 15)),
        (datetime(2028, 2, 29), 12, datetime(2029, 2, 28)),
    ],
)
def test_add_months_clamps_day(start, months, end):
    assert add_months(start, months) == end
