"""Midtrans notification webhook against a real (SQLite) dedup gate.

T1: tampered signature → 401, nothing written (no dedup row, payment untouched)
T2: settlement → payment updated, subscription active, org plan linked
T3: expire → subscription expired, organization untouched
T4: identical redelivery → 200 "Already processed", no second processing
T5: pending → settlement are different transitions, both processed
T6: unknown order → 404, dedup row left "failed" so a retry can reclaim it
T7: malformed body → 400
"""

import json

import pytest

from toiletcheck_api.billing.midtrans import compute_signature
from toiletcheck_api.config.env import get_midtrans_server_key
from toiletcheck_api.db.models import Payment, Plan, Subscription, WebhookDedupEvent

WEBHOOK = "/api/webhooks/midtrans"


@pytest.fixture
def pending_order(db_session, facility):
    org = facility["organization"]
    db_session.add(Plan(id="pro", name="Pro", price_monthly=15_000_000_000, price_yearly=0))
    subscription = Subscription(
        id="sub_test000000000001", organization_id=org.id, plan_id="pro", status="pending"
    )
    db_session.add(subscription)
    db_session.flush()
    payment = Payment(
        id="pay_test000000000001",
        subscription_id=subscription.id,
        organization_id=org.id,
        order_id="ORDER-1760000000000-abcdefgh",
        amount=150000,
        status="pending",
    )
    db_session.add(payment)
    db_session.commit()
    return {"organization": org, "subscription": subscription, "payment": payment}


def _notification(order_id, transaction_status, status_code="200", gross_amount="150000.00", **extra):
    body = {
        "order_id": order_id,
        "status_code": status_code,
        "gross_amount": gross_amount,
        "transaction_status": transaction_status,
        "transaction_id": "tx-1",
        "payment_type": "bank_transfer",
        "transaction_time": "2026-10-19 10:00:00",
        "signature_key": compute_signature(order_id, status_code, gross_amount, get_midtrans_server_key()),
    }
    body.update(extra)
    return body


def _dedup_rows(db_session):
    return db_session.query(WebhookDedupEvent).all()


def test_tampered_signature_writes_nothing(test_client, db_session, pending_order):
    body = _notification(pending_order["payment"].order_id, "settlement")
    body["gross_amount"] = "1.00"

    response = test_client.post(WEBHOOK, json=body)

    assert response.status_code == 401
    assert response.json()["error_code"] == "WEBHOOK_SIGNATURE_INVALID"
    db_session.expire_all()
    assert db_session.get(Payment, pending_order["payment"].id).status == "pending"
    assert db_session.get(Subscription, pending_order["subscription"].id).status == "pending"
    assert _dedup_rows(db_session) == []


def test_settlement_activates_subscription(test_client, db_session, pending_order):
    response = test_client.post(
        WEBHOOK,
        json=_notification(pending_order["payment"].order_id, "settlement", settlement_time="2026-10-19 10:05:00"),
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Subscription activated successfully",
        "subscriptionId": pending_order["subscription"].id,
    }
    db_session.expire_all()
    payment = db_session.get(Payment, pending_order["payment"].id)
    assert payment.status == "settlement"
    assert payment.transaction_id == "tx-1"
    assert payment.settlement_time == "2026-10-19 10:05:00"
    assert db_session.get(Subscription, pending_order["subscription"].id).status == "active"
    org = pending_order["organization"]
    db_session.refresh(org)
    assert org.current_plan_id == "pro"
    assert org.subscription_id == pending_order["subscription"].id
    assert [row.status for row in _dedup_rows(db_session)] == ["done"]


def test_expire_marks_subscription_expired(test_client, db_session, pending_order):
    response = test_client.post(
        WEBHOOK, json=_notification(pending_order["payment"].order_id, "expire", status_code="407")
    )

    assert response.status_code == 200
    assert response.json()["success"] is False
    db_session.expire_all()
    assert db_session.get(Subscription, pending_order["subscription"].id).status == "expired"
    org = pending_order["organization"]
    db_session.refresh(org)
    assert org.current_plan_id is None


def test_redelivery_is_acknowledged_without_processing(test_client, db_session, pending_order):
    body = _notification(pending_order["payment"].order_id, "settlement")
    assert test_client.post(WEBHOOK, json=body).status_code == 200

    # Reset the payment so a second processing would be visible
    payment = db_session.get(Payment, pending_order["payment"].id)
    payment.status = "pending"
    db_session.commit()

    response = test_client.post(WEBHOOK, json=body)

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Already processed"}
    db_session.expire_all()
    assert db_session.get(Payment, pending_order["payment"].id).status == "pending"
    assert len(_dedup_rows(db_session)) == 1


def test_status_transitions_are_distinct_events(test_client, db_session, pending_order):
    order_id = pending_order["payment"].order_id

    pending = test_client.post(WEBHOOK, json=_notification(order_id, "pending", status_code="201"))
    settled = test_client.post(WEBHOOK, json=_notification(order_id, "settlement"))

    assert pending.json()["message"] == "Payment status updated"
    assert settled.json()["message"] == "Subscription activated successfully"
    assert len(_dedup_rows(db_session)) == 2


def test_unknown_order_can_be_retried(test_client, db_session):
    body = _notification("ORDER-UNKNOWN", "settlement")

    first = test_client.post(WEBHOOK, json=body)
    assert first.status_code == 404
    assert first.json()["error_code"] == "WEBHOOK_ORDER_NOT_FOUND"
    assert [row.status for row in _dedup_rows(db_session)] == ["failed"]

    # The failed record is reclaimed rather than treated as a duplicate
    second = test_client.post(WEBHOOK, json=body)
    assert second.status_code == 404


def test_invalid_json(test_client):
    response = test_client.post(
        WEBHOOK, content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "WEBHOOK_INVALID_JSON"
    assert len(body["payload_hash"]) == 64


def test_missing_fields(test_client):
    response = test_client.post(WEBHOOK, content=json.dumps({"order_id": "ORDER-1"}))

    assert response.status_code == 400
    assert "signature_key" in response.json()["error"]


def test_status_probe(test_client):
    assert test_client.get(WEBHOOK).json()["status"] == "ok"
