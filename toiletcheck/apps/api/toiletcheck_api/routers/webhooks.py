"""Midtrans payment notification webhook.

Error taxonomy (keeps provider retries meaningful):
  (A) Invalid JSON / missing fields            → 400
  (B) Signature mismatch                       → 401
  (C) Unknown order / subscription             → 404
  (D) Our misconfig (missing server key)       → 500 WEBHOOK_PROVIDER_MISCONFIG
  (E) Internal DB/processing error             → 500 WEBHOOK_INTERNAL_ERROR
  500 is ONLY for (D)(E). A bad signature is NEVER 500, and never writes.
"""

import json as _json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from toiletcheck_api.billing.midtrans import PaymentOutcome, classify_transaction_status, verify_signature
from toiletcheck_api.billing.webhook_dedup import (
    MIDTRANS_PROVIDER,
    get_midtrans_dedup_key,
    mark_dedup_done,
    mark_dedup_failed,
    try_acquire_dedup,
)
from toiletcheck_api.config.env import get_midtrans_server_key
from toiletcheck_api.context import request_id_var
from toiletcheck_api.db.models import Organization, Payment, Subscription
from toiletcheck_api.db.session import get_db
from toiletcheck_api.responses import error_body
from toiletcheck_api.utils.sanitize import payload_hash_bytes, sanitize_str

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("order_id", "status_code", "gross_amount", "signature_key", "transaction_status")


class _OrderNotFound(Exception):
    """Payment or subscription referenced by the notification does not exist."""


def _webhook_problem(
    request: Request,
    status: int,
    *,
    code: str,
    detail: str,
    payload_hash: Optional[str],
    extra: Optional[dict] = None,
) -> JSONResponse:
    """Log once and return the error envelope with webhook extensions.

    4xx failures → warning log.
    5xx failures → error log + Retry-After: 60 response header.
    """
    log_extra: dict = {
        "event": f"webhook.{code.lower()}",
        "provider": MIDTRANS_PROVIDER,
        "payload_hash": payload_hash,
        "error_code": code,
        "path": request.url.path,
    }
    request_id = request_id_var.get(None)
    if request_id:
        log_extra["request_id"] = request_id
    if extra:
        log_extra.update(extra)

    if status >= 500:
        logger.error(code, extra=log_extra)
    else:
        logger.warning(code, extra=log_extra)

    headers = {"Retry-After": "60"} if status >= 500 else None
    return JSONResponse(
        status_code=status,
        content=error_body(
            detail,
            error_code=code,
            provider=MIDTRANS_PROVIDER,
            payload_hash=payload_hash,
        ),
        headers=headers,
    )


@router.get("/midtrans")
async def midtrans_webhook_status():
    return {
        "status": "ok",
        "message": "Midtrans webhook endpoint is active",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/midtrans")
async def midtrans_webhook(request: Request, db: Session = Depends(get_db)):
    """Midtrans HTTP notification handler.

    Signature: sha512(order_id + status_code + gross_amount + server_key).
    Idempotency: dedup gate on order_id:transaction_status:status_code.
    """
    # ── Step 0: Raw body ingestion ───────────────────────────────────────────
    raw_body: bytes = await request.body()
    payload_hash = payload_hash_bytes(raw_body)

    # ── Step 1: JSON parsing and required fields (A → 400) ──────────────────
    try:
        notification = _json.loads(raw_body)
    except (_json.JSONDecodeError, UnicodeDecodeError):
        return _webhook_problem(
            request, 400,
            code="WEBHOOK_INVALID_JSON",
            detail="Request body is not valid JSON",
            payload_hash=payload_hash,
        )
    if not isinstance(notification, dict):
        return _webhook_problem(
            request, 400,
            code="WEBHOOK_INVALID_PAYLOAD",
            detail="Notification must be a JSON object",
            payload_hash=payload_hash,
        )

    missing = [field for field in REQUIRED_FIELDS if not notification.get(field)]
    if missing:
        return _webhook_problem(
            request, 400,
            code="WEBHOOK_INVALID_PAYLOAD",
            detail="Missing required fields: " + ", ".join(missing),
            payload_hash=payload_hash,
        )

    order_id = str(notification["order_id"])
    status_code = str(notification["status_code"])
    gross_amount = str(notification["gross_amount"])
    transaction_status = str(notification["transaction_status"])

    logger.info(
        "WEBHOOK_RECEIVED",
        extra={
            "provider": MIDTRANS_PROVIDER,
            "payload_hash": payload_hash,
            "payload_size": len(raw_body),
            "order_id": order_id,
            "transaction_status": transaction_status,
        },
    )

    # ── Step 2: Server key (D → 500 on misconfig) ───────────────────────────
    try:
        server_key = get_midtrans_server_key()
    except ValueError:
        return _webhook_problem(
            request, 500,
            code="WEBHOOK_PROVIDER_MISCONFIG",
            detail="Payment gateway is not properly configured",
            payload_hash=payload_hash,
        )

    # ── Step 3: Signature verification (B → 401, before any write) ──────────
    if not verify_signature(
        order_id, status_code, gross_amount, str(notification["signature_key"]), server_key
    ):
        return _webhook_problem(
            request, 401,
            code="WEBHOOK_SIGNATURE_INVALID",
            detail="Invalid signature",
            payload_hash=payload_hash,
            extra={"order_id": order_id},
        )

    # ── Step 4: Dedup gate ──────────────────────────────────────────────────
    dedup_key = get_midtrans_dedup_key(notification)
    try:
        is_first = try_acquire_dedup(db, MIDTRANS_PROVIDER, dedup_key, payload_hash)
    except Exception as exc:
        db.rollback()
        return _webhook_problem(
            request, 500,
            code="WEBHOOK_INTERNAL_ERROR",
            detail="An internal error occurred while processing the webhook",
            payload_hash=payload_hash,
            extra={"error_type": type(exc).__name__, "error_msg": sanitize_str(str(exc))},
        )

    if not is_first:
        logger.info(
            "WEBHOOK_ALREADY_PROCESSED",
            extra={"provider": MIDTRANS_PROVIDER, "payload_hash": payload_hash, "order_id": order_id},
        )
        return {"success": True, "message": "Already processed"}

    # ── Step 5: Business processing (C → 404, E → 500) ──────────────────────
    try:
        body = _apply_notification(db, notification, transaction_status)
    except _OrderNotFound as exc:
        db.rollback()
        # Unknown order: a later delivery may retry
        mark_dedup_failed(db, MIDTRANS_PROVIDER, dedup_key)
        return _webhook_problem(
            request, 404,
            code="WEBHOOK_ORDER_NOT_FOUND",
            detail=str(exc),
            payload_hash=payload_hash,
            extra={"order_id": order_id},
        )
    except Exception as exc:
        db.rollback()
        mark_dedup_failed(db, MIDTRANS_PROVIDER, dedup_key)
        return _webhook_problem(
            request, 500,
            code="WEBHOOK_INTERNAL_ERROR",
            detail="An internal error occurred while processing the webhook",
            payload_hash=payload_hash,
            extra={"error_type": type(exc).__name__, "error_msg": sanitize_str(str(exc))},
        )

    mark_dedup_done(db, MIDTRANS_PROVIDER, dedup_key)
    logger.info(
        "Midtrans notification processed",
        extra={
            "event": "webhook.midtrans.processed",
            "order_id": order_id,
            "transaction_status": transaction_status,
            "payload_hash": payload_hash,
        },
    )
    return body


def _apply_notification(
    db: Session, notification: dict[str, Any], transaction_status: str
) -> dict[str, Any]:
    """Update payment, then subscription/organization by outcome. Commits once."""
    order_id = str(notification["order_id"])
    payment = db.execute(
        select(Payment).where(Payment.order_id == order_id)
    ).unique().scalar_one_or_none()
    if payment is None:
        raise _OrderNotFound("Payment not found")

    payment.transaction_id = notification.get("transaction_id")
    payment.payment_type = notification.get("payment_type")
    payment.status = transaction_status
    payment.transaction_time = notification.get("transaction_time")
    payment.settlement_time = notification.get("settlement_time")
    payment.midtrans_response = notification

    outcome = classify_transaction_status(transaction_status)

    if outcome is PaymentOutcome.SUCCESS:
        subscription = db.get(Subscription, payment.subscription_id)
        if subscription is None or subscription.plan is None:
            raise _OrderNotFound("Subscription not found")
        subscription.status = "active"

        org = db.get(Organization, subscription.organization_id)
        if org is not None:
            org.current_plan_id = subscription.plan_id
            org.subscription_id = subscription.id
        db.commit()
        logger.info(
            "Subscription activated",
            extra={
                "event": "subscription.activated",
                "subscription_id": subscription.id,
                "plan_id": subscription.plan_id,
                "organization_id": subscription.organization_id,
            },
        )
        return {
            "success": True,
            "message": "Subscription activated successfully",
            "subscriptionId": subscription.id,
        }

    if outcome is PaymentOutcome.FAILURE:
        subscription = db.get(Subscription, payment.subscription_id)
        if subscription is not None:
            subscription.status = "expired"
        db.commit()
        logger.info(
            "Subscription expired after failed payment",
            extra={
                "event": "subscription.expired",
                "subscription_id": payment.subscription_id,
                "transaction_status": transaction_status,
            },
        )
        return {"success": False, "message": "Payment failed", "status": transaction_status}

    db.commit()
    return {"success": True, "message": "Payment status updated", "status": transaction_status}
