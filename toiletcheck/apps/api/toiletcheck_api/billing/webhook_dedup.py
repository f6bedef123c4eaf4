"""Webhook dedup gate: atomic INSERT ON CONFLICT for concurrent idempotency.

At most one successful processing per (provider, dedup_key) pair, even when
Midtrans retries a notification while the first delivery is still running:

  1. INSERT ON CONFLICT (provider, dedup_key) DO NOTHING RETURNING id
       → row returned  : this request is the first processor → continue
       → no row        : conflict; check for a re-processable failure
  2. UPDATE ... WHERE status='failed' RETURNING id
       → row returned  : previous attempt failed; re-claim it
       → no row        : 'done' or 'processing' → duplicate, 200 immediately

The UNIQUE constraint makes step 1 race-free; step 2 takes a row lock.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import TIMESTAMP, bindparam, text
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

MIDTRANS_PROVIDER = "midtrans"

_NOW = bindparam("now", type_=TIMESTAMP(timezone=True))


def get_midtrans_dedup_key(payload: dict) -> str:
    """order_id:transaction_status:status_code.

    A transaction legitimately moves pending → settlement, so the status is
    part of the key; only a repeat of the same transition is a duplicate.

    Raises ValueError if a component is missing.
    """
    parts = [payload.get("order_id"), payload.get("transaction_status"), payload.get("status_code")]
    if not all(parts):
        raise ValueError(
            "Cannot derive Midtrans dedup_key: order_id, transaction_status and status_code required"
        )
    return ":".join(str(part) for part in parts)


def try_acquire_dedup(
    db: Session,
    provider: str,
    dedup_key: str,
    request_hash: Optional[str] = None,
) -> bool:
    """Attempt to atomically claim processing rights for (provider, dedup_key).

    Returns:
        True  - INSERT succeeded or a 'failed' record was reclaimed; proceed.
        False - a 'done' or in-flight 'processing' record exists; ACK with 200.
    """
    now = datetime.now(timezone.utc)

    insert_sql = text("""
        INSERT INTO webhook_dedup_events
            (provider, dedup_key, first_seen_at, status, request_hash)
        VALUES
            (:provider, :dedup_key, :now, 'processing', :request_hash)
        ON CONFLICT (provider, dedup_key) DO NOTHING
        RETURNING id
    """).bindparams(_NOW)
    row = db.execute(insert_sql, {
        "provider": provider,
        "dedup_key": dedup_key,
        "now": now,
        "request_hash": request_hash,
    }).fetchone()

    if row is not None:
        db.commit()
        logger.debug(
            "WEBHOOK_DEDUP_ACQUIRED",
            extra={"provider": provider, "dedup_key_prefix": dedup_key[:32]},
        )
        return True

    retry_sql = text("""
        UPDATE webhook_dedup_events
        SET status = 'processing', last_seen_at = :now
        WHERE provider = :provider AND dedup_key = :dedup_key AND status = 'failed'
        RETURNING id
    """).bindparams(_NOW)
    retry_row = db.execute(retry_sql, {
        "provider": provider,
        "dedup_key": dedup_key,
        "now": now,
    }).fetchone()

    if retry_row is not None:
        db.commit()
        logger.info(
            "WEBHOOK_DEDUP_RETRY_RECLAIMED",
            extra={"provider": provider, "dedup_key_prefix": dedup_key[:32]},
        )
        return True

    db.commit()
    logger.info(
        "WEBHOOK_DEDUP_DUPLICATE",
        extra={"provider": provider, "dedup_key_prefix": dedup_key[:32]},
    )
    return False


def _set_status(db: Session, provider: str, dedup_key: str, status: str) -> None:
    sql = text("""
        UPDATE webhook_dedup_events
        SET status = :status, last_seen_at = :now
        WHERE provider = :provider AND dedup_key = :dedup_key
    """).bindparams(_NOW)
    db.execute(sql, {
        "status": status,
        "provider": provider,
        "dedup_key": dedup_key,
        "now": datetime.now(timezone.utc),
    })
    db.commit()


def mark_dedup_done(db: Session, provider: str, dedup_key: str) -> None:
    """Mark dedup record as 'done' after successful business processing."""
    _set_status(db, provider, dedup_key, "done")


def mark_dedup_failed(db: Session, provider: str, dedup_key: str) -> None:
    """Mark dedup record as 'failed' so a provider retry can re-process."""
    _set_status(db, provider, dedup_key, "failed")
