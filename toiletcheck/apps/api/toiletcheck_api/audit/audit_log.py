"""Audit log writer and reader.

Audit records are written in their own transaction after the audited change
has committed. A failure to record an audit event is logged and never fails
the audited operation.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from toiletcheck_api.db.models import AuditLog

logger = logging.getLogger(__name__)


def record_audit_event(
    db: Session,
    *,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    success: bool = True,
    error_message: Optional[str] = None,
) -> Optional[AuditLog]:
    """Insert an audit_logs row. Returns the row, or None if the write failed."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        success=success,
        error_message=error_message,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "Failed to write audit log",
            extra={
                "event": "audit.write_failed",
                "action": action,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "error": str(e),
            },
        )
        return None

    logger.info(
        "Audit event recorded",
        extra={
            "event": "audit.recorded",
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "success": success,
        },
    )
    return entry


MAX_AUDIT_LOG_LIMIT = 500


def query_audit_logs(
    db: Session,
    *,
    limit: int = 50,
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    success: Optional[bool] = None,
    since: Optional[datetime] = None,
) -> list[AuditLog]:
    """Newest-first audit entries. `limit` is capped at MAX_AUDIT_LOG_LIMIT."""
    stmt = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    if user_id:
        stmt = stmt.where(AuditLog.user_id == user_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if success is not None:
        stmt = stmt.where(AuditLog.success.is_(success))
    if since is not None:
        stmt = stmt.where(AuditLog.created_at >= since)
    stmt = stmt.limit(min(limit, MAX_AUDIT_LOG_LIMIT))
    return list(db.execute(stmt).scalars())
