"""Inspection record reads and writes.

Owner-scoped lookups filter by id AND user_id, so another user's record is
indistinguishable from a missing one (404, never 403).
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from toiletcheck_api.db.models import InspectionRecord, Location
from toiletcheck_api.errors import ForbiddenError, NotFoundError
from toiletcheck_api.schemas import InspectionCreateRequest, InspectionUpdateRequest

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("responses", "photo_urls", "notes", "overall_status")


def get_inspection(db: Session, inspection_id: str) -> InspectionRecord:
    record = db.get(InspectionRecord, inspection_id)
    if record is None:
        raise NotFoundError("Inspection not found")
    return record


def get_own_inspection(db: Session, user_id: str, inspection_id: str) -> InspectionRecord:
    record = db.execute(
        select(InspectionRecord).where(
            InspectionRecord.id == inspection_id,
            InspectionRecord.user_id == user_id,
        )
    ).scalar_one_or_none()
    if record is None:
        raise NotFoundError("Inspection not found")
    return record


def list_inspections(
    db: Session,
    *,
    user_id: Optional[str] = None,
    location_id: Optional[str] = None,
    inspection_date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> list[InspectionRecord]:
    """Filtered listing, newest inspection_date first."""
    stmt = select(InspectionRecord)
    if user_id:
        stmt = stmt.where(InspectionRecord.user_id == user_id)
    if location_id:
        stmt = stmt.where(InspectionRecord.location_id == location_id)
    if inspection_date:
        stmt = stmt.where(InspectionRecord.inspection_date == inspection_date)
    if start_date:
        stmt = stmt.where(InspectionRecord.inspection_date >= start_date)
    if end_date:
        stmt = stmt.where(InspectionRecord.inspection_date <= end_date)
    stmt = stmt.order_by(
        InspectionRecord.inspection_date.desc(), InspectionRecord.created_at.desc()
    )
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).unique().scalars().all())


def create_inspection(
    db: Session, user_id: str, payload: InspectionCreateRequest
) -> InspectionRecord:
    """Insert a record for `user_id`. The location must exist and be active."""
    location = db.get(Location, payload.location_id)
    if location is None or not location.is_active:
        raise NotFoundError("Location not found")

    now = datetime.now(timezone.utc)
    notes = payload.notes.strip() if payload.notes else None

    record = InspectionRecord(
        user_id=user_id,
        location_id=location.id,
        organization_id=location.organization_id,
        template_id=payload.template_id,
        inspection_date=payload.inspection_date,
        inspection_time=payload.inspection_time or now.strftime("%H:%M:%S"),
        overall_status=payload.overall_status or "satisfactory",
        responses=payload.responses,
        photo_urls=list(payload.photo_urls),
        notes=notes or None,
        duration_seconds=payload.duration_seconds,
        submitted_at=now,
        verified_by=payload.verified_by,
        verification_notes=payload.verification_notes,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info(
        "Inspection created",
        extra={
            "event": "inspection.created",
            "inspection_id": record.id,
            "location_id": record.location_id,
            "photo_count": len(record.photo_urls),
        },
    )
    return record


def ensure_can_modify(record: InspectionRecord, actor_id: str, allow_any: bool = False) -> None:
    """Owner-only unless the caller is allowed to modify anyone's records."""
    if not allow_any and record.user_id != actor_id:
        raise ForbiddenError("Access denied - not your inspection")


def update_inspection(
    db: Session,
    inspection_id: str,
    changes: InspectionUpdateRequest,
    *,
    actor_id: str,
    allow_any: bool = False,
) -> InspectionRecord:
    """Apply the mutable fields that were sent. Missing -> 404, not owner -> 403."""
    record = get_inspection(db, inspection_id)
    ensure_can_modify(record, actor_id, allow_any)

    sent = changes.model_dump(exclude_unset=True)
    for field in UPDATABLE_FIELDS:
        if field not in sent:
            continue
        # Only notes may be cleared; the other columns are NOT NULL
        if sent[field] is None and field != "notes":
            continue
        setattr(record, field, sent[field])
    db.commit()
    db.refresh(record)

    logger.info(
        "Inspection updated",
        extra={"event": "inspection.updated", "inspection_id": record.id, "fields": sorted(sent)},
    )
    return record


def delete_inspection(db: Session, record: InspectionRecord) -> None:
    inspection_id = record.id
    db.delete(record)
    db.commit()
    logger.info(
        "Inspection deleted",
        extra={"event": "inspection.deleted", "inspection_id": inspection_id},
    )
