"""Inspection reports: monthly calendar, single day and monthly analytics."""

import calendar
import logging
import re
from collections import OrderedDict
from datetime import date
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from toiletcheck_api.db.models import InspectionRecord
from toiletcheck_api.errors import BadRequestError
from toiletcheck_api.services.serializers import inspection_to_dict
from toiletcheck_api.utils.scoring import calculate_score, score_band

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

INVALID_MONTH = "Invalid month format. Must be yyyy-MM (e.g., 2024-11)"

TREND_THRESHOLD = 2
LOCATION_RANKING_SIZE = 3


def parse_month(month: Optional[str]) -> tuple[date, date]:
    """'YYYY-MM' -> (first day, last day)."""
    if not month or not _MONTH_RE.match(month):
        raise BadRequestError(INVALID_MONTH)
    year, month_num = (int(part) for part in month.split("-"))
    try:
        last_day = calendar.monthrange(year, month_num)[1]
        return date(year, month_num, 1), date(year, month_num, last_day)
    except ValueError:
        raise BadRequestError(INVALID_MONTH)


def parse_day(value: Optional[str]) -> date:
    if not value or not _DATE_RE.match(value):
        raise BadRequestError("Invalid date format. Must be yyyy-MM-dd")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise BadRequestError("Invalid date format. Must be yyyy-MM-dd")


def previous_month(start: date) -> tuple[date, date]:
    year, month = (start.year - 1, 12) if start.month == 1 else (start.year, start.month - 1)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _records(
    db: Session, start: date, end: date, user_id: Optional[str]
) -> list[InspectionRecord]:
    stmt = select(InspectionRecord).where(
        InspectionRecord.inspection_date >= start,
        InspectionRecord.inspection_date <= end,
    )
    if user_id:
        stmt = stmt.where(InspectionRecord.user_id == user_id)
    stmt = stmt.order_by(
        InspectionRecord.inspection_date.desc(), InspectionRecord.inspection_time.desc()
    )
    return list(db.execute(stmt).unique().scalars())


def _average(scores: list[int]) -> int:
    return round(sum(scores) / len(scores)) if scores else 0


def _percentage(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def monthly_report(db: Session, month: str, user_id: Optional[str]) -> list[dict[str, Any]]:
    """Records of one month grouped by inspection_date (newest first)."""
    start, end = parse_month(month)
    grouped: "OrderedDict[str, list[dict[str, Any]]]" = OrderedDict()
    for record in _records(db, start, end, user_id):
        item = inspection_to_dict(record)
        item["score"] = calculate_score(record.responses)
        grouped.setdefault(item["inspection_date"], []).append(item)

    return [
        {
            "date": day,
            "count": len(items),
            "averageScore": _average([i["score"] for i in items]),
            "inspections": items,
        }
        for day, items in grouped.items()
    ]


def daily_report(db: Session, day: str, user_id: Optional[str]) -> list[dict[str, Any]]:
    target = parse_day(day)
    result = []
    for record in _records(db, target, target, user_id):
        item = inspection_to_dict(record)
        item["score"] = calculate_score(record.responses)
        result.append(item)
    return result


def month_records(db: Session, month: str, user_id: Optional[str]) -> list[InspectionRecord]:
    start, end = parse_month(month)
    return _records(db, start, end, user_id)


def monthly_analytics(db: Session, month: Optional[str], user_id: Optional[str]) -> dict[str, Any]:
    """Overview, trend vs previous month, score bands and best/worst locations."""
    start, end = parse_month(month)
    records = _records(db, start, end, user_id)
    scores = [calculate_score(r.responses) for r in records]
    total = len(records)
    avg_score = _average(scores)

    prev_start, prev_end = previous_month(start)
    prev_avg = _average(
        [calculate_score(r.responses) for r in _records(db, prev_start, prev_end, user_id)]
    )
    diff = avg_score - prev_avg
    if diff > TREND_THRESHOLD:
        trend = "up"
    elif diff < -TREND_THRESHOLD:
        trend = "down"
    else:
        trend = "stable"

    bands = {"excellent": 0, "good": 0, "fair": 0, "poor": 0}
    for score in scores:
        bands[score_band(score)] += 1

    per_location: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
    for record, score in zip(records, scores):
        location = record.location
        if location is None:
            continue
        entry = per_location.setdefault(
            record.location_id,
            {
                "name": location.name or "Unknown",
                "building": location.building.name if location.building else None,
                "floor": location.floor,
                "scores": [],
            },
        )
        entry["scores"].append(score)

    ranked = sorted(
        (
            {
                "name": entry["name"],
                "building": entry["building"],
                "floor": entry["floor"],
                "avgScore": _average(entry["scores"]),
                "inspectionCount": len(entry["scores"]),
            }
            for entry in per_location.values()
        ),
        key=lambda item: item["avgScore"],
        reverse=True,
    )

    return {
        "totalInspections": total,
        "avgScore": avg_score,
        "trend": trend,
        "trendPercentage": round(diff / prev_avg * 100) if prev_avg > 0 else 0,
        "statusBreakdown": {
            band: {"count": count, "percentage": _percentage(count, total)}
            for band, count in bands.items()
        },
        "topLocations": ranked[:LOCATION_RANKING_SIZE],
        "worstLocations": list(reversed(ranked[-LOCATION_RANKING_SIZE:])),
    }
