"""Inspection reports and CSV export.

Non-admins only ever see their own records. Admins (level >= 80) see all
records, or one user's when user_id is given.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from toiletcheck_api.auth.session_auth import AuthContext, get_session_auth_context
from toiletcheck_api.db.session import get_db
from toiletcheck_api.errors import BadRequestError, ForbiddenError
from toiletcheck_api.responses import success
from toiletcheck_api.services import reports
from toiletcheck_api.utils.csv_export import inspections_to_csv

router = APIRouter(prefix="/api/reports", tags=["reports"])


def visible_user_id(auth: AuthContext, requested: Optional[str]) -> Optional[str]:
    """User filter the caller may apply. None means all users (admins only)."""
    if auth.is_admin:
        return requested or None
    if requested and requested != auth.user_id:
        raise ForbiddenError("Access denied - cannot view other users' reports")
    return auth.user_id


@router.get("")
async def get_report(
    month: Optional[str] = None,
    date: Optional[str] = None,
    analytics: bool = False,
    user_id: Optional[str] = None,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    target_user = visible_user_id(auth, user_id)

    if analytics:
        return success(reports.monthly_analytics(db, month, target_user), "Analytics retrieved")
    if month:
        return success(reports.monthly_report(db, month, target_user), "Monthly report retrieved")
    if date:
        return success(reports.daily_report(db, date, target_user), "Daily report retrieved")
    raise BadRequestError("Either month or date parameter is required")


@router.get("/export")
async def export_report(
    month: Optional[str] = None,
    user_id: Optional[str] = None,
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    target_user = visible_user_id(auth, user_id)
    records = reports.month_records(db, month, target_user)
    return Response(
        content=inspections_to_csv(records),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="inspections-{month}.csv"'},
    )
