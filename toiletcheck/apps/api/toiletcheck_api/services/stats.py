"""Admin dashboard statistics.

The counts are independent, so they run concurrently in the threadpool.
A SQLAlchemy Session is not thread-safe: every query opens its own session
from the factory and closes it before returning.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from toiletcheck_api.db.models import InspectionRecord, Location, User
from toiletcheck_api.utils.scoring import average_response_score

logger = logging.getLogger(__name__)

RECENT_RESPONSES_LIMIT = 100
ACTIVE_USER_WINDOW = timedelta(days=7)


def inspection_growth(today: int, yesterday: int) -> int:
    """Day-over-day change in percent; 0 when there is no baseline."""
    if yesterday <= 0:
        return 0
    return round((today - yesterday) / yesterday * 100)


async def get_admin_stats(session_factory: Callable[[], Session]) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    today = now.date()
    yesterday = today - timedelta(days=1)
    week_ago = now - ACTIVE_USER_WINDOW

    def run(stmt, scalar: bool = True):
        def _query():
            with session_factory() as db:
                result = db.execute(stmt)
                return result.scalar_one() if scalar else list(result.scalars())

        return run_in_threadpool(_query)

    count_inspections = select(func.count()).select_from(InspectionRecord)

    (
        total_users,
        total_locations,
        total_inspections,
        today_count,
        yesterday_count,
        active_users,
        recent_responses,
    ) = await asyncio.gather(
        run(select(func.count()).select_from(User).where(User.is_active.is_(True))),
        run(select(func.count()).select_from(Location).where(Location.is_active.is_(True))),
        run(count_inspections),
        run(count_inspections.where(InspectionRecord.inspection_date == today)),
        run(count_inspections.where(InspectionRecord.inspection_date == yesterday)),
        run(
            select(func.count())
            .select_from(User)
            .where(User.is_active.is_(True), User.last_login_at >= week_ago)
        ),
        run(
            select(InspectionRecord.responses)
            .order_by(InspectionRecord.created_at.desc())
            .limit(RECENT_RESPONSES_LIMIT),
            scalar=False,
        ),
    )

    stats = {
        "totalUsers": total_users,
        "totalLocations": total_locations,
        "totalInspections": total_inspections,
        "todayInspections": today_count,
        "activeUsers": active_users,
        "avgScore": average_response_score(recent_responses),
        "userGrowth": 0,
        "inspectionGrowth": inspection_growth(today_count, yesterday_count),
    }
    logger.info("Admin stats computed", extra={"event": "admin.stats.computed", **stats})
    return stats
