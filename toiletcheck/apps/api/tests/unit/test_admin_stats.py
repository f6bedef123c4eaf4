"""Admin dashboard statistics over a file-backed SQLite database.

Queries run concurrently on worker threads, each with its own session, so
an in-memory single-connection database is not used here.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from toiletcheck_api.db.models import Base, InspectionRecord, Location, Organization, User
from toiletcheck_api.services.stats import get_admin_stats, inspection_growth


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'stats.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


def _seed(factory):
    today = datetime.now(timezone.utc).date()
    with factory() as db:
        org = Organization(name="Org", short_code="ORG")
        db.add(org)
        db.flush()
        inspector = User(email="a@example.com", full_name="A", organization_id=org.id)
        db.add_all([inspector, User(email="b@example.com", full_name="B", is_active=False)])
        location = Location(organization_id=org.id, name="Toilet 1")
        db.add_all([location, Location(organization_id=org.id, name="Closed", is_active=False)])
        db.flush()

        def inspection(day, responses):
            return InspectionRecord(
                user_id=inspector.id,
                location_id=location.id,
                organization_id=org.id,
                inspection_date=day,
                responses=responses,
            )

        db.add_all(
            [
                inspection(today, {"floor": "good", "sink": "good"}),
                inspection(today, {"floor": "good", "sink": "dirty"}),
                inspection(today, {"floor": "ada", "sink": "bad"}),
                inspection(today - timedelta(days=1), {"floor": "bad", "sink": "bad"}),
                inspection(today - timedelta(days=1), {"floor": "bad"}),
            ]
        )
        db.commit()


@pytest.mark.asyncio
async def test_admin_stats(session_factory):
    _seed(session_factory)

    stats = await get_admin_stats(session_factory)

    assert stats["totalUsers"] == 1
    assert stats["totalLocations"] == 1
    assert stats["totalInspections"] == 5
    assert stats["todayInspections"] == 3
    # (100 + 50 + 50 + 0 + 0) / 5
    assert stats["avgScore"] == 40
    assert stats["inspectionGrowth"] == 50
    assert stats["userGrowth"] == 0


@pytest.mark.asyncio
async def test_admin_stats_on_empty_database(session_factory):
    stats = await get_admin_stats(session_factory)

    assert stats["totalInspections"] == 0
    assert stats["avgScore"] == 0
    assert stats["inspectionGrowth"] == 0


@pytest.mark.parametrize("today,yesterday,growth", [(3, 2, 50), (1, 4, -75), (5, 0, 0), (0, 0, 0)])
def test_inspection_growth(today, yesterday, growth):
    assert inspection_growth(today, yesterday) == growth
