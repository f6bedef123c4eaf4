"""Organizations, buildings and locations with cache-aside reads.

Cache keys:
  org:<id>
  building:<id>, buildings:org:<organizationId>
  location:<id>, location:qr:<qrCode>, locations:building:<buildingId>

Cached values are the serialized dicts returned to callers. Every write
deletes the keys it can affect; reads repopulate them.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from toiletcheck_api.db.cache import CacheService
from toiletcheck_api.db.models import Building, Location, Organization
from toiletcheck_api.errors import NotFoundError
from toiletcheck_api.services.serializers import (
    building_to_dict,
    location_to_dict,
    organization_to_dict,
)
from toiletcheck_api.utils.qr_codes import generate_location_qr_code

logger = logging.getLogger(__name__)


def _cached(cache: CacheService, key: str, load) -> Any:
    cached = cache.get(key)
    if cached is not None:
        return cached
    value = load()
    cache.set(key, value)
    return value


# ============================================================================
# Invalidation
# ============================================================================


def invalidate_organization(cache: CacheService, org: Organization) -> None:
    cache.delete(f"org:{org.id}")


def invalidate_building(cache: CacheService, building: Building) -> None:
    cache.delete(f"building:{building.id}", f"buildings:org:{building.organization_id}")


def invalidate_location(
    cache: CacheService, location: Location, previous_qr_code: Optional[str] = None
) -> None:
    keys = [f"location:{location.id}"]
    for qr_code in {location.qr_code, previous_qr_code}:
        if qr_code:
            keys.append(f"location:qr:{qr_code}")
    if location.building_id:
        keys.append(f"locations:building:{location.building_id}")
    cache.delete(*keys)


# ============================================================================
# Organizations
# ============================================================================


def get_organization(db: Session, cache: CacheService, organization_id: str) -> dict[str, Any]:
    def load() -> dict[str, Any]:
        org = db.get(Organization, organization_id)
        if org is None or not org.is_active:
            raise NotFoundError("Organization not found")
        return organization_to_dict(org)

    return _cached(cache, f"org:{organization_id}", load)


def list_organizations(
    db: Session, *, created_by: Optional[str] = None, limit: int = 100, offset: int = 0
) -> list[dict[str, Any]]:
    stmt = select(Organization).where(Organization.is_active.is_(True))
    if created_by:
        stmt = stmt.where(Organization.created_by == created_by)
    stmt = stmt.order_by(Organization.created_at.desc()).offset(offset).limit(limit)
    return [organization_to_dict(org) for org in db.execute(stmt).scalars()]


def create_organization(
    db: Session, *, name: str, short_code: str, created_by: str, **fields: Any
) -> dict[str, Any]:
    org = Organization(
        name=name,
        short_code=short_code.upper(),
        created_by=created_by,
        is_active=True,
        **fields,
    )
    db.add(org)
    db.commit()
    db.refresh(org)
    logger.info("Organization created", extra={"event": "organization.created", "organization_id": org.id})
    return organization_to_dict(org)


def update_organization(
    db: Session, cache: CacheService, organization_id: str, changes: dict[str, Any]
) -> dict[str, Any]:
    org = db.get(Organization, organization_id)
    if org is None:
        raise NotFoundError("Organization not found")
    for field, value in changes.items():
        setattr(org, field, value)
    db.commit()
    db.refresh(org)
    invalidate_organization(cache, org)
    return organization_to_dict(org)


def deactivate_organization(db: Session, cache: CacheService, organization_id: str) -> None:
    update_organization(db, cache, organization_id, {"is_active": False})


# ============================================================================
# Buildings
# ============================================================================


def get_building(db: Session, cache: CacheService, building_id: str) -> dict[str, Any]:
    def load() -> dict[str, Any]:
        building = db.get(Building, building_id)
        if building is None or not building.is_active:
            raise NotFoundError("Building not found")
        return building_to_dict(building)

    return _cached(cache, f"building:{building_id}", load)


def list_buildings_by_organization(
    db: Session, cache: CacheService, organization_id: str
) -> list[dict[str, Any]]:
    def load() -> list[dict[str, Any]]:
        stmt = (
            select(Building)
            .where(Building.organization_id == organization_id, Building.is_active.is_(True))
            .order_by(Building.name)
        )
        return [building_to_dict(b) for b in db.execute(stmt).scalars()]

    return _cached(cache, f"buildings:org:{organization_id}", load)


def list_buildings(db: Session, *, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
    stmt = (
        select(Building)
        .where(Building.is_active.is_(True))
        .order_by(Building.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return [building_to_dict(b) for b in db.execute(stmt).scalars()]


def create_building(
    db: Session,
    cache: CacheService,
    *,
    name: str,
    organization_id: str,
    created_by: str,
    short_code: Optional[str] = None,
    **fields: Any,
) -> dict[str, Any]:
    if db.get(Organization, organization_id) is None:
        raise NotFoundError("Organization not found")
    building = Building(
        name=name,
        organization_id=organization_id,
        short_code=(short_code or name[:4]).upper(),
        created_by=created_by,
        is_active=True,
        **fields,
    )
    db.add(building)
    db.commit()
    db.refresh(building)
    invalidate_building(cache, building)
    logger.info("Building created", extra={"event": "building.created", "building_id": building.id})
    return building_to_dict(building)


def update_building(
    db: Session, cache: CacheService, building_id: str, changes: dict[str, Any]
) -> dict[str, Any]:
    building = db.get(Building, building_id)
    if building is None:
        raise NotFoundError("Building not found")
    for field, value in changes.items():
        setattr(building, field, value)
    db.commit()
    db.refresh(building)
    invalidate_building(cache, building)
    return building_to_dict(building)


def deactivate_building(db: Session, cache: CacheService, building_id: str) -> None:
    update_building(db, cache, building_id, {"is_active": False})


# ============================================================================
# Locations
# ============================================================================


def _active_location(db: Session, **criteria: Any) -> Location:
    stmt = select(Location).where(Location.is_active.is_(True))
    for column, value in criteria.items():
        stmt = stmt.where(getattr(Location, column) == value)
    location = db.execute(stmt).unique().scalar_one_or_none()
    if location is None:
        raise NotFoundError("Location not found")
    return location


def get_location(db: Session, cache: CacheService, location_id: str) -> dict[str, Any]:
    return _cached(
        cache,
        f"location:{location_id}",
        lambda: location_to_dict(_active_location(db, id=location_id)),
    )


def get_location_by_qr(db: Session, cache: CacheService, qr_code: str) -> dict[str, Any]:
    return _cached(
        cache,
        f"location:qr:{qr_code}",
        lambda: location_to_dict(_active_location(db, qr_code=qr_code)),
    )


def list_locations_by_building(
    db: Session, cache: CacheService, building_id: str
) -> list[dict[str, Any]]:
    def load() -> list[dict[str, Any]]:
        stmt = (
            select(Location)
            .where(Location.building_id == building_id, Location.is_active.is_(True))
            .order_by(Location.name)
        )
        return [location_to_dict(loc) for loc in db.execute(stmt).unique().scalars()]

    return _cached(cache, f"locations:building:{building_id}", load)


def list_locations(db: Session, *, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
    stmt = (
        select(Location)
        .where(Location.is_active.is_(True))
        .order_by(Location.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return [location_to_dict(loc) for loc in db.execute(stmt).unique().scalars()]


def create_location(
    db: Session,
    cache: CacheService,
    *,
    name: str,
    building_id: str,
    created_by: str,
    qr_code: Optional[str] = None,
    organization_id: Optional[str] = None,
    **fields: Any,
) -> dict[str, Any]:
    """Create a location; a QR code is generated from the org/building codes when omitted."""
    building = db.get(Building, building_id)
    if building is None:
        raise NotFoundError("Building not found")
    organization_id = organization_id or building.organization_id

    if not qr_code:
        org = db.get(Organization, organization_id)
        qr_code = generate_location_qr_code(
            org.short_code if org else "ORG",
            building.short_code,
            fields.get("code"),
        )

    location = Location(
        name=name,
        building_id=building_id,
        organization_id=organization_id,
        qr_code=qr_code,
        created_by=created_by,
        is_active=True,
        **fields,
    )
    db.add(location)
    db.commit()
    db.refresh(location)
    invalidate_location(cache, location)
    logger.info(
        "Location created",
        extra={"event": "location.created", "location_id": location.id, "building_id": building_id},
    )
    return location_to_dict(location)


def update_location(
    db: Session, cache: CacheService, location_id: str, changes: dict[str, Any]
) -> dict[str, Any]:
    location = db.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location not found")
    previous_qr = location.qr_code
    previous_building = location.building_id
    for field, value in changes.items():
        setattr(location, field, value)
    db.commit()
    db.refresh(location)
    invalidate_location(cache, location, previous_qr_code=previous_qr)
    if previous_building and previous_building != location.building_id:
        cache.delete(f"locations:building:{previous_building}")
    return location_to_dict(location)


def deactivate_location(db: Session, cache: CacheService, location_id: str) -> None:
    update_location(db, cache, location_id, {"is_active": False})
