"""Admin CRUD over organizations, buildings and locations.

Creates and updates accept an allowlist of columns per type; anything else
in the body is ignored. Deletes are soft (is_active = false). Every write is
audited as <VERB>_<TYPE> and invalidates the matching cache keys.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from toiletcheck_api.audit.audit_log import record_audit_event
from toiletcheck_api.db.cache import CacheService
from toiletcheck_api.db.models import Building, Location, Organization
from toiletcheck_api.errors import BadRequestError, NotFoundError
from toiletcheck_api.services import facilities
from toiletcheck_api.services.serializers import (
    building_to_dict,
    location_to_dict,
    organization_to_dict,
)
from toiletcheck_api.utils.qr_codes import generate_location_qr_code

logger = logging.getLogger(__name__)

RESOURCE_MODELS = {
    "organizations": Organization,
    "buildings": Building,
    "locations": Location,
}

_SERIALIZERS = {
    "organizations": organization_to_dict,
    "buildings": building_to_dict,
    "locations": location_to_dict,
}

# Each updater raises NotFoundError and invalidates the cache keys of the row
_UPDATERS = {
    "organizations": facilities.update_organization,
    "buildings": facilities.update_building,
    "locations": facilities.update_location,
}

REQUIRED_CREATE_FIELDS = {
    "organizations": ("name", "short_code"),
    "buildings": ("name", "short_code", "organization_id"),
    "locations": ("name", "short_code", "organization_id"),
}

CREATE_FIELDS = {
    "organizations": ("name", "short_code", "address", "phone", "email", "logo_url", "type"),
    "buildings": ("name", "short_code", "organization_id", "address", "total_floors", "type"),
    "locations": (
        "name",
        "organization_id",
        "building_id",
        "code",
        "qr_code",
        "floor",
        "section",
        "area",
        "description",
        "coordinates",
        "photo_url",
        "type",
    ),
}

UPDATE_FIELDS = {
    "organizations": ("name", "short_code", "address", "phone", "type", "is_active"),
    "buildings": ("name", "short_code", "address", "total_floors", "type", "is_active"),
    "locations": ("name", "short_code", "building_id", "floor", "code", "type", "is_active"),
}


def resolve_type(resource_type: Optional[str]) -> str:
    if resource_type not in RESOURCE_MODELS:
        raise BadRequestError(
            "Invalid or missing resource type. Must be: organizations, buildings, or locations"
        )
    return resource_type


def _singular(resource_type: str) -> str:
    return resource_type[:-1]


def _invalidate(cache: CacheService, resource_type: str, row: Any) -> None:
    if resource_type == "organizations":
        facilities.invalidate_organization(cache, row)
    elif resource_type == "buildings":
        facilities.invalidate_building(cache, row)
    else:
        facilities.invalidate_location(cache, row)


def _location_columns(data: dict[str, Any]) -> dict[str, Any]:
    # Locations have no short_code column; it is stored as the location code
    if "short_code" in data:
        short_code = data.pop("short_code")
        data.setdefault("code", short_code)
    return data


def get_resource(db: Session, resource_type: str, resource_id: str) -> dict[str, Any]:
    model = RESOURCE_MODELS[resource_type]
    row = db.get(model, resource_id)
    if row is None:
        raise NotFoundError(f"{_singular(resource_type).capitalize()} not found")
    return _SERIALIZERS[resource_type](row)


def list_resources(
    db: Session,
    resource_type: str,
    *,
    organization_id: Optional[str] = None,
    building_id: Optional[str] = None,
) -> list[dict[str, Any]]:
    model = RESOURCE_MODELS[resource_type]
    stmt = select(model).order_by(model.created_at.desc())
    if organization_id and resource_type in ("buildings", "locations"):
        stmt = stmt.where(model.organization_id == organization_id)
    if building_id and resource_type == "locations":
        stmt = stmt.where(model.building_id == building_id)
    serialize = _SERIALIZERS[resource_type]
    return [serialize(row) for row in db.execute(stmt).unique().scalars()]


def create_resource(
    db: Session,
    cache: CacheService,
    resource_type: str,
    body: dict[str, Any],
    *,
    actor_id: str,
) -> dict[str, Any]:
    missing = [field for field in REQUIRED_CREATE_FIELDS[resource_type] if not body.get(field)]
    if missing:
        raise BadRequestError(
            "Missing required fields: " + ", ".join(REQUIRED_CREATE_FIELDS[resource_type])
        )

    data = {field: body[field] for field in CREATE_FIELDS[resource_type] if field in body}
    if resource_type == "locations":
        data["code"] = body.get("code") or body["short_code"]
        if not data.get("qr_code"):
            org = db.get(Organization, data["organization_id"])
            building = db.get(Building, data["building_id"]) if data.get("building_id") else None
            data["qr_code"] = generate_location_qr_code(
                org.short_code if org else "ORG",
                building.short_code if building else "BLD",
                data["code"],
            )

    row = RESOURCE_MODELS[resource_type](**data, created_by=actor_id, is_active=True)
    db.add(row)
    db.commit()
    db.refresh(row)
    _invalidate(cache, resource_type, row)

    record_audit_event(
        db,
        user_id=actor_id,
        action=f"CREATE_{_singular(resource_type).upper()}",
        resource_type=_singular(resource_type),
        resource_id=row.id,
        details={"resourceId": row.id, "name": row.name},
    )
    logger.info(
        "Resource created",
        extra={"event": "admin.resource.created", "resource_type": resource_type, "resource_id": row.id},
    )
    return _SERIALIZERS[resource_type](row)


def update_resource(
    db: Session,
    cache: CacheService,
    resource_type: str,
    resource_id: str,
    body: dict[str, Any],
    *,
    actor_id: str,
) -> dict[str, Any]:
    updates = {field: body[field] for field in UPDATE_FIELDS[resource_type] if field in body}
    if resource_type == "locations":
        updates = _location_columns(updates)
    result = _UPDATERS[resource_type](db, cache, resource_id, updates)

    record_audit_event(
        db,
        user_id=actor_id,
        action=f"UPDATE_{_singular(resource_type).upper()}",
        resource_type=_singular(resource_type),
        resource_id=resource_id,
        details={"resourceId": resource_id, "updates": updates},
    )
    return result


def delete_resource(
    db: Session,
    cache: CacheService,
    resource_type: str,
    resource_id: str,
    *,
    actor_id: str,
) -> dict[str, Any]:
    """Soft delete: the row stays, marked inactive."""
    result = _UPDATERS[resource_type](db, cache, resource_id, {"is_active": False})

    record_audit_event(
        db,
        user_id=actor_id,
        action=f"DELETE_{_singular(resource_type).upper()}",
        resource_type=_singular(resource_type),
        resource_id=resource_id,
        details={"resourceId": resource_id},
    )
    return result
