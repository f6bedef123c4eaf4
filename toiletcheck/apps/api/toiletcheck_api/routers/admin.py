"""Admin endpoints: dashboard stats, audit logs, user management, resource CRUD.

Required role levels:
- stats, audit-logs, roles list, toggle-status, resources, inspections: ADMIN (80)
- user list: SUPER_ADMIN (90)
- assign-role: OWNER (100)
"""

import logging
from datetime import date, datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session, sessionmaker

from toiletcheck_api.audit.audit_log import MAX_AUDIT_LOG_LIMIT, query_audit_logs, record_audit_event
from toiletcheck_api.auth.roles import RoleLevel, has_level
from toiletcheck_api.auth.session_auth import (
    AuthContext,
    get_session_service,
    require_role_level,
)
from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.db.cache import CacheService, get_cache_service
from toiletcheck_api.db.session import get_db
from toiletcheck_api.errors import BadRequestError, ForbiddenError
from toiletcheck_api.responses import success
from toiletcheck_api.schemas import AssignRoleRequest, ToggleStatusRequest
from toiletcheck_api.services import inspections as inspection_service
from toiletcheck_api.services import resources, users
from toiletcheck_api.services.serializers import audit_log_to_dict, inspection_to_dict
from toiletcheck_api.services.stats import get_admin_stats

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)

require_admin = require_role_level(RoleLevel.ADMIN)
require_owner = require_role_level(RoleLevel.OWNER)


# ============================================================================
# Stats and audit logs
# ============================================================================


@router.get("/stats")
async def admin_stats(
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    # One session per concurrent query, all on the request session's bind
    factory = sessionmaker(bind=db.get_bind(), autoflush=False)
    return success(await get_admin_stats(factory), "Statistics retrieved")


@router.get("/audit-logs")
async def audit_logs(
    limit: int = Query(50, ge=1),
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    success_filter: Optional[bool] = Query(None, alias="success"),
    since: Optional[datetime] = None,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    logs = query_audit_logs(
        db,
        limit=limit,
        user_id=user_id,
        action=action,
        success=success_filter,
        since=since,
    )
    return success(
        {
            "logs": [audit_log_to_dict(entry) for entry in logs],
            "count": len(logs),
            "filters": {
                "limit": min(limit, MAX_AUDIT_LOG_LIMIT),
                "user_id": user_id,
                "action": action,
                "success": success_filter,
                "since": since.isoformat() if since else None,
            },
        },
        "Audit logs retrieved",
    )


# ============================================================================
# Users and roles
# ============================================================================


@router.get("/users")
async def list_users(
    roles: bool = False,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if roles:
        return success(users.list_active_roles(db), "Roles retrieved")

    if not has_level(auth.role_level, RoleLevel.SUPER_ADMIN):
        raise ForbiddenError(
            f"Forbidden - Requires role level {int(RoleLevel.SUPER_ADMIN)} or higher"
        )
    result = users.list_users_with_roles(db)
    record_audit_event(
        db,
        user_id=auth.user_id,
        action="LIST_USERS",
        resource_type="user",
        details={"count": len(result)},
    )
    return success(result, "Users retrieved")


@router.post("/users/assign-role")
async def assign_role(
    body: AssignRoleRequest,
    auth: AuthContext = Depends(require_owner),
    db: Session = Depends(get_db),
):
    result = users.assign_role(
        db,
        actor_id=auth.user_id,
        actor_level=auth.role_level,
        user_id=body.userId,
        role_id=body.roleId,
        role_name=body.roleName,
    )
    return success(result, result["message"])


@router.post("/users/toggle-status")
async def toggle_status(
    body: ToggleStatusRequest,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    result = users.set_user_status(
        db,
        sessions,
        actor_id=auth.user_id,
        actor_level=auth.role_level,
        user_id=body.userId,
        is_active=body.isActive,
    )
    return success(result, result["message"])


# ============================================================================
# Resource CRUD: organizations | buildings | locations
# ============================================================================


@router.get("/resources/{resource_type}")
async def get_resources(
    resource_type: str,
    id: Optional[str] = None,
    organization_id: Optional[str] = None,
    building_id: Optional[str] = None,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    kind = resources.resolve_type(resource_type)
    if id:
        return success(resources.get_resource(db, kind, id))
    return success(
        resources.list_resources(db, kind, organization_id=organization_id, building_id=building_id)
    )


@router.post("/resources/{resource_type}", status_code=status.HTTP_201_CREATED)
async def create_resource(
    resource_type: str,
    body: dict[str, Any] = Body(...),
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    kind = resources.resolve_type(resource_type)
    created = resources.create_resource(db, cache, kind, body, actor_id=auth.user_id)
    return success(created, f"{kind[:-1].capitalize()} created successfully")


@router.patch("/resources/{resource_type}")
async def update_resource(
    resource_type: str,
    id: Optional[str] = None,
    body: dict[str, Any] = Body(...),
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    kind = resources.resolve_type(resource_type)
    if not id:
        raise BadRequestError("Resource ID required")
    updated = resources.update_resource(db, cache, kind, id, body, actor_id=auth.user_id)
    return success(updated, f"{kind[:-1].capitalize()} updated successfully")


@router.delete("/resources/{resource_type}")
async def delete_resource(
    resource_type: str,
    id: Optional[str] = None,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    kind = resources.resolve_type(resource_type)
    if not id:
        raise BadRequestError("Resource ID required")
    deleted = resources.delete_resource(db, cache, kind, id, actor_id=auth.user_id)
    return success(deleted, f"{kind[:-1].capitalize()} deleted successfully")


# ============================================================================
# Inspections (read-only)
# ============================================================================


@router.get("/inspections")
async def list_all_inspections(
    user_id: Optional[str] = None,
    location_id: Optional[str] = None,
    inspection_date: Optional[date] = Query(None, alias="date"),
    limit: int = Query(100, ge=1),
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    records = inspection_service.list_inspections(
        db,
        user_id=user_id,
        location_id=location_id,
        inspection_date=inspection_date,
        limit=limit,
    )
    return success(
        {
            "inspections": [inspection_to_dict(r) for r in records],
            "count": len(records),
            "filters": {
                "user_id": user_id,
                "location_id": location_id,
                "date": inspection_date.isoformat() if inspection_date else None,
                "limit": limit,
            },
        },
        "Inspections retrieved",
    )


@router.get("/inspections/{inspection_id}")
async def get_any_inspection(
    inspection_id: str,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    record = inspection_service.get_inspection(db, inspection_id)
    return success(inspection_to_dict(record), "Inspection retrieved")
