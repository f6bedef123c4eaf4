"""User profiles, role assignment and account status."""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from toiletcheck_api.audit.audit_log import record_audit_event
from toiletcheck_api.auth.roles import get_user_role
from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.db.models import Role, User, UserRole
from toiletcheck_api.errors import BadRequestError, ForbiddenError, NotFoundError
from toiletcheck_api.services.serializers import role_to_dict, user_to_dict

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def user_with_role(db: Session, user: User) -> dict[str, Any]:
    role_name, role_level = get_user_role(db, user.id)
    return user_to_dict(user, role={"name": role_name, "level": role_level})


def update_profile(
    db: Session,
    user_id: str,
    *,
    full_name: Optional[str],
    phone: Optional[str] = None,
    occupation_id: Optional[str] = None,
) -> User:
    """Update the caller's own profile. full_name is required (>= 2 chars after trim)."""
    name = (full_name or "").strip()
    if len(name) < 2:
        raise BadRequestError("Full name is required (minimum 2 characters)")

    user = get_user(db, user_id)
    user.full_name = name
    user.phone = phone.strip() if phone and phone.strip() else None
    user.occupation_id = occupation_id or None
    db.commit()
    db.refresh(user)
    logger.info("Profile updated", extra={"event": "profile.updated", "user_id": user_id})
    return user


def list_users_by_organization(db: Session, organization_id: Optional[str]) -> list[dict[str, Any]]:
    stmt = (
        select(User)
        .where(User.organization_id == organization_id, User.is_active.is_(True))
        .order_by(User.full_name)
    )
    return [user_to_dict(u) for u in db.execute(stmt).scalars()]


def list_users_with_roles(db: Session, *, limit: Optional[int] = None, offset: int = 0) -> list[dict[str, Any]]:
    """All users, newest first, each with {id, name, level} of its role or None."""
    stmt = select(User).order_by(User.created_at.desc()).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    users = list(db.execute(stmt).scalars())

    assignments = {
        ur.user_id: ur.role
        for ur in db.execute(select(UserRole)).unique().scalars()
    }
    result = []
    for user in users:
        role = assignments.get(user.id)
        result.append(
            user_to_dict(
                user,
                role={"id": role.id, "name": role.name, "level": role.level} if role else None,
            )
        )
    return result


def list_active_roles(db: Session) -> list[dict[str, Any]]:
    stmt = select(Role).where(Role.is_active.is_(True)).order_by(Role.level.desc())
    return [role_to_dict(r) for r in db.execute(stmt).scalars()]


def update_user(db: Session, user_id: str, changes: dict[str, Any]) -> dict[str, Any]:
    user = get_user(db, user_id)
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user_to_dict(user)


def assign_role(
    db: Session,
    *,
    actor_id: str,
    actor_level: int,
    user_id: str,
    role_id: Optional[str] = None,
    role_name: Optional[str] = None,
) -> dict[str, Any]:
    """Give `user_id` exactly one role (insert or replace the assignment)."""
    stmt = select(Role)
    stmt = stmt.where(Role.id == role_id) if role_id else stmt.where(Role.name == role_name)
    role = db.execute(stmt).scalar_one_or_none()
    if role is None:
        raise NotFoundError("Role not found")
    if not role.is_active:
        raise BadRequestError("Cannot assign inactive role")
    if role.level > actor_level:
        raise ForbiddenError(
            f"Cannot assign role with level {role.level} (your level: {actor_level})"
        )

    target = db.get(User, user_id)
    if target is None:
        raise NotFoundError("User not found")
    if user_id == actor_id:
        raise BadRequestError("Cannot modify your own role")

    assignment = db.execute(
        select(UserRole).where(UserRole.user_id == user_id)
    ).unique().scalar_one_or_none()
    if assignment is not None:
        assignment.role_id = role.id
        assignment.assigned_by = actor_id
        operation = "updated"
    else:
        db.add(UserRole(user_id=user_id, role_id=role.id, assigned_by=actor_id))
        operation = "assigned"
    db.commit()

    record_audit_event(
        db,
        user_id=actor_id,
        action="ASSIGN_ROLE",
        resource_type="user_role",
        resource_id=user_id,
        details={
            "targetUserName": target.full_name,
            "roleId": role.id,
            "roleName": role.name,
            "roleLevel": role.level,
            "operation": operation,
        },
    )
    logger.info(
        "Role assigned",
        extra={
            "event": "admin.role.assigned",
            "target_user_id": user_id,
            "role": role.name,
            "operation": operation,
        },
    )
    return {
        "userId": user_id,
        "roleId": role.id,
        "roleName": role.name,
        "operation": operation,
        "message": f'Role "{role.name}" {operation} successfully for {target.full_name}',
    }


def set_user_status(
    db: Session,
    sessions: SessionService,
    *,
    actor_id: str,
    actor_level: int,
    user_id: str,
    is_active: bool,
) -> dict[str, Any]:
    """Activate or deactivate an account held by a strictly lower role level.

    Deactivation revokes every live session of the target user.
    """
    if user_id == actor_id:
        raise BadRequestError("Cannot modify your own status")

    target = db.get(User, user_id)
    if target is None:
        raise NotFoundError("User not found")

    target_role, target_level = get_user_role(db, user_id)
    if target_level >= actor_level:
        raise ForbiddenError(
            "Cannot modify user with equal or higher role level "
            f"(target: {target_level}, yours: {actor_level})"
        )

    if target.is_active == is_active:
        return {
            "userId": user_id,
            "isActive": is_active,
            "unchanged": True,
            "message": f"User is already {'active' if is_active else 'inactive'}",
        }

    previous = target.is_active
    target.is_active = is_active
    db.commit()

    revoked = 0
    if not is_active:
        revoked = sessions.delete_user_sessions(user_id)

    record_audit_event(
        db,
        user_id=actor_id,
        action="TOGGLE_USER_STATUS",
        resource_type="user",
        resource_id=user_id,
        details={
            "targetUserName": target.full_name,
            "targetRole": target_role,
            "previousStatus": previous,
            "newStatus": is_active,
            "revokedSessions": revoked,
        },
    )
    logger.info(
        "User status changed",
        extra={
            "event": "admin.user.status_changed",
            "target_user_id": user_id,
            "is_active": is_active,
            "revoked_sessions": revoked,
        },
    )
    return {
        "userId": user_id,
        "isActive": is_active,
        "userName": target.full_name,
        "message": f'User "{target.full_name}" {"activated" if is_active else "deactivated"} successfully',
    }


def deactivate_user(db: Session, sessions: SessionService, user_id: str) -> None:
    """Soft delete used by the admin RPC: deactivate and revoke sessions."""
    user = get_user(db, user_id)
    user.is_active = False
    db.commit()
    sessions.delete_user_sessions(user_id)
