"""Role levels.

Authorization is a flat comparison of the caller's role level against the
minimum level an operation requires. Levels are named here and nowhere
else compares against a bare integer.
"""

import logging
from enum import IntEnum
from typing import Optional

from sqlalchemy.orm import Session

from toiletcheck_api.db.models import UserRole

logger = logging.getLogger(__name__)

DEFAULT_ROLE_NAME = "user"


class RoleLevel(IntEnum):
    """Ordered role levels (0-100)."""

    USER = 0
    SUPERVISOR = 50
    ADMIN = 80
    SUPER_ADMIN = 90
    OWNER = 100


def has_level(actual: int, required: int) -> bool:
    """Access is granted iff actual >= required."""
    return int(actual) >= int(required)


def is_admin(level: int) -> bool:
    return has_level(level, RoleLevel.ADMIN)


def is_super_admin(level: int) -> bool:
    return has_level(level, RoleLevel.SUPER_ADMIN)


def get_user_role(db: Session, user_id: str) -> tuple[str, int]:
    """Resolve (role_name, role_level) for a user.

    Users without an assignment, or whose role is inactive, get the
    default ("user", 0).
    """
    assignment: Optional[UserRole] = (
        db.query(UserRole).filter(UserRole.user_id == user_id).first()
    )
    if assignment is None or assignment.role is None:
        return DEFAULT_ROLE_NAME, int(RoleLevel.USER)

    if not assignment.role.is_active:
        logger.info(
            "Inactive role ignored",
            extra={"event": "auth.role.inactive", "user_id": user_id, "role": assignment.role.name},
        )
        return DEFAULT_ROLE_NAME, int(RoleLevel.USER)

    return assignment.role.name, int(assignment.role.level)
