"""Login, registration and session lifecycle.

Passwords are verified by Supabase Auth and never stored or logged here. On
success the API issues its own session token (auth.sessions), carrying the
role level and organization resolved from the local database.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from toiletcheck_api.auth.roles import get_user_role
from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.db.models import User
from toiletcheck_api.errors import (
    ConflictError,
    InternalServiceError,
    UnauthorizedError,
)
from toiletcheck_api.services.serializers import user_to_dict
from toiletcheck_api.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)


def _issue_session(db: Session, sessions: SessionService, user: User) -> dict[str, Any]:
    role_name, role_level = get_user_role(db, user.id)
    token = sessions.create_session(
        {
            "userId": user.id,
            "email": user.email,
            "role": role_level,
            "organizationId": user.organization_id,
        }
    )
    user_data = user_to_dict(user, role={"name": role_name, "level": role_level})
    user_data["organizationId"] = user.organization_id
    return {"token": token, "user": user_data}


def login(db: Session, sessions: SessionService, email: str, password: str) -> dict[str, Any]:
    """Verify credentials with Supabase Auth and open a session.

    Raises:
        UnauthorizedError: bad credentials, unconfirmed e-mail, or no active local user
        InternalServiceError: Supabase unavailable or misconfigured
    """
    logger.info("auth.login.attempt", extra={"email": email})
    try:
        supabase = get_supabase_client()
        response = supabase.auth.sign_in_with_password({"email": email, "password": password})
    except RuntimeError as e:
        logger.error("auth.login.misconfigured", extra={"error": str(e)})
        raise InternalServiceError("Authentication service is not configured")
    except Exception as e:
        error_msg = str(e).lower()
        logger.warning(
            "auth.login.rejected",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        if "not confirmed" in error_msg or "email not verified" in error_msg:
            raise UnauthorizedError("Email not confirmed. Please check your email.")
        if "invalid" in error_msg or "wrong" in error_msg or "not found" in error_msg:
            raise UnauthorizedError("Invalid credentials")
        raise InternalServiceError(f"Login failed: {str(e)[:100]}")

    if not response.user:
        raise UnauthorizedError("Invalid credentials")

    user = db.query(User).filter(User.email == email).first()
    if user is None or not user.is_active:
        raise UnauthorizedError("Invalid credentials")

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    result = _issue_session(db, sessions, user)
    logger.info("auth.login.success", extra={"user_id": user.id})
    return result


def register(
    db: Session,
    sessions: SessionService,
    *,
    email: str,
    password: str,
    full_name: str,
    phone: Optional[str] = None,
) -> dict[str, Any]:
    """Create the Supabase Auth user and the matching local user row.

    Raises:
        ConflictError: a local user with this e-mail already exists
        InternalServiceError: Supabase sign-up failed
    """
    if db.query(User).filter(User.email == email).first() is not None:
        raise ConflictError("User already exists")

    logger.info("auth.register.attempt", extra={"email": email})
    try:
        supabase = get_supabase_client()
        response = supabase.auth.sign_up({"email": email, "password": password})
    except RuntimeError as e:
        logger.error("auth.register.misconfigured", extra={"error": str(e)})
        raise InternalServiceError("Authentication service is not configured")
    except Exception as e:
        error_msg = str(e).lower()
        logger.warning(
            "auth.register.rejected",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        if "already registered" in error_msg or "already exists" in error_msg:
            raise ConflictError("User already exists")
        raise InternalServiceError(f"Registration failed: {str(e)[:100]}")

    if not response.user:
        raise InternalServiceError("Registration failed: no user returned")

    user = User(
        id=response.user.id,
        email=email,
        full_name=full_name,
        phone=phone or None,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    result = _issue_session(db, sessions, user)
    logger.info("auth.register.success", extra={"user_id": user.id})
    return result


def refresh(sessions: SessionService, token: str) -> dict[str, str]:
    new_token = sessions.refresh_session(token)
    if new_token is None:
        raise UnauthorizedError("Invalid or expired token")
    return {"token": new_token}


def logout(sessions: SessionService, token: str) -> dict[str, bool]:
    sessions.delete_session(token)
    return {"success": True}
