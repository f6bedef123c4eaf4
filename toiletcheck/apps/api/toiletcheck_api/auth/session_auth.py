"""Session authentication and role-level authorization for /api endpoints.

FLOW:
1. User logs in via POST /api/auth/login -> receives session token
2. User calls an endpoint with Authorization: Bearer <token>
3. get_session_auth_context validates the token against the session store,
   loads the user row and resolves the role level
4. require_role_level(min_level) rejects callers below the required level

SECURITY:
- Signature validity alone is never enough; the session record must be live
- Deactivated users are rejected even while their session record exists
- Auth failures are raised before any handler code runs, so no data is
  touched for unauthenticated or under-privileged callers
"""

import logging
from typing import Callable, Optional

import redis
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from toiletcheck_api.auth.roles import RoleLevel, get_user_role, has_level
from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.context import organization_id_var, user_id_var
from toiletcheck_api.db.models import User
from toiletcheck_api.db.redis_client import get_redis
from toiletcheck_api.db.session import get_db

logger = logging.getLogger(__name__)

session_security = HTTPBearer(auto_error=False, description="ToiletCheck session token")


class AuthContext:
    """Authenticated caller for the current request."""

    def __init__(
        self,
        user_id: str,
        email: Optional[str],
        role_name: str,
        role_level: int,
        organization_id: Optional[str],
        session_id: str,
        token: str,
    ):
        self.user_id = user_id
        self.email = email
        self.role_name = role_name
        self.role_level = role_level
        self.organization_id = organization_id
        self.session_id = session_id
        self.token = token

    @property
    def is_admin(self) -> bool:
        return has_level(self.role_level, RoleLevel.ADMIN)


def get_session_service(client: redis.Redis = Depends(get_redis)) -> SessionService:
    """Dependency: session service bound to the shared Redis client."""
    return SessionService(client)


def resolve_auth_context(
    token: Optional[str],
    db: Session,
    sessions: SessionService,
) -> AuthContext:
    """Turn a bearer token into an AuthContext.

    Shared by the REST dependency below and the RPC context builder.

    Raises:
        HTTPException: 401 for a missing/invalid/revoked token or inactive user
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session = sessions.validate_session(token)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = session["userId"]
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        logger.warning(
            "Session for missing or inactive user",
            extra={"event": "session.user_inactive", "user_id": user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Role is re-read from the database so role changes apply immediately
    role_name, role_level = get_user_role(db, user_id)
    organization_id = user.organization_id or session.get("organizationId")

    user_id_var.set(user_id)
    organization_id_var.set(organization_id or "")

    return AuthContext(
        user_id=user_id,
        email=user.email,
        role_name=role_name,
        role_level=role_level,
        organization_id=organization_id,
        session_id=session["sessionId"],
        token=token,
    )


async def get_session_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
) -> AuthContext:
    """Dependency: authenticated caller (any role level).

    Raises:
        HTTPException: 401 if authentication fails
    """
    token = credentials.credentials if credentials else None
    auth = resolve_auth_context(token, db, sessions)
    request.state.auth = auth
    return auth


def require_role_level(min_level: RoleLevel) -> Callable[..., AuthContext]:
    """Dependency factory: caller must hold at least `min_level`.

    Usage:
        auth: AuthContext = Depends(require_role_level(RoleLevel.ADMIN))

    Raises:
        HTTPException: 403 if the caller's level is below min_level
    """

    def _dependency(auth: AuthContext = Depends(get_session_auth_context)) -> AuthContext:
        if not has_level(auth.role_level, min_level):
            logger.warning(
                "Insufficient role level",
                extra={
                    "event": "auth.insufficient_level",
                    "user_id": auth.user_id,
                    "role_level": auth.role_level,
                    "required_level": int(min_level),
                },
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden - Requires role level {int(min_level)} or higher",
            )
        return auth

    return _dependency
