"""Auth endpoints: login, registration and session lifecycle.

Endpoints:
- POST /api/auth/login: Supabase password check, returns a session token
- POST /api/auth/register: Supabase sign-up plus local user row, signs the user in
- POST /api/auth/refresh: rotate the session token
- POST /api/auth/logout: revoke the current session
- GET /api/auth/me: current user with role
- GET /api/auth/verify-role: server-side role check for the UI

SECURITY:
- Passwords are forwarded to Supabase Auth and never logged
- The role in the response is always read from the database
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from toiletcheck_api.auth.roles import is_admin, is_super_admin
from toiletcheck_api.auth.session_auth import (
    AuthContext,
    get_session_auth_context,
    get_session_service,
)
from toiletcheck_api.auth.sessions import SessionService
from toiletcheck_api.db.session import get_db
from toiletcheck_api.responses import success
from toiletcheck_api.schemas import LoginRequest, RefreshRequest, RegisterRequest
from toiletcheck_api.services import auth as auth_service
from toiletcheck_api.services.users import get_user, user_with_role

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login")
async def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    result = auth_service.login(db, sessions, body.email, body.password)
    return success(result, "Login successful")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    result = auth_service.register(
        db,
        sessions,
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        phone=body.phone,
    )
    return success(result, "Registration successful")


@router.post("/refresh")
async def refresh(body: RefreshRequest, sessions: SessionService = Depends(get_session_service)):
    return success(auth_service.refresh(sessions, body.token))


@router.post("/logout")
async def logout(
    auth: AuthContext = Depends(get_session_auth_context),
    sessions: SessionService = Depends(get_session_service),
):
    auth_service.logout(sessions, auth.token)
    logger.info("User logged out", extra={"event": "auth.logout", "user_id": auth.user_id})
    return {"success": True}


@router.get("/me")
async def me(
    auth: AuthContext = Depends(get_session_auth_context),
    db: Session = Depends(get_db),
):
    user = get_user(db, auth.user_id)
    return success(user_with_role(db, user))


@router.get("/verify-role")
async def verify_role(auth: AuthContext = Depends(get_session_auth_context)):
    return success(
        {
            "userId": auth.user_id,
            "role": {"name": auth.role_name, "level": auth.role_level},
            "isAdmin": is_admin(auth.role_level),
            "isSuperAdmin": is_super_admin(auth.role_level),
        }
    )
