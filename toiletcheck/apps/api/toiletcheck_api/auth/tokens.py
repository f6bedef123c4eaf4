"""Session token issuance and verification (HS256 JWT).

Token claims:
  userId, email, role (level), organizationId  - identity
  sessionId                                   - random id binding the token to a session record
  iat, exp                                    - issued-at / expiry (JWT_EXPIRES_IN, default 7d)

A verified token is necessary but not sufficient: see auth.sessions.
"""

import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from toiletcheck_api.config.env import get_jwt_secret, get_token_lifetime_seconds

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_ID_LENGTH = 21
_SESSION_ID_ALPHABET = string.ascii_letters + string.digits + "_-"

# Claims that identify the user (carried across refresh)
IDENTITY_CLAIMS = ("userId", "email", "role", "organizationId")


def generate_session_id() -> str:
    """Random URL-safe session id."""
    return "".join(secrets.choice(_SESSION_ID_ALPHABET) for _ in range(SESSION_ID_LENGTH))


def create_token(claims: dict[str, Any], session_id: Optional[str] = None) -> tuple[str, dict[str, Any]]:
    """Sign a token for the given identity claims.

    Args:
        claims: userId, email, role, organizationId
        session_id: Session id to embed (a fresh one is generated if omitted)

    Returns:
        (token, payload) where payload includes sessionId, iat and exp
    """
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {key: claims.get(key) for key in IDENTITY_CLAIMS}
    payload["sessionId"] = session_id or generate_session_id()
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + timedelta(seconds=get_token_lifetime_seconds())).timestamp())

    token = jwt.encode(payload, get_jwt_secret(), algorithm=ALGORITHM)
    return token, payload


def verify_token(token: str) -> Optional[dict[str, Any]]:
    """Verify signature and expiry. Returns the payload, or None on any failure."""
    try:
        payload = jwt.decode(token, get_jwt_secret(), algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info(
            "Token verification failed",
            extra={"event": "token.verify.failed", "error_type": type(e).__name__},
        )
        return None

    if not payload.get("userId") or not payload.get("sessionId"):
        return None
    return payload


def refresh_token(token: str) -> Optional[tuple[str, dict[str, Any]]]:
    """Re-issue a token carrying the same identity claims and a new session id."""
    payload = verify_token(token)
    if payload is None:
        return None
    return create_token(payload)


def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]
