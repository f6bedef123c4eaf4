"""Session service: JWT + Redis-mirrored session records.

FLOW:
1. create_session(claims) signs a token with a fresh sessionId and mirrors
   {claims, createdAt, expiresAt} into session:<sessionId> with a TTL.
2. validate_session(token) requires BOTH a valid signature AND a live,
   unexpired session record. Revocation = deleting the record.
3. refresh_session(token) binds the same claims to a new sessionId,
   stores the new record and drops the old one.

Concurrent refreshes of the same token are last-writer-wins.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import redis

from toiletcheck_api.auth.tokens import IDENTITY_CLAIMS, create_token, verify_token
from toiletcheck_api.config.env import get_session_ttl_seconds
from toiletcheck_api.db.cache import CacheService

logger = logging.getLogger(__name__)


class SessionService:
    """Issues, validates, refreshes and revokes sessions."""

    def __init__(self, client: redis.Redis):
        self.cache = CacheService(client)

    def create_session(self, claims: dict[str, Any]) -> str:
        """Issue a token and store its session record. Returns the token."""
        token, payload = create_token(claims)

        # Round-trip through verification so the stored record matches
        # exactly what validate_session will later see.
        verified = verify_token(token)
        if verified is None:
            raise RuntimeError("Freshly issued session token failed verification")

        self._store(verified)
        logger.info(
            "Session created",
            extra={
                "event": "session.created",
                "user_id": payload["userId"],
                "session_id": payload["sessionId"],
            },
        )
        return token

    def validate_session(self, token: str) -> Optional[dict[str, Any]]:
        """Return the session record for a live token, or None."""
        payload = verify_token(token)
        if payload is None:
            return None

        session_id = payload["sessionId"]
        try:
            session = self.cache.get_session(session_id)
        except redis.RedisError as e:
            logger.error(
                "Session lookup failed",
                extra={"event": "session.lookup.error", "session_id": session_id, "error": str(e)},
            )
            return None

        if session is None:
            return None

        expires_at = datetime.fromisoformat(session["expiresAt"])
        if expires_at < datetime.now(timezone.utc):
            try:
                self.cache.delete_session(session_id, session.get("userId"))
            except redis.RedisError as e:
                logger.error(
                    "Expired session cleanup failed",
                    extra={"event": "session.cleanup.error", "session_id": session_id, "error": str(e)},
                )
                return None
            logger.info(
                "Expired session removed",
                extra={"event": "session.expired", "session_id": session_id},
            )
            return None

        return session

    def refresh_session(self, token: str) -> Optional[str]:
        """Exchange a live token for a new one bound to the same claims."""
        session = self.validate_session(token)
        if session is None:
            return None

        new_token, _ = create_token(session)
        new_payload = verify_token(new_token)
        if new_payload is None:
            raise RuntimeError("Refreshed session token failed verification")

        self._store(new_payload)
        self.cache.delete_session(session["sessionId"], session.get("userId"))

        logger.info(
            "Session refreshed",
            extra={
                "event": "session.refreshed",
                "user_id": session.get("userId"),
                "old_session_id": session["sessionId"],
                "session_id": new_payload["sessionId"],
            },
        )
        return new_token

    def delete_session(self, token: str) -> bool:
        """Revoke the session behind a token. Returns False if the token is unreadable."""
        payload = verify_token(token)
        if payload is None:
            return False

        self.cache.delete_session(payload["sessionId"], payload.get("userId"))
        logger.info(
            "Session revoked",
            extra={
                "event": "session.revoked",
                "user_id": payload.get("userId"),
                "session_id": payload["sessionId"],
            },
        )
        return True

    def delete_user_sessions(self, user_id: str) -> int:
        """Revoke every live session of a user. Returns the number revoked."""
        session_ids = self.cache.get_user_session_ids(user_id)
        for session_id in session_ids:
            self.cache.delete_session(session_id)
        self.cache.delete_user_session_index(user_id)

        logger.info(
            "User sessions revoked",
            extra={"event": "session.revoked_all", "user_id": user_id, "count": len(session_ids)},
        )
        return len(session_ids)

    def _store(self, payload: dict[str, Any]) -> None:
        ttl = get_session_ttl_seconds()
        created_at = datetime.now(timezone.utc)
        record = {key: payload.get(key) for key in IDENTITY_CLAIMS}
        record["sessionId"] = payload["sessionId"]
        record["createdAt"] = created_at.isoformat()
        record["expiresAt"] = (created_at + timedelta(seconds=ttl)).isoformat()
        self.cache.set_session(payload["sessionId"], record, ttl)
