"""JSON cache and session store on top of Redis.

Key layout:
  session:<sessionId>             session record (TTL = session TTL, default 24h)
  user_sessions:<userId>          set of live session ids for one user
  location:<id>, building:<id>    cache-aside resource reads (TTL = cache TTL)

Resource cache errors degrade to a miss: they are logged and never fail the
request. Session store errors are raised to the caller, because a session
that cannot be read cannot be trusted.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis
from fastapi import Depends

from toiletcheck_api.config.env import get_cache_ttl_seconds, get_session_ttl_seconds
from toiletcheck_api.db.redis_client import get_redis

logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"
USER_SESSIONS_PREFIX = "user_sessions:"


class CacheService:
    """Thin JSON layer over a Redis client."""

    def __init__(self, client: redis.Redis):
        self.client = client

    # ------------------------------------------------------------------
    # Resource cache (fail-open)
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.warning(
                "cache.get failed",
                extra={"event": "cache.get.error", "key": key, "error": str(e)},
            )
            return None
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            self.client.setex(key, ttl or get_cache_ttl_seconds(), json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.warning(
                "cache.set failed",
                extra={"event": "cache.set.error", "key": key, "error": str(e)},
            )

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(
                "cache.delete failed",
                extra={"event": "cache.delete.error", "keys": list(keys), "error": str(e)},
            )

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the number deleted."""
        try:
            keys = list(self.client.scan_iter(match=pattern, count=500))
            if keys:
                self.client.delete(*keys)
            return len(keys)
        except redis.RedisError as e:
            logger.warning(
                "cache.delete_pattern failed",
                extra={"event": "cache.delete_pattern.error", "pattern": pattern, "error": str(e)},
            )
            return 0

    def exists(self, key: str) -> bool:
        try:
            return bool(self.client.exists(key))
        except redis.RedisError:
            return False

    # ------------------------------------------------------------------
    # Session store (fail-closed)
    # ------------------------------------------------------------------

    def set_session(self, session_id: str, data: dict[str, Any], ttl: Optional[int] = None) -> None:
        ttl = ttl or get_session_ttl_seconds()
        pipe = self.client.pipeline()
        pipe.setex(f"{SESSION_PREFIX}{session_id}", ttl, json.dumps(data))
        user_id = data.get("userId")
        if user_id:
            index_key = f"{USER_SESSIONS_PREFIX}{user_id}"
            pipe.sadd(index_key, session_id)
            pipe.expire(index_key, ttl)
        pipe.execute()

    def get_session(self, session_id: str) -> Optional[dict[str, Any]]:
        raw = self.client.get(f"{SESSION_PREFIX}{session_id}")
        if raw is None:
            return None
        return json.loads(raw)

    def delete_session(self, session_id: str, user_id: Optional[str] = None) -> None:
        pipe = self.client.pipeline()
        pipe.delete(f"{SESSION_PREFIX}{session_id}")
        if user_id:
            pipe.srem(f"{USER_SESSIONS_PREFIX}{user_id}", session_id)
        pipe.execute()

    def get_user_session_ids(self, user_id: str) -> set[str]:
        return set(self.client.smembers(f"{USER_SESSIONS_PREFIX}{user_id}"))

    def delete_user_session_index(self, user_id: str) -> None:
        self.client.delete(f"{USER_SESSIONS_PREFIX}{user_id}")


def get_cache_service(client: redis.Redis = Depends(get_redis)) -> CacheService:
    """Dependency: cache service bound to the shared Redis client."""
    return CacheService(client)
