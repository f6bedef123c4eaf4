"""Shared Redis connection for the session store and resource cache."""

import logging
import os
from typing import Any, Optional
from urllib.parse import urlparse

import redis

from toiletcheck_api.config.env import get_redis_url

logger = logging.getLogger(__name__)


def _connection_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {
        "decode_responses": True,
        "socket_connect_timeout": 5,
        "socket_timeout": 5,
        "health_check_interval": 30,
    }
    # REDIS_PASSWORD only applies when the URL carries no credentials
    password = os.getenv("REDIS_PASSWORD")
    if password and not urlparse(url).password:
        options["password"] = password
    return options


class RedisClient:
    """Process-wide redis.Redis, created on first use."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    def get_client(cls) -> redis.Redis:
        if cls._instance is None:
            url = get_redis_url()
            cls._instance = redis.from_url(url, **_connection_options(url))
            logger.info(
                "Redis client created",
                extra={"event": "redis.client.created", "host": urlparse(url).hostname},
            )
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None


def get_redis() -> redis.Redis:
    """FastAPI dependency; tests override it with an in-process double."""
    return RedisClient.get_client()
