"""GET /health: database and Redis reachability."""

import logging

import redis
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from toiletcheck_api import __version__
from toiletcheck_api.db.redis_client import get_redis
from toiletcheck_api.db.session import get_db
from toiletcheck_api.schemas import HealthResponse

router = APIRouter()
logger = logging.getLogger(__name__)

UP = "up"


def _down(component: str, exc: Exception) -> str:
    logger.error(
        f"{component} health check failed: {exc}",
        extra={"event": "health.check.failed", "component": component},
    )
    return f"down: {str(exc)[:50]}"


def check_database(db: Session) -> str:
    try:
        db.execute(text("SELECT 1"))
        return UP
    except Exception as e:
        return _down("database", e)


def check_redis(client: redis.Redis) -> str:
    try:
        client.ping()
        return UP
    except Exception as e:
        return _down("redis", e)


@router.get("/health", response_model=HealthResponse)
def health_check(
    response: Response,
    db: Session = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
) -> HealthResponse:
    """Healthy only when every dependency answers; otherwise 503 "degraded"."""
    services = {
        "database": check_database(db),
        "redis": check_redis(redis_client),
    }
    healthy = all(state == UP for state in services.values())
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=__version__,
        services=services,
    )
