"""Engine and sessionmaker construction.

The app talks to Supabase Postgres through the Supabase pooler, so
client-side pooling is off by default (NullPool). TC_DB_POOL=queuepool
switches to a local QueuePool for direct connections.
"""

import logging
import os
import re
from typing import Any
from urllib.parse import urlparse

from sqlalchemy import Engine, NullPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

_SUPABASE_HOST_SUFFIXES = (".supabase.co", ".supabase.com")
_PASSWORD_RE = re.compile(r"://([^:/@]+):([^@]+)@")


def is_supabase_host(url: str) -> bool:
    return (urlparse(url).hostname or "").lower().endswith(_SUPABASE_HOST_SUFFIXES)


def mask_database_url(url: str) -> str:
    return _PASSWORD_RE.sub(r"://\1:***@", url)


def _pool_options() -> dict[str, Any]:
    mode = os.getenv("TC_DB_POOL", "nullpool").lower()
    if mode == "nullpool":
        return {"poolclass": NullPool}
    if mode == "queuepool":
        return {
            "pool_size": int(os.getenv("TC_DB_POOL_SIZE", "5")),
            "max_overflow": int(os.getenv("TC_DB_MAX_OVERFLOW", "10")),
        }
    raise ValueError(f"Invalid TC_DB_POOL value: {mode}. Must be 'nullpool' or 'queuepool'.")


def build_engine(database_url: str) -> Engine:
    """Create the engine for ``database_url``.

    Supabase hosts get ``sslmode=require`` unless the URL already sets one.

    Raises:
        ValueError: If TC_DB_POOL is not a known mode
    """
    connect_args: dict[str, Any] = {}
    if is_supabase_host(database_url) and "sslmode=" not in database_url:
        connect_args["sslmode"] = "require"

    engine = create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args=connect_args,
        **_pool_options(),
    )
    logger.debug(
        "Database engine created",
        extra={
            "event": "db.engine.created",
            "pool": engine.pool.__class__.__name__,
            "url": mask_database_url(database_url),
        },
    )
    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
