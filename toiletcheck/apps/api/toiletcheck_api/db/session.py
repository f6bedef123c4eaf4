"""Request-scoped SQLAlchemy sessions."""

from typing import Generator

from sqlalchemy.orm import Session

from toiletcheck_api.config.env import get_database_url
from toiletcheck_api.db.engine import build_engine, build_sessionmaker

# Lazy: the NullPool engine opens nothing until the first query
engine = build_engine(get_database_url())
SessionLocal = build_sessionmaker(engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
