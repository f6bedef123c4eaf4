"""Alembic environment for the ToiletCheck schema.

The URL comes from config.env (DATABASE_URL_MIGRATIONS, then DATABASE_URL);
online runs reuse build_engine() so Supabase hosts get sslmode=require.
"""

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "apps" / "api"))

from toiletcheck_api.config.env import get_migrations_database_url  # noqa: E402
from toiletcheck_api.db.engine import build_engine  # noqa: E402
from toiletcheck_api.db.models import Base  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    # An explicit sqlalchemy.url (e.g. `alembic -x` tooling) beats the environment
    return config.get_main_option("sqlalchemy.url") or get_migrations_database_url()


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=False,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Render SQL for `alembic upgrade --sql`."""
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = build_engine(_database_url())
    try:
        with engine.connect() as connection:
            _configure(connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
