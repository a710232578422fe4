"""Alembic environment configuration.

DATABASE_URL comes from collab.core.config, the same source as the
running service, so migrations and the app can never disagree about
which database they target.
"""

from __future__ import annotations

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from collab.core.config import SETTINGS
from collab.db.engine import Base

config = context.config

if SETTINGS.database_url:
    # Alembic runs synchronously; swap the asyncpg driver for the default sync one.
    sync_url = SETTINGS.database_url.replace(
        "postgresql+asyncpg", "postgresql"
    )
    config.set_main_option("sqlalchemy.url", sync_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Register projects / milestones / progress_entries on Base.metadata.
import collab.db.tables  # noqa: E402, F401

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL without a live database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
