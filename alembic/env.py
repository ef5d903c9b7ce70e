"""Alembic environment configuration.

Reads DATABASE_URL through saas_billing.core.config.load_settings (same
source as the running service) and imports the table metadata for
autogenerate support.
"""

from __future__ import annotations

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from saas_billing.core.config import load_settings
from saas_billing.db.engine import Base

config = context.config

settings = load_settings()
if settings.database_url:
    # Migrations run synchronously: swap the async drivers for sync ones.
    sync_url = settings.database_url.replace("postgresql+asyncpg", "postgresql").replace(
        "sqlite+aiosqlite", "sqlite"
    )
    config.set_main_option("sqlalchemy.url", sync_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Register every table on Base.metadata.
import saas_billing.db.tables  # noqa: E402, F401

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL without a live database."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
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
