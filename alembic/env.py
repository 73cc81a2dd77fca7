"""Alembic environment configuration for database migrations.

This module configures Alembic to work with the Draftline models
and the PostgreSQL connection from draftline.config.
"""

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# Add the project root to the Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from draftline.config import settings
from draftline.database import Base

# Import all models so they are registered with Base.metadata
from draftline.models import (  # noqa: F401
    Document,
    Project,
    ProjectBranch,
    ProjectSnapshot,
    SnapshotDocument,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Migrations run on the synchronous driver
config.set_main_option("sqlalchemy.url", settings.sync_database_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    Emits SQL to the script output using only a URL, without a DBAPI.
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            include_object=include_object,
        )

        with context.begin_transaction():
            context.run_migrations()


def include_object(object, name, type_, reflected, compare_to):
    """Filter which database objects autogenerate considers.

    Returns:
        bool: False for PostgreSQL catalog tables, True otherwise
    """
    if type_ == "table" and (name.startswith("pg_") or name.startswith("sql_")):
        return False
    return True


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
