"""Alembic environment configuration.

Only the tables owned by the notification core are migrated here. The
remaining tables in campus.tables belong to the CRUD side of the backend
and are left out of autogenerate.
"""

import os
import sys
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine, pool

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Load environment variables (.env.local overrides .env)
load_dotenv(".env")
load_dotenv(".env.local", override=True)

from campus.database import get_sync_database_url
from campus.tables import metadata

OWNED_TABLES = {"notifications", "webhooks", "webhook_delivery_logs"}

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = metadata


def include_object(obj, name, type_, reflected, compare_to):
    """Restrict autogenerate to the core's own tables (and their indexes)."""
    if type_ == "table":
        return name in OWNED_TABLES
    table = getattr(obj, "table", None)
    if table is not None:
        return table.name in OWNED_TABLES
    return True


def run_migrations_offline() -> None:
    """Emit SQL scripts without connecting to the database."""
    context.configure(
        url=get_sync_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Connect to the database and apply migrations directly."""
    connectable = create_engine(
        get_sync_database_url(),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            include_object=include_object,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
