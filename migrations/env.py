"""
Alembic Environment Configuration

This file configures Alembic to work with the VetPractice Core owner database
(tenant registry, owner accounts, access logs). Tenant databases are created
from the models on provisioning and are not managed here.
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# Import the owner Base and its models for autogenerate detection
from vetcore.database import OwnerBase, OWNER_DATABASE_URL
from vetcore.models import AccessLog, OwnerSession, OwnerUser, Tenant  # noqa: F401 - needed for autogenerate

# This is the Alembic Config object
config = context.config

# Migrations always target the same owner database as the app
config.set_main_option("sqlalchemy.url", OWNER_DATABASE_URL)

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadata for autogenerate support
target_metadata = OwnerBase.metadata


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    This configures the context with just a URL and not an Engine.
    Calls to context.execute() emit SQL to the script output.
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode.

    Creates an Engine and associates a connection with the context.
    """
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER TABLE with constraints; batch mode recreates the table
            render_as_batch=True,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
