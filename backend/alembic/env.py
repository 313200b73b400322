# Standard library imports
import os
import sys
from logging.config import fileConfig

# Third party imports
from sqlalchemy import engine_from_config
from sqlalchemy import pool
from alembic import context

# Add backend/ (parent directory of 'alembic') to the Python path so that
# 'toolforge' imports when alembic is run from a source checkout.
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from toolforge.core.config import settings  # noqa: E402
from toolforge.models import Base  # noqa: E402  (registers every model on Base.metadata)

config = context.config

if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline():
    context.configure(
        url=settings.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    db_config = config.get_section(config.config_ini_section, {})
    db_config["sqlalchemy.url"] = settings.DATABASE_URL
    connectable = engine_from_config(
        db_config,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
