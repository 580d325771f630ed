import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from hub_api.config import normalize_database_url
from hub_api.models import Base

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)


def database_url() -> str:
    """`-x database_url=...` wins over DATABASE_URL, so migrations can target another database."""
    url = context.get_x_argument(as_dictionary=True).get("database_url") or os.environ.get("DATABASE_URL", "")
    if not url.strip():
        raise RuntimeError("DATABASE_URL is required for migrations")
    return normalize_database_url(url.strip())


def migrate_offline() -> None:
    context.configure(
        url=database_url(),
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_online() -> None:
    engine = create_engine(database_url(), poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, target_metadata=Base.metadata, compare_type=True)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
