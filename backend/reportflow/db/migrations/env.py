"""
Alembic environment for the orders/users schema.

Migrations run over psycopg2 (DATABASE_URL_SYNC); the application
itself talks to the same database through asyncpg.  The notify trigger
lives in the migrations only, so autogenerate never sees it.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from reportflow.core.config import settings
from reportflow.db.models import Base  # noqa: F401 — registers Order and User

config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL_SYNC)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

CONFIGURE_OPTIONS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "transaction_per_migration": True,
}


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(settings.DATABASE_URL_SYNC, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **CONFIGURE_OPTIONS)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
