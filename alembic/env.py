from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

from dispatchdesk import database
from dispatchdesk.core.config import env_str
from dispatchdesk.models import audit_log, job, price_matrix  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = database.Base.metadata


def _database_url() -> str:
    # DATABASE_URL wins over alembic.ini so migrations hit the same database as the app.
    return env_str("DATABASE_URL", config.get_main_option("sqlalchemy.url"))


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=_database_url().startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(_database_url())
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
