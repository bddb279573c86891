"""
Alembic environment: migrations for key_value_entries, xml_reader_runs and
xml_records
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from core.database import sync_url
from models.base import Base
# Register every table with Base.metadata
from models import key_value, xml_record, xml_run  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Alembic runs synchronously; -x url=... overrides the configured database
URL = sync_url(context.get_x_argument(as_dictionary=True).get("url"))


def run_migrations_offline():
    context.configure(
        url=URL,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=URL.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        {"sqlalchemy.url": URL},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER most constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
