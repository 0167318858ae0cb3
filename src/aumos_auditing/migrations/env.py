"""Alembic environment for the audits table.

The audits table often lives in the host application's own database, so
autogenerate only ever considers tables declared on aumos_auditing's
metadata; host tables are never proposed for dropping. SQLite (the default
AUMOS_AUDITING_DATABASE_URL) cannot ALTER columns in place, so its
migrations run in batch mode.

The URL comes from alembic.ini's sqlalchemy.url when set, otherwise from
Settings().database_url.
"""

import asyncio
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from aumos_auditing.core.models import Base
from aumos_auditing.settings import Settings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", Settings().database_url)

target_metadata = Base.metadata


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    """Restrict autogenerate to tables owned by the auditing engine."""
    if type_ == "table":
        return name in target_metadata.tables
    return True


def _configure_options(url: str) -> dict[str, Any]:
    return {
        "target_metadata": target_metadata,
        "include_object": include_object,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit the audits DDL as SQL without connecting."""
    url = config.get_main_option("sqlalchemy.url") or ""
    context.configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"}, **_configure_options(url))
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, **_configure_options(connection.engine.url.drivername))
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Apply migrations through the async driver of the audit database."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
