"""Additive schema reconciliation for databases created by older versions."""

import logging

from sqlalchemy import Column, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.sql.elements import TextClause

from .schema import benchmarks_table

logger = logging.getLogger(__name__)


def _column_ddl(column: Column, engine: Engine) -> str:
    ddl = f"{column.name} {column.type.compile(dialect=engine.dialect)}"
    default = column.server_default
    # SQLite only accepts constant defaults on ADD COLUMN
    if default is not None and isinstance(default.arg, TextClause):
        ddl += f" DEFAULT {default.arg.text}"
    return ddl


def missing_columns(engine: Engine) -> list[Column]:
    existing = {c["name"] for c in inspect(engine).get_columns(benchmarks_table.name)}
    return [
        column for column in benchmarks_table.columns
        if column.name not in existing and not column.primary_key
    ]


def migrate(engine: Engine) -> list[str]:
    """
    Bring an existing benchmarks table up to the current column set.

    Columns are only ever added, never dropped or altered, and existing rows
    keep their data. Declared indexes are created if absent. Returns the
    names of the columns that were added.
    """
    added = []
    columns = missing_columns(engine)
    with engine.begin() as conn:
        for column in columns:
            conn.execute(text(f"ALTER TABLE {benchmarks_table.name} ADD COLUMN {_column_ddl(column, engine)}"))
            logger.info("Migration: Added %s column", column.name)
            added.append(column.name)
        for index in benchmarks_table.indexes:
            index.create(bind=conn, checkfirst=True)
    return added
