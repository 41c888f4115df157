"""Idempotent schema upgrades for databases created before the current models."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from ..models.interval import OPEN_INTERVAL_INDEX, USER_DATE_INDEX

logger = logging.getLogger(__name__)

# ``create_all`` never touches existing tables, so a database bootstrapped from
# the plain SQL schema may be missing these. Only additive changes happen here.


def _index_names(engine: Engine, table: str) -> set[str]:
    """Names of the indexes already defined on ``table``."""

    return {record["name"] for record in inspect(engine).get_indexes(table) if record.get("name")}


def _create_index_if_not_exists(
    engine: Engine,
    table: str,
    name: str,
    cols: Iterable[str],
    unique: bool = False,
    where: str | None = None,
) -> None:
    """Build an index only if it hasn't already been defined."""

    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    where_sql = f" WHERE {where}" if where else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql}){where_sql}"))


def run_migrations(engine: Engine) -> None:
    if not inspect(engine).has_table("sessions"):
        return
    existing = _index_names(engine, "sessions")
    if OPEN_INTERVAL_INDEX not in existing:
        # Fails loudly if the data already breaks the one-open-interval rule.
        _create_index_if_not_exists(
            engine, "sessions", OPEN_INTERVAL_INDEX, ["user_id"], unique=True, where="end_time IS NULL"
        )
        logger.info("db.migrated", extra={"extra_data": {"index": OPEN_INTERVAL_INDEX}})
    if USER_DATE_INDEX not in existing:
        _create_index_if_not_exists(engine, "sessions", USER_DATE_INDEX, ["user_id", "start_time"])
        logger.info("db.migrated", extra={"extra_data": {"index": USER_DATE_INDEX}})
