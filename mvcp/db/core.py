"""Core database infrastructure: connect, execute, schema helpers."""

import logging
import sqlite3
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from ..config import ROOT, get_db_path

logger = logging.getLogger(__name__)

SCHEMA_PATH = ROOT / "schema.sql"

# Overridden by tests; None means "use DATABASE_PATH / default"
DB_PATH: Path | None = None


def _resolve_db_path() -> Path:
    return DB_PATH if DB_PATH is not None else get_db_path()


def execute(con, sql: str, params: Mapping[str, Any] | Sequence[Any] | None = None):
    cur = con.cursor()
    if params is None:
        cur.execute(sql)
    else:
        cur.execute(sql, params)
    return cur


def executemany(
    con,
    sql: str,
    params_seq: Iterable[Mapping[str, Any]] | Iterable[Sequence[Any]],
):
    cur = con.cursor()
    params_list = list(params_seq)
    if not params_list:
        return cur
    cur.executemany(sql, params_list)
    return cur


def fetch_dicts(cur) -> list[dict[str, Any]]:
    """Materialize cursor rows as column-name keyed dicts."""
    columns = [desc[0] for desc in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]


def fetch_one_dict(cur) -> dict[str, Any] | None:
    row = cur.fetchone()
    if row is None:
        return None
    columns = [desc[0] for desc in cur.description]
    return dict(zip(columns, row))


def table_exists(con, table_name: str) -> bool:
    cur = execute(
        con,
        "SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name",
        {"table_name": table_name},
    )
    return cur.fetchone() is not None


def connect():
    db_path = _resolve_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(db_path, timeout=30)
    con.execute("PRAGMA journal_mode=WAL")
    return con


def init_db():
    con = connect()
    schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
    con.executescript(schema_sql)
    con.commit()
    con.close()
    logger.info("Database schema initialised at %s", _resolve_db_path())


def assert_tables_exist():
    con = connect()
    required = {"users", "cell_groups", "districts", "cells", "reports"}
    missing = {name for name in required if not table_exists(con, name)}
    con.close()
    if missing:
        raise RuntimeError(f"DB_SCHEMA_MISSING_TABLES: {sorted(missing)}")
