from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator, List, Optional, Tuple

from .errors import ConditionalWriteFailed, StoreError, StoreUnavailableError
from .models import RecordDict
from .stores import ListQuery, RecordStore, _sort_direction

logger = logging.getLogger(__name__)

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class _Cols:
    table: str = "records"
    model: str = "model"
    id: str = "id"
    body: str = "body"
    created_at: str = "created_at"


_COLS = _Cols()


class SQLiteStore(RecordStore):
    """
    SQLite-backed document store implementing the RecordStore interface.

    Every model shares one table; the (model, id) primary key gives the
    create-if-absent guarantee.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path, timeout=10)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"cannot open record store: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.OperationalError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.model} TEXT NOT NULL,
                    {_COLS.id} TEXT NOT NULL,
                    {_COLS.body} TEXT NOT NULL,
                    {_COLS.created_at} TEXT NULL,
                    PRIMARY KEY ({_COLS.model}, {_COLS.id})
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_created_at "
                f"ON {_COLS.table}({_COLS.model}, {_COLS.created_at})"
            )

    def put_if_absent(self, table: str, item: RecordDict) -> None:
        record_id = str(item["id"])
        body = json.dumps(item, ensure_ascii=False)
        try:
            with self._conn() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {_COLS.table} ({_COLS.model}, {_COLS.id}, {_COLS.body}, {_COLS.created_at})
                    VALUES (?, ?, ?, ?)
                    """,
                    (table, record_id, body, item.get("created_at")),
                )
        except sqlite3.IntegrityError as exc:
            raise ConditionalWriteFailed(table, record_id) from exc

    def get(self, table: str, record_id: str) -> Optional[RecordDict]:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT {_COLS.body} FROM {_COLS.table} WHERE {_COLS.model} = ? AND {_COLS.id} = ?",
                (table, record_id),
            ).fetchone()
            return json.loads(row[_COLS.body]) if row else None

    def list(self, table: str, query: Optional[ListQuery] = None) -> Tuple[List[RecordDict], int]:
        q = query or ListQuery()
        clauses = [f"{_COLS.model} = ?"]
        params: List[Any] = [table]

        for key, value in q.filters.items():
            if not _FIELD_NAME.match(key):
                raise ValueError(f"invalid filter field: {key!r}")
            if value is None:
                clauses.append(f"json_extract({_COLS.body}, ?) IS NULL")
                params.append(f"$.{key}")
            else:
                clauses.append(f"json_extract({_COLS.body}, ?) = ?")
                params.extend([f"$.{key}", value])

        where_sql = f"WHERE {' AND '.join(clauses)}"
        direction = "DESC" if _sort_direction(q.sort) else "ASC"
        order_sql = f"ORDER BY {_COLS.created_at} {direction}, {_COLS.id} {direction}"

        with self._conn() as conn:
            count_row = conn.execute(
                f"SELECT COUNT(*) AS cnt FROM {_COLS.table} {where_sql}", params
            ).fetchone()
            total = int(count_row["cnt"]) if count_row else 0

            rows = conn.execute(
                f"""
                SELECT {_COLS.body} FROM {_COLS.table}
                {where_sql}
                {order_sql}
                LIMIT ? OFFSET ?
                """,
                [*params, max(q.limit, 0), max(q.offset, 0)],
            ).fetchall()
            return [json.loads(r[_COLS.body]) for r in rows], total
