"""SQLite implementation of the search store."""

import asyncio
import json
import logging
import re
import sqlite3
import threading
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

from talent_search.core.db import LIST_COLUMNS, to_timestamp
from talent_search.store.base import (
    AnyOf,
    Condition,
    Contains,
    Entity,
    Equals,
    Has,
    HasSome,
    Range,
    Row,
    SearchStore,
)

logger = logging.getLogger(__name__)

# Entity name -> table or view it reads from.
_SOURCES: dict[str, str] = {
    "job_postings": "job_posting_search",
    "organizations": "organizations",
    "candidate_profiles": "candidate_profiles",
    "courses": "courses",
    "institutions": "institutions",
}

_BOOL_COLUMNS = frozenset({"is_active"})

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


def _ident(name: str) -> str:
    if not _IDENTIFIER.match(name):
        msg = f"Invalid field name: {name!r}"
        raise ValueError(msg)
    return name


def _param(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return to_timestamp(value)
    if isinstance(value, bool):
        return int(value)
    return value


def compile_condition(cond: Condition) -> tuple[str, list[Any]]:
    """Translate a condition into a SQL fragment and its parameters."""
    if isinstance(cond, Contains):
        return f"icontains({_ident(cond.field)}, ?)", [cond.value]

    if isinstance(cond, Equals):
        return f"{_ident(cond.field)} = ?", [_param(cond.value)]

    if isinstance(cond, Range):
        field = _ident(cond.field)
        parts: list[str] = []
        params: list[Any] = []
        if cond.gte is not None:
            parts.append(f"{field} >= ?")
            params.append(_param(cond.gte))
        if cond.lte is not None:
            parts.append(f"{field} <= ?")
            params.append(_param(cond.lte))
        if not parts:
            return "1 = 1", []
        return " AND ".join(parts), params

    if isinstance(cond, Has):
        field = _ident(cond.field)
        return (
            f"EXISTS (SELECT 1 FROM json_each({field}) WHERE json_each.value = ?)",
            [cond.value],
        )

    if isinstance(cond, HasSome):
        if not cond.values:
            return "0 = 1", []
        field = _ident(cond.field)
        placeholders = ", ".join("?" for _ in cond.values)
        return (
            f"EXISTS (SELECT 1 FROM json_each({field}) "
            f"WHERE json_each.value IN ({placeholders}))",
            list(cond.values),
        )

    if isinstance(cond, AnyOf):
        if not cond.conditions:
            return "0 = 1", []
        fragments: list[str] = []
        params = []
        for nested in cond.conditions:
            sql, nested_params = compile_condition(nested)
            fragments.append(f"({sql})")
            params.extend(nested_params)
        return "(" + " OR ".join(fragments) + ")", params

    msg = f"Unsupported condition: {cond!r}"
    raise ValueError(msg)


def build_select(
    entity: Entity,
    where: Sequence[Condition],
    *,
    limit: int | None,
    offset: int,
    order_by: Sequence[str],
    fields: Sequence[str] | None,
) -> tuple[str, list[Any]]:
    """Build a full SELECT statement for ``find_many``."""
    if entity not in _SOURCES:
        msg = f"Unknown entity: {entity!r}"
        raise ValueError(msg)

    columns = ", ".join(_ident(f) for f in fields) if fields else "*"
    sql = f"SELECT {columns} FROM {_SOURCES[entity]}"
    params: list[Any] = []

    if where:
        fragments = []
        for cond in where:
            fragment, cond_params = compile_condition(cond)
            fragments.append(f"({fragment})")
            params.extend(cond_params)
        sql += " WHERE " + " AND ".join(fragments)

    if order_by:
        terms = []
        for term in order_by:
            if term.startswith("-"):
                terms.append(f"{_ident(term[1:])} DESC")
            else:
                terms.append(f"{_ident(term)} ASC")
        sql += " ORDER BY " + ", ".join(terms)

    # SQLite needs a LIMIT clause before OFFSET; -1 means unbounded.
    sql += " LIMIT ? OFFSET ?"
    params.extend([limit if limit is not None else -1, offset])
    return sql, params


def _decode_row(row: sqlite3.Row) -> Row:
    decoded: Row = {}
    for key in row.keys():
        value = row[key]
        if key in LIST_COLUMNS:
            value = json.loads(value) if value else []
        elif key in _BOOL_COLUMNS and value is not None:
            value = bool(value)
        elif key.endswith("_at") and isinstance(value, str):
            value = datetime.fromisoformat(value)
        decoded[key] = value
    return decoded


class SqliteSearchStore(SearchStore):
    """Runs reads on a worker thread so concurrent lookups don't block the loop.

    Usage::

        store = SqliteSearchStore(init_db("data/talent.db"))
        rows = await store.find_many("courses", [Equals("is_active", True)], limit=10)
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        # One connection shared across worker threads.
        self._lock = threading.Lock()

    async def find_many(
        self,
        entity: Entity,
        where: Sequence[Condition],
        *,
        limit: int | None = None,
        offset: int = 0,
        order_by: Sequence[str] = (),
        fields: Sequence[str] | None = None,
    ) -> list[Row]:
        sql, params = build_select(
            entity, where, limit=limit, offset=offset, order_by=order_by, fields=fields,
        )
        logger.debug("find_many %s: %s %s", entity, sql, params)
        return await asyncio.to_thread(self._fetch, sql, params)

    def _fetch(self, sql: str, params: list[Any]) -> list[Row]:
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [_decode_row(r) for r in rows]
