"""PostgreSQL record store backed by a psycopg connection pool."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import psycopg
from psycopg import errors as pg_errors
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from meetpoll.config import PostgresSettings
from meetpoll.db.base import (
    PARTICIPANT_RESPONSE,
    SCHEDULE,
    MODEL_FIELDS,
    RecordStore,
    check_fields,
    generate_record_id,
)
from meetpoll.db.migrations import get_current_version, run_migrations
from meetpoll.errors import StoreError
from meetpoll.timeutil import parse_iso, to_iso

_logger = logging.getLogger(__name__)

TABLES = {
    SCHEDULE: "schedules",
    PARTICIPANT_RESPONSE: "participant_responses",
}
JSON_COLUMNS = {"candidates", "answers"}
TIMESTAMP_COLUMNS = {"created_at", "updated_at"}


def _to_db(fields: dict[str, Any]) -> dict[str, Any]:
    values = {}
    for key, value in fields.items():
        if value is not None and key in JSON_COLUMNS:
            value = Json(value)
        elif value is not None and key in TIMESTAMP_COLUMNS:
            value = parse_iso(value)
        values[key] = value
    return values


def _from_db(row: dict[str, Any]) -> dict[str, Any]:
    return {
        key: to_iso(value) if isinstance(value, datetime) else value
        for key, value in row.items()
    }


class PostgresRecordStore(RecordStore):
    name = "postgres"

    def __init__(self, settings: PostgresSettings) -> None:
        self._settings = settings
        self._pool: AsyncConnectionPool | None = None

    async def open(self) -> None:
        if self._pool is not None:
            return
        settings = self._settings
        self._pool = AsyncConnectionPool(
            settings.get_dsn(),
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            timeout=settings.pool_timeout,
            max_lifetime=settings.pool_max_lifetime,
            max_idle=settings.pool_max_idle,
            check=AsyncConnectionPool.check_connection,
            open=False,
        )
        await self._pool.open()
        _logger.info(
            "Database connection pool initialized (min=%d, max=%d, timeout=%ds)",
            settings.pool_min_size,
            settings.pool_max_size,
            settings.pool_timeout,
        )
        await self._ensure_schema()

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            _logger.info("Database connection pool closed")

    async def ping(self) -> bool:
        try:
            async with self._connection() as conn:
                await conn.execute("SELECT 1")
            return True
        except Exception as e:
            _logger.warning("Database health check failed: %s", e)
            return False

    @asynccontextmanager
    async def _connection(self):
        if self._pool is None:
            raise StoreError("Database connection pool is not open")
        async with self._pool.connection() as conn:
            await conn.set_autocommit(True)
            yield conn

    async def _ensure_schema(self) -> None:
        async with self._connection() as conn:
            current = await get_current_version(conn)
            applied = await run_migrations(conn)
            if applied:
                _logger.info(
                    "Schema updated from version %d to %d",
                    current,
                    await get_current_version(conn),
                )

    async def _fetch(self, query: sql.Composable, params: Any) -> list[dict[str, Any]]:
        try:
            async with self._connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, params)
                    rows = await cur.fetchall()
        except psycopg.Error as e:
            raise StoreError(str(e)) from e
        return [_from_db(row) for row in rows]

    def _columns(self, model: str) -> sql.Composable:
        return sql.SQL(", ").join(sql.Identifier(c) for c in MODEL_FIELDS[model])

    async def list(self, model, *, filters=None, limit):
        filters = check_fields(model, filters)
        where = sql.SQL("")
        if filters:
            where = sql.SQL(" WHERE ") + sql.SQL(" AND ").join(
                sql.SQL("{} = %s").format(sql.Identifier(key)) for key in filters
            )
        query = sql.SQL("SELECT {} FROM {}{} LIMIT %s").format(
            self._columns(model), sql.Identifier(TABLES[model]), where
        )
        return await self._fetch(query, [*filters.values(), limit])

    async def get(self, model, record_id):
        check_fields(model, None)
        query = sql.SQL("SELECT {} FROM {} WHERE id = %s").format(
            self._columns(model), sql.Identifier(TABLES[model])
        )
        rows = await self._fetch(query, (record_id,))
        return rows[0] if rows else None

    async def create(self, model, fields):
        fields = check_fields(model, fields)
        fields.pop("id", None)
        for _ in range(10):
            values = _to_db({**fields, "id": generate_record_id()})
            query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING {}").format(
                sql.Identifier(TABLES[model]),
                sql.SQL(", ").join(sql.Identifier(k) for k in values),
                sql.SQL(", ").join(sql.Placeholder() for _ in values),
                self._columns(model),
            )
            try:
                rows = await self._fetch(query, list(values.values()))
            except StoreError as e:
                if isinstance(e.__cause__, pg_errors.UniqueViolation):
                    continue
                raise
            return rows[0]
        raise StoreError(f"Failed to generate unique {model} ID")

    async def update(self, model, record_id, fields):
        fields = check_fields(model, fields)
        fields.pop("id", None)
        if not fields:
            record = await self.get(model, record_id)
            if record is None:
                raise StoreError(f"{model} {record_id} does not exist")
            return record
        values = _to_db(fields)
        query = sql.SQL("UPDATE {} SET {} WHERE id = %s RETURNING {}").format(
            sql.Identifier(TABLES[model]),
            sql.SQL(", ").join(sql.SQL("{} = %s").format(sql.Identifier(k)) for k in values),
            self._columns(model),
        )
        rows = await self._fetch(query, [*values.values(), record_id])
        if not rows:
            raise StoreError(f"{model} {record_id} does not exist")
        return rows[0]
