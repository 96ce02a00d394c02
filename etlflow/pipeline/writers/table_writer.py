"""
Relational table writer using psycopg3.

Each record is upserted in its own transaction. A failing record is logged
and counted; earlier records stay committed.
"""

import asyncio
import threading
from typing import Any

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from etlflow.core.exceptions import LoadError
from etlflow.core.models import LoadResult, PipelineDefinition
from etlflow.observability.logger import get_logger
from etlflow.utils.validation import ValidationError, sanitize_sql_identifier
from etlflow.warehouse.connection import DatabaseConnectionPool

from .base_writer import DestinationWriter

logger = get_logger(__name__)


def build_upsert_query(
    table: str,
    columns: list[str],
    key_fields: list[str],
) -> sql.Composed:
    """
    Build INSERT ... ON CONFLICT (keys) DO UPDATE for one record shape.

    Without key fields the statement is a plain INSERT. When every column is
    a key column the conflict is ignored.

    Raises:
        ValidationError: If the table or a column is not a safe identifier
    """
    table = sanitize_sql_identifier(table, "table")
    columns = [sanitize_sql_identifier(c, "column") for c in columns]

    query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values})").format(
        table=sql.Identifier(table),
        columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        values=sql.SQL(", ").join(sql.Placeholder() for _ in columns),
    )

    if not key_fields:
        return query

    keys = [sanitize_sql_identifier(k, "key field") for k in key_fields]
    updates = [c for c in columns if c not in keys]
    conflict = sql.SQL(" ON CONFLICT ({keys})").format(
        keys=sql.SQL(", ").join(sql.Identifier(k) for k in keys)
    )
    if not updates:
        return query + conflict + sql.SQL(" DO NOTHING")

    return query + conflict + sql.SQL(" DO UPDATE SET {assignments}").format(
        assignments=sql.SQL(", ").join(
            sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(c)) for c in updates
        )
    )


def adapt_value(value: Any) -> Any:
    """Nested structures are stored as jsonb."""
    if isinstance(value, dict | list):
        return Jsonb(value)
    return value


class TableWriter(DestinationWriter):
    """
    Upserts records into a PostgreSQL table.

    One connection pool is kept per destination location and reused across
    runs until close() is called. Database work runs in a worker thread.
    """

    def __init__(self, min_size: int = 1, max_size: int = 4, timeout: float = 30.0):
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self._pools: dict[str, DatabaseConnectionPool] = {}
        self._lock = threading.Lock()

    async def write(self, definition: PipelineDefinition, records: list[dict[str, Any]]) -> LoadResult:
        destination = definition.destination
        if not destination.table:
            raise LoadError(f"Database destination for {definition.name} has no table")

        try:
            sanitize_sql_identifier(destination.table, "table")
        except ValidationError as e:
            raise LoadError(str(e)) from e

        pool = await asyncio.to_thread(self._get_pool, destination.location)
        return await asyncio.to_thread(self.upsert_records, pool, definition, records)

    def _get_pool(self, conninfo: str) -> DatabaseConnectionPool:
        with self._lock:
            pool = self._pools.get(conninfo)
            if pool is None:
                pool = DatabaseConnectionPool(
                    conninfo=conninfo,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    timeout=self.timeout,
                )
                try:
                    pool.open(max_retries=1)
                except psycopg.Error as e:
                    raise LoadError(f"Failed to connect to database: {e}") from e
                self._pools[conninfo] = pool
            return pool

    def upsert_records(
        self,
        pool: DatabaseConnectionPool,
        definition: PipelineDefinition,
        records: list[dict[str, Any]],
    ) -> LoadResult:
        destination = definition.destination
        loaded = 0
        failed = 0

        for index, record in enumerate(records, start=1):
            columns = list(record.keys())
            try:
                query = build_upsert_query(destination.table, columns, destination.key_fields)
                pool.execute_command(query, tuple(adapt_value(record[c]) for c in columns))
                loaded += 1
            except (psycopg.Error, ValidationError) as e:
                failed += 1
                logger.error(
                    f"Failed to upsert record {index} into {destination.table}: {e}",
                    extra={"pipeline": definition.name, "table": destination.table},
                )

        logger.info(f"Loaded {loaded} records into {destination.table} ({failed} failed)")
        return LoadResult(records_loaded=loaded, records_failed=failed)

    async def close(self) -> None:
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            await asyncio.to_thread(pool.close)
