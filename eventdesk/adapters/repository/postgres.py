"""
PostgreSQL data store adapter - Implements the DataStore protocol.

This module provides the PostgreSQL implementation of the domain's
data store port using psycopg3. Collection and column names are
composed with psycopg.sql identifiers; all values are parameterized.

Constraint Handling:
--------------------
The store, not the client, is the authority on uniqueness and capacity:

1. **registrations (user_id, event_id) UNIQUE**: a second insert for the
   same pair raises UniqueViolation, surfaced as DuplicateKeyError so the
   workflow can resolve it to "already registered".

2. **Capacity trigger**: registrations beyond events.max_participants are
   rejected by a row-locking trigger (see migrations/), surfaced as
   StoreError.

Any other psycopg error is surfaced as StoreError; psycopg types never
cross into the domain layer.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import psycopg
from psycopg import errors, sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from eventdesk.domain.exceptions import DuplicateKeyError, StoreError

logger = logging.getLogger(__name__)

COLLECTIONS = frozenset(
    {"users", "events", "registrations", "teams", "team_members", "notifications"}
)


def _adapt(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    return value


class PostgresDataStore:
    """
    Implements DataStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize the store with a connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def select(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        query = sql.SQL("SELECT * FROM {}").format(self._table(collection))
        where, params = self._where(filters)
        query += where
        if order_by:
            query += sql.SQL(" ORDER BY {} {}").format(
                sql.Identifier(order_by), sql.SQL("DESC" if descending else "ASC")
            )
        return self._fetch(query, params, many=True)

    def select_one(self, collection: str, filters: Mapping[str, Any]) -> dict[str, Any] | None:
        query = sql.SQL("SELECT * FROM {}").format(self._table(collection))
        where, params = self._where(filters)
        query += where + sql.SQL(" LIMIT 1")
        return self._fetch(query, params, many=False)

    def count(self, collection: str, filters: Mapping[str, Any] | None = None) -> int:
        query = sql.SQL("SELECT COUNT(*) AS total FROM {}").format(self._table(collection))
        where, params = self._where(filters)
        row = self._fetch(query + where, params, many=False)
        return row["total"]

    def insert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Insert a row and return it.

        Raises:
            DuplicateKeyError: On unique constraint violation (SQLSTATE 23505)
            StoreError: On any other database error
        """
        columns = list(record)
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            self._table(collection),
            sql.SQL(", ").join(map(sql.Identifier, columns)),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )
        params = [_adapt(record[column]) for column in columns]
        return self._fetch(query, params, many=False, write=True)

    def update(
        self, collection: str, filters: Mapping[str, Any], changes: Mapping[str, Any]
    ) -> int:
        if not changes:
            return 0
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
            for column in changes
        )
        where, where_params = self._where(filters)
        query = sql.SQL("UPDATE {} SET {}").format(self._table(collection), assignments) + where
        params = [_adapt(value) for value in changes.values()] + where_params

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, params)
                conn.commit()
                return cursor.rowcount
        except psycopg.Error as e:
            raise self._translate(e) from e

    def upsert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Insert-or-update keyed by "id".

        Uses INSERT ... ON CONFLICT (id) DO UPDATE, touching only the
        columns present in the record so other columns are merged, not
        overwritten.
        """
        if "id" not in record:
            raise ValueError("upsert requires an 'id' key")

        columns = list(record)
        updates = [column for column in columns if column != "id"] or ["id"]
        query = sql.SQL(
            "INSERT INTO {} ({}) VALUES ({}) ON CONFLICT (id) DO UPDATE SET {} RETURNING *"
        ).format(
            self._table(collection),
            sql.SQL(", ").join(map(sql.Identifier, columns)),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
            sql.SQL(", ").join(
                sql.SQL("{0} = EXCLUDED.{0}").format(sql.Identifier(column))
                for column in updates
            ),
        )
        params = [_adapt(record[column]) for column in columns]
        return self._fetch(query, params, many=False, write=True)

    def ping(self) -> None:
        with self._pool.connection() as conn:
            conn.execute("SELECT 1")

    def _fetch(
        self, query: sql.Composable, params: list[Any], many: bool, write: bool = False
    ) -> Any:
        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                result = cursor.fetchall() if many else cursor.fetchone()
                if write:
                    conn.commit()
                return result
        except psycopg.Error as e:
            raise self._translate(e) from e

    @staticmethod
    def _translate(error: psycopg.Error) -> StoreError:
        if isinstance(error, errors.UniqueViolation):
            return DuplicateKeyError(str(error))
        logger.error("Database error %s: %s", getattr(error, "sqlstate", None), error)
        return StoreError(str(error))

    @staticmethod
    def _table(collection: str) -> sql.Identifier:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        return sql.Identifier(collection)

    @staticmethod
    def _where(filters: Mapping[str, Any] | None) -> tuple[sql.Composable, list[Any]]:
        if not filters:
            return sql.SQL(""), []
        clause = sql.SQL(" WHERE ") + sql.SQL(" AND ").join(
            sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
            for column in filters
        )
        return clause, list(filters.values())


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: eventdesk/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
