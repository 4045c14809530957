"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory DataStore double that enforces the store's constraints
- Identities, sessions and a fixed clock
- Event factories
- A PostgreSQL pool for integration tests (skipped when unreachable)
"""

import copy
import threading
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from eventdesk.adapters.repository.postgres import run_migrations
from eventdesk.config.settings import get_settings
from eventdesk.domain.events import Event
from eventdesk.domain.exceptions import DuplicateKeyError, StoreError
from eventdesk.domain.identity import IdentitySession
from eventdesk.domain.ports import Identity

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

UNIQUE_KEYS = {
    "users": ("id",),
    "registrations": ("user_id", "event_id"),
}


class InMemoryDataStore:
    """
    DataStore double backed by dicts.

    Enforces the primary key of users and the (user_id, event_id)
    uniqueness of registrations like the real schema, and records every
    write so tests can assert that none happened.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.writes: list[tuple[str, str]] = []
        self.fail_on: set[tuple[str, str]] = set()
        self._next_id = 1
        self._lock = threading.Lock()

    def rows(self, collection: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(collection, [])

    def seed(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        row = dict(record)
        row.setdefault("id", self._allocate_id())
        self.rows(collection).append(row)
        return row

    def select(self, collection, filters=None, order_by=None, descending=False):
        self._maybe_fail("select", collection)
        rows = [copy.copy(row) for row in self.rows(collection) if _matches(row, filters)]
        if order_by:
            rows.sort(key=lambda row: row.get(order_by), reverse=descending)
        return rows

    def select_one(self, collection, filters):
        self._maybe_fail("select_one", collection)
        for row in self.rows(collection):
            if _matches(row, filters):
                return copy.copy(row)
        return None

    def count(self, collection, filters=None):
        self._maybe_fail("count", collection)
        return sum(1 for row in self.rows(collection) if _matches(row, filters))

    def insert(self, collection, record):
        with self._lock:
            self._maybe_fail("insert", collection)
            row = dict(record)
            self._check_unique(collection, row)
            if "id" not in row:
                row["id"] = self._allocate_id()
            self.rows(collection).append(row)
            self.writes.append(("insert", collection))
            return copy.copy(row)

    def update(self, collection, filters, changes):
        self._maybe_fail("update", collection)
        updated = 0
        for row in self.rows(collection):
            if _matches(row, filters):
                row.update(changes)
                updated += 1
        self.writes.append(("update", collection))
        return updated

    def upsert(self, collection, record):
        with self._lock:
            self._maybe_fail("upsert", collection)
            self.writes.append(("upsert", collection))
            for row in self.rows(collection):
                if row["id"] == record["id"]:
                    row.update(record)
                    return copy.copy(row)
            row = dict(record)
            self.rows(collection).append(row)
            return copy.copy(row)

    def _check_unique(self, collection: str, row: dict[str, Any]) -> None:
        keys = UNIQUE_KEYS.get(collection)
        if not keys:
            return
        for existing in self.rows(collection):
            if all(existing.get(key) == row.get(key) for key in keys):
                raise DuplicateKeyError(f"duplicate key in {collection}: {keys}")

    def _maybe_fail(self, operation: str, collection: str) -> None:
        if (operation, collection) in self.fail_on:
            raise StoreError(f"{operation} on {collection} failed")

    def _allocate_id(self) -> int:
        allocated = self._next_id
        self._next_id += 1
        return allocated


def _matches(row: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    return all(row.get(key) == value for key, value in (filters or {}).items())


def make_event(**overrides: Any) -> Event:
    """Active individual event with a deadline tomorrow."""
    values: dict[str, Any] = {
        "id": 1,
        "name": "CodeSprint",
        "event_type": "Programming",
        "event_date": NOW + timedelta(days=7),
        "registration_deadline": NOW + timedelta(days=1),
        "is_active": True,
        "is_team_based": False,
        "platform": "Online",
    }
    values.update(overrides)
    return Event(**values)


@pytest.fixture
def store() -> InMemoryDataStore:
    return InMemoryDataStore()


@pytest.fixture
def identity() -> Identity:
    return Identity(id="user_123", full_name="Ada Lovelace", email="ada@example.com")


@pytest.fixture
def session(identity: Identity) -> IdentitySession:
    return IdentitySession(identity)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture(scope="session")
def pool():
    """
    Connection pool for tests that need PostgreSQL.

    Skips the requesting tests when the database is unreachable.
    Migrations are applied once per session.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not available")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool) -> None:
    """Empty every table before a database test."""
    with pool.connection() as conn:
        conn.execute(
            "TRUNCATE notifications, team_members, teams, registrations, events, users "
            "RESTART IDENTITY CASCADE"
        )
        conn.commit()
    yield
