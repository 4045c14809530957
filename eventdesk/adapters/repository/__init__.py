"""Repository adapters - Database implementations."""

from .postgres import PostgresDataStore, run_migrations

__all__ = ["PostgresDataStore", "run_migrations"]
