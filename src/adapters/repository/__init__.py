"""Repository adapters - Database implementations."""

from .postgres import PostgresPropertyRepository, PostgresUserRepository, run_migrations

__all__ = ["PostgresPropertyRepository", "PostgresUserRepository", "run_migrations"]
