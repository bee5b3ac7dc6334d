"""Repository adapters - Database implementations."""

from .memory import InMemoryIdentityRepository
from .postgres import PostgresIdentityRepository, run_migrations

__all__ = ["InMemoryIdentityRepository", "PostgresIdentityRepository", "run_migrations"]
