"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryChallengeRepository, InMemoryCredentialStore
from .postgres import (
    PostgresChallengeRepository,
    PostgresCredentialStore,
    run_migrations,
)

__all__ = [
    "InMemoryChallengeRepository",
    "InMemoryCredentialStore",
    "PostgresChallengeRepository",
    "PostgresCredentialStore",
    "run_migrations",
]
