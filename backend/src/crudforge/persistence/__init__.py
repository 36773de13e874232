"""Persistence layer - repository contract and storage backends."""

from crudforge.persistence.adapter import DataRepository, RepositoryProvider
from crudforge.persistence.config import DatabaseConfig
from crudforge.persistence.memory import MemoryRepository
from crudforge.persistence.sql import SQLRepository

__all__ = [
    "DataRepository",
    "DatabaseConfig",
    "MemoryRepository",
    "RepositoryProvider",
    "SQLRepository",
]
