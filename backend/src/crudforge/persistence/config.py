"""Database configuration and engine factory."""

from __future__ import annotations

import os
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


@dataclass
class DatabaseConfig:
    """Database connection configuration.

    Supports sqlite:/// and postgresql:// URL schemes.
    """

    url: str

    @classmethod
    def from_env(cls) -> DatabaseConfig:
        """Create config from the DATABASE_URL env var.

        Default: sqlite:///crudforge.db
        """
        return cls(url=os.environ.get("DATABASE_URL") or "sqlite:///crudforge.db")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_postgresql(self) -> bool:
        return self.url.startswith("postgresql")

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and self.url.rstrip("/") in ("sqlite:", "sqlite:///:memory:")

    @property
    def sqlalchemy_url(self) -> str:
        """URL suitable for SQLAlchemy engine creation.

        postgresql:// URLs are pointed at the psycopg (v3) driver.
        """
        if self.url.startswith("postgresql://"):
            return self.url.replace("postgresql://", "postgresql+psycopg://", 1)
        return self.url

    def create_engine(self) -> Engine:
        """Create the SQLAlchemy engine.

        SQLite connections are shared with the worker threads repositories
        run their queries in; an in-memory database keeps a single
        connection so every thread sees the same data.
        """
        if not self.is_sqlite:
            return create_engine(self.sqlalchemy_url)

        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if self.is_memory:
            kwargs["poolclass"] = StaticPool
        return create_engine(self.sqlalchemy_url, **kwargs)
