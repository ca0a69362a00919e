"""Database configuration helpers."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from .config import DATABASE_URL

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def make_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine, preparing the data directory for file-backed SQLite."""

    if url in _MEMORY_URLS:
        # A single shared connection keeps the in-memory database alive.
        return create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    if url.startswith("sqlite:///"):
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


def init_db(engine: Engine) -> None:
    """Create all registered tables."""

    from .. import models  # noqa: F401 - ensure models are registered with SQLModel

    SQLModel.metadata.create_all(engine)


__all__ = ["init_db", "make_engine"]
