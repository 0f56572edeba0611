from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from contextlib import contextmanager
from typing import Iterator
import logging

# Bump whenever a cache table changes shape. The cache holds no user-authored data,
# so a version mismatch drops and recreates every table instead of migrating.
SCHEMA_VERSION = 4

# Base class for ORM models declared via SQLAlchemy's declarative API
Base = declarative_base()

logger = logging.getLogger("rentease.store")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Build the SQLAlchemy engine with backend-specific settings.

    - SQLite (on-device cache): allow cross-thread access; store work runs in worker threads.
    - Server DBs (e.g., MySQL/Postgres): enable safe pooling to avoid stale or dropped connections.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=280,
        pool_size=10,
        max_overflow=20,
    )


class Database:
    """Owns the engine and session factory for one cache database."""

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self.url = database_url
        self.engine = build_engine(database_url, echo=echo)
        # autocommit and autoflush disabled for explicit transaction control
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session and guarantee it is closed afterwards, even if an exception is raised."""
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def init_schema(self) -> None:
        """
        Create cache tables, recreating all of them when SCHEMA_VERSION changed.

        Behavior:
        - Fresh database: create tables and record the version.
        - Same version: no-op.
        - Different version: drop every table, recreate, record the new version.
        """
        from . import models  # noqa: F401  (registers tables on Base.metadata)

        models.SchemaMeta.__table__.create(bind=self.engine, checkfirst=True)
        with self.session() as db:
            row = db.execute(select(models.SchemaMeta)).scalars().first()
            stored = row.version if row else None

        if stored == SCHEMA_VERSION:
            Base.metadata.create_all(bind=self.engine)
            return

        if stored is not None:
            logger.info("store.schema.recreate", extra={"from_version": stored, "to_version": SCHEMA_VERSION})
            Base.metadata.drop_all(bind=self.engine)
        Base.metadata.create_all(bind=self.engine)

        with self.session() as db:
            db.query(models.SchemaMeta).delete()
            db.add(models.SchemaMeta(version=SCHEMA_VERSION))
            db.commit()

    def dispose(self) -> None:
        self.engine.dispose()
