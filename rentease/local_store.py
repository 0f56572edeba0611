# Persistent per-entity cache tables with an async interface.
# Reads run concurrently; writes are serialized per table. All database work happens in a
# worker thread so the calling event loop never blocks on SQLite.
from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Awaitable, Callable, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models, schemas
from .db import Database

logger = logging.getLogger("rentease.store")

S = TypeVar("S", bound=BaseModel)
R = TypeVar("R")


class _TableStore:
    """Shared plumbing: threaded reads, serialized cancellable writes, change notification."""

    table_name = ""

    def __init__(self, database: Database) -> None:
        self.database = database
        self._write_lock = threading.Lock()
        self._watchers: list = []
        self._watchers_lock = threading.Lock()

    async def _read(self, fn: Callable[[Session], R]) -> R:
        def work() -> R:
            with self.database.session() as db:
                return fn(db)

        return await asyncio.to_thread(work)

    async def _write(self, fn: Callable[[Session], R]) -> R:
        """
        Run fn inside one transaction, holding this table's write lock.

        Cancellation: if the awaiting task is cancelled before the transaction commits,
        the transaction is rolled back, so no write lands for a caller that went away.
        """
        cancelled = threading.Event()

        def work() -> R:
            with self._write_lock:
                with self.database.session() as db:
                    try:
                        result = fn(db)
                        if cancelled.is_set():
                            db.rollback()
                            logger.info("store.write.cancelled", extra={"table": self.table_name})
                            return result
                        db.commit()
                    except Exception:
                        db.rollback()
                        raise
            self._notify()
            return result

        try:
            return await asyncio.to_thread(work)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    def _notify(self) -> None:
        with self._watchers_lock:
            watchers = list(self._watchers)
        for loop, queue in watchers:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, None)
            except RuntimeError:
                # Watcher's loop already closed; its generator cleanup removes it
                logger.debug("store.watch.loop_closed", extra={"table": self.table_name})

    async def _watch(self, snapshot: Callable[[], Awaitable]) -> AsyncIterator:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        entry = (loop, queue)
        with self._watchers_lock:
            self._watchers.append(entry)
        try:
            yield await snapshot()
            while True:
                await queue.get()
                # Coalesce bursts of writes into one fresh snapshot
                while not queue.empty():
                    queue.get_nowait()
                yield await snapshot()
        finally:
            with self._watchers_lock:
                self._watchers.remove(entry)


class LocalStore(_TableStore, Generic[S]):
    """
    Keyed cache for one entity type.

    Subclasses set:
    - model: ORM class (primary key "id" = server id)
    - schema: pydantic model returned to callers
    - foreign_key: column used by get_by_foreign_key
    and may override _order_by() for list ordering (primary key ascending by default).
    """

    model: Type = None
    schema: Type[S] = None
    foreign_key: str = ""

    def __init__(self, database: Database) -> None:
        super().__init__(database)
        self.table_name = self.model.__tablename__
        # cached_at is maintained by the database, never copied from payloads
        self._columns = {c.name for c in self.model.__table__.columns} - {"cached_at"}

    def _order_by(self):
        return self.model.id.asc()

    def _to_entity(self, row) -> S:
        return self.schema.model_validate(row)

    def _to_rows(self, entities: Iterable[S]) -> List[dict]:
        # Last occurrence wins when a payload repeats an id
        rows = {}
        for entity in entities:
            rows[entity.id] = entity.model_dump(include=self._columns)
        return list(rows.values())

    def _prepare_rows(self, db: Session, rows: List[dict]) -> List[dict]:
        """Hook to reconcile incoming rows with what is cached (same transaction)."""
        return rows

    # ----------------
    # Reads
    # ----------------
    async def get_all(self) -> List[S]:
        return await self._read(
            lambda db: [self._to_entity(r) for r in db.query(self.model).order_by(self._order_by()).all()]
        )

    def watch_all(self) -> AsyncIterator[List[S]]:
        """Async iterator: the full table now, then again after every committed write."""
        return self._watch(self.get_all)

    async def get_by_id(self, entity_id: int) -> Optional[S]:
        def query(db: Session) -> Optional[S]:
            row = db.get(self.model, entity_id)
            return self._to_entity(row) if row is not None else None

        return await self._read(query)

    async def get_by_foreign_key(self, value) -> List[S]:
        column = getattr(self.model, self.foreign_key)
        return await self._read(
            lambda db: [
                self._to_entity(r)
                for r in db.query(self.model).filter(column == value).order_by(self._order_by()).all()
            ]
        )

    async def count(self) -> int:
        return await self._read(lambda db: db.query(func.count(self.model.id)).scalar() or 0)

    # ----------------
    # Writes
    # ----------------
    async def upsert(self, entity: S) -> None:
        await self.upsert_many([entity])

    async def upsert_many(self, entities: Iterable[S]) -> None:
        rows = self._to_rows(entities)
        if not rows:
            return

        def write(db: Session) -> None:
            for row in self._prepare_rows(db, rows):
                # merge = insert or overwrite by primary key
                db.merge(self.model(**row))

        await self._write(write)

    async def update(self, entity: S) -> bool:
        """Overwrite an existing row; returns False (and writes nothing) when the id is not cached."""
        rows = self._to_rows([entity])

        def write(db: Session) -> bool:
            if db.get(self.model, entity.id) is None:
                return False
            for row in self._prepare_rows(db, rows):
                db.merge(self.model(**row))
            return True

        return await self._write(write)

    async def replace_all(self, entities: Iterable[S]) -> None:
        """Delete every row and insert the given ones in a single transaction."""
        rows = self._to_rows(entities)

        def write(db: Session) -> None:
            prepared = self._prepare_rows(db, rows)
            db.query(self.model).delete(synchronize_session=False)
            db.add_all([self.model(**row) for row in prepared])

        await self._write(write)
        logger.debug("store.replace_all", extra={"table": self.table_name, "count": len(rows)})

    async def delete(self, entity_id: int) -> None:
        await self._write(
            lambda db: db.query(self.model).filter(self.model.id == entity_id).delete(synchronize_session=False)
        )

    async def delete_all(self) -> None:
        await self._write(lambda db: db.query(self.model).delete(synchronize_session=False))


class PropertyStore(LocalStore[schemas.Property]):
    model = models.Property
    schema = schemas.Property
    foreign_key = "landlord_id"

    # Newest listings first
    def _order_by(self):
        return self.model.id.desc()


class UserStore(LocalStore[schemas.User]):
    model = models.User
    schema = schemas.User
    # Landlords are the users whose user_type is "LANDLORD"
    foreign_key = "user_type"


class RequestStore(LocalStore[schemas.ContactRequest]):
    model = models.ContactRequest
    schema = schemas.ContactRequest
    foreign_key = "landlord_id"

    def _order_by(self):
        return self.model.id.desc()

    def _prepare_rows(self, db: Session, rows: List[dict]) -> List[dict]:
        # is_read never goes back from True to False, whatever a stale payload says
        ids = [r["id"] for r in rows if not r.get("is_read")]
        if not ids:
            return rows
        already_read = {
            rid
            for (rid,) in db.query(self.model.id).filter(self.model.id.in_(ids), self.model.is_read.is_(True)).all()
        }
        for row in rows:
            if row["id"] in already_read:
                row["is_read"] = True
        return rows

    async def count_unread(self, landlord_id: int) -> int:
        return await self._read(
            lambda db: db.query(func.count(self.model.id))
            .filter(self.model.landlord_id == landlord_id, self.model.is_read.is_(False))
            .scalar()
            or 0
        )


class FavoriteStore(_TableStore):
    """Local-only favorites; rows are keyed by (user_id, property_id)."""

    table_name = models.Favorite.__tablename__

    async def list_for_user(self, user_id: int) -> List[schemas.Favorite]:
        return await self._read(
            lambda db: [
                schemas.Favorite.model_validate(r)
                for r in db.query(models.Favorite)
                .filter(models.Favorite.user_id == user_id)
                .order_by(models.Favorite.id.desc())
                .all()
            ]
        )

    def watch_user(self, user_id: int) -> AsyncIterator[List[schemas.Favorite]]:
        return self._watch(lambda: self.list_for_user(user_id))

    async def is_favorite(self, user_id: int, property_id: int) -> bool:
        return await self._read(
            lambda db: db.query(models.Favorite.id)
            .filter(models.Favorite.user_id == user_id, models.Favorite.property_id == property_id)
            .first()
            is not None
        )

    async def add(self, user_id: int, property_id: int) -> None:
        def write(db: Session) -> None:
            exists = (
                db.query(models.Favorite.id)
                .filter(models.Favorite.user_id == user_id, models.Favorite.property_id == property_id)
                .first()
            )
            if exists is None:
                db.add(models.Favorite(user_id=user_id, property_id=property_id))

        await self._write(write)

    async def remove(self, user_id: int, property_id: int) -> None:
        await self._write(
            lambda db: db.query(models.Favorite)
            .filter(models.Favorite.user_id == user_id, models.Favorite.property_id == property_id)
            .delete(synchronize_session=False)
        )
