"""Durable, ordered storage for confessions and their like counters."""

import asyncio
import json
import logging
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFound, StoreFailure
from ..orm.confession import Confession
from .database import DatabaseService

logger = logging.getLogger(__name__)


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Human-readable local timestamp recorded when a confession is accepted."""
    moment = moment or datetime.now().astimezone()
    return moment.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def next_confession_id(last_id: Optional[int]) -> int:
    """Millisecond timestamp id, bumped past `last_id` to stay strictly increasing."""
    now_ms = time.time_ns() // 1_000_000
    if last_id is None:
        return now_ms
    return max(now_ms, last_id + 1)


class ConfessionStore(Protocol):
    """Operations every confession backend provides."""

    async def initialize(self) -> None: ...

    async def close(self) -> None: ...

    async def append(
        self, message: str, photo_ref: Optional[str] = None, created_at: Optional[str] = None
    ) -> Confession: ...

    async def like(self, confession_id: int) -> int: ...

    async def get(self, confession_id: int) -> Confession: ...

    async def list(self) -> list[Confession]: ...


class SqlConfessionStore:
    """Row-oriented store backed by SQLAlchemy.

    Like counters are incremented inside the database, so concurrent likes
    only contend on the row being updated.
    """

    def __init__(self, db: DatabaseService):
        self.db = db
        self._append_lock = asyncio.Lock()
        self._last_id: Optional[int] = None

    async def initialize(self) -> None:
        try:
            await self.db.initialize()
            async with self.db.session() as session:
                result = await session.execute(select(func.max(Confession.id)))
                self._last_id = result.scalar()
        except SQLAlchemyError as e:
            logger.exception("Failed to initialize confession table")
            raise StoreFailure() from e
        logger.info("Confession store ready (last id: %s)", self._last_id)

    async def close(self) -> None:
        await self.db.close()

    async def append(
        self, message: str, photo_ref: Optional[str] = None, created_at: Optional[str] = None
    ) -> Confession:
        """Insert a new confession and commit it before returning."""
        async with self._append_lock:
            confession = Confession(
                id=next_confession_id(self._last_id),
                message=message,
                created_at=created_at or format_timestamp(),
                photo_ref=photo_ref,
                likes=0,
            )
            try:
                async with self.db.session() as session:
                    session.add(confession)
                    await session.commit()
            except SQLAlchemyError as e:
                logger.exception("Failed to persist confession")
                raise StoreFailure("Failed to save confession.") from e

            self._last_id = confession.id

        logger.info("Stored confession %d", confession.id)
        return confession

    async def like(self, confession_id: int) -> int:
        """Atomically add one like and return the new count."""
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    update(Confession)
                    .where(Confession.id == confession_id)
                    .values(likes=Confession.likes + 1)
                    .execution_options(synchronize_session=False)
                    .returning(Confession.likes)
                )
                likes = result.scalar_one_or_none()
                await session.commit()
        except SQLAlchemyError as e:
            logger.exception("Failed to like confession %d", confession_id)
            raise StoreFailure("Failed to save like.") from e

        if likes is None:
            raise NotFound()
        return likes

    async def get(self, confession_id: int) -> Confession:
        try:
            async with self.db.session() as session:
                confession = await session.get(Confession, confession_id)
        except SQLAlchemyError as e:
            logger.exception("Failed to read confession %d", confession_id)
            raise StoreFailure() from e

        if confession is None:
            raise NotFound()
        return confession

    async def list(self) -> list[Confession]:
        """Return all confessions, newest first."""
        try:
            async with self.db.session() as session:
                result = await session.execute(select(Confession).order_by(Confession.id.desc()))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception("Failed to read confessions")
            raise StoreFailure("Failed to load confessions.") from e


class JsonFileConfessionStore:
    """Whole-collection store that rewrites a JSON file on every mutation.

    The file is replaced atomically, and the in-memory list is only updated
    after the new file is on disk. One lock covers the whole collection.
    """

    def __init__(self, data_file: str | Path):
        self.data_file = Path(data_file).expanduser()
        self._lock = asyncio.Lock()
        self._confessions: list[Confession] = []

    async def initialize(self) -> None:
        self._confessions = await asyncio.to_thread(self._load)
        logger.info(
            "Loaded %d confession(s) from %s", len(self._confessions), self.data_file
        )

    async def close(self) -> None:
        pass

    def _load(self) -> list[Confession]:
        if not self.data_file.exists():
            return []
        try:
            raw = json.loads(self.data_file.read_text(encoding="utf-8"))
            confessions = [Confession.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load saved confessions from %s: %s", self.data_file, e)
            raise StoreFailure("Saved confessions are unreadable.") from e
        confessions.sort(key=lambda c: c.id, reverse=True)
        return confessions

    def _write(self, confessions: list[Confession]) -> None:
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.data_file.with_name(self.data_file.name + ".tmp")
        payload = json.dumps([c.to_dict() for c in confessions], ensure_ascii=False, indent=2)
        with tmp_path.open("w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.data_file)

    async def _persist(self, confessions: list[Confession]) -> None:
        try:
            await asyncio.to_thread(self._write, confessions)
        except OSError as e:
            logger.exception("Failed to write %s", self.data_file)
            raise StoreFailure("Failed to save confessions.") from e

    async def append(
        self, message: str, photo_ref: Optional[str] = None, created_at: Optional[str] = None
    ) -> Confession:
        async with self._lock:
            last_id = self._confessions[0].id if self._confessions else None
            confession = Confession(
                id=next_confession_id(last_id),
                message=message,
                created_at=created_at or format_timestamp(),
                photo_ref=photo_ref,
                likes=0,
            )
            updated = [confession, *self._confessions]
            await self._persist(updated)
            self._confessions = updated

        logger.info("Stored confession %d", confession.id)
        return confession

    async def like(self, confession_id: int) -> int:
        async with self._lock:
            for index, current in enumerate(self._confessions):
                if current.id == confession_id:
                    break
            else:
                raise NotFound()

            liked = Confession(
                id=current.id,
                message=current.message,
                created_at=current.created_at,
                photo_ref=current.photo_ref,
                likes=(current.likes or 0) + 1,
            )
            updated = list(self._confessions)
            updated[index] = liked
            await self._persist(updated)
            self._confessions = updated
            return liked.likes

    async def get(self, confession_id: int) -> Confession:
        for confession in self._confessions:
            if confession.id == confession_id:
                return confession
        raise NotFound()

    async def list(self) -> list[Confession]:
        return list(self._confessions)


def create_store(storage_config, db: Optional[DatabaseService] = None) -> ConfessionStore:
    """Build the configured store backend."""
    if storage_config.backend == "json":
        return JsonFileConfessionStore(storage_config.data_file)
    return SqlConfessionStore(db or DatabaseService(storage_config.database_url))
