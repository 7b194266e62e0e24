import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class RoomLockRegistry:
    """
    In-process mutex per room id.

    Serializes "check overlap -> insert booking" for the same room inside one
    worker process. Across processes the row lock taken with
    SELECT ... FOR UPDATE on the room is what protects the range.

    An entry lives only while some request holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._holders: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, room_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(room_id, asyncio.Lock())
        self._holders[room_id] = self._holders.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[room_id] -= 1
            if not self._holders[room_id]:
                del self._holders[room_id]
                del self._locks[room_id]


class Database:
    """
    Persistence context: engine, session factory and room locks.

    Created by the application factory, connected on startup and disposed on
    shutdown. Services receive it explicitly.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None
        self.room_locks = RoomLockRegistry()

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    async def connect(self) -> None:
        if self.engine is not None:
            return
        connect_args = {"check_same_thread": False} if self.is_sqlite else {}
        self.engine = create_async_engine(
            self.url, echo=self.echo, connect_args=connect_args
        )
        self._sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)
        logger.info("Database engine created")

    async def create_all(self) -> None:
        # Import models so they register on Base.metadata
        import app.models  # noqa: F401

        await self.connect()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self._sessionmaker = None
        logger.info("Database engine disposed")

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._sessionmaker()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: a session bound to the app's Database."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
