"""
Storage handle and unit of work.

A `Database` owns the async engine and session factory. It is created once at
startup, stored on `app.state`, and handed to services explicitly. Services
open a unit of work with `Database.transaction()`, which yields a
`Transaction`: a thin handle over one `AsyncSession` that commits when the
block exits normally and rolls back on any exception, including a failed
commit. `Transaction` does not expose `transaction()`, so units of work
cannot nest.

Lock waits are bounded: PostgreSQL gets `lock_timeout` through asyncpg server
settings, SQLite gets its busy timeout.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.sql.base import Executable
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import Settings, get_settings
from app.core.logging import get_logger
from app.db.base import Base
import app.models  # noqa: F401 - register tables on Base.metadata

logger = get_logger(__name__)


class Transaction:
    """One isolated unit of work. Obtain it from `Database.transaction()`."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def execute(self, statement: Executable, params: Optional[dict] = None):
        return await self._session.execute(statement, params)

    async def scalar(self, statement: Executable) -> Any:
        return await self._session.scalar(statement)

    async def scalars(self, statement: Executable) -> list:
        result = await self._session.scalars(statement)
        return list(result.all())

    async def get(self, model, ident, **kwargs):
        return await self._session.get(model, ident, **kwargs)

    def add(self, instance) -> None:
        self._session.add(instance)

    def add_all(self, instances) -> None:
        self._session.add_all(instances)

    async def flush(self) -> None:
        await self._session.flush()

    async def refresh(self, instance, attribute_names: Optional[list[str]] = None) -> None:
        await self._session.refresh(instance, attribute_names)


def _connect_args(url: str, lock_timeout_ms: int) -> dict:
    backend = make_url(url).get_backend_name()
    if backend == "postgresql":
        return {"server_settings": {"lock_timeout": str(lock_timeout_ms)}}
    if backend == "sqlite":
        return {"timeout": lock_timeout_ms / 1000}
    return {}


class Database:
    def __init__(
        self,
        url: str,
        *,
        isolation_level: str = "SERIALIZABLE",
        lock_timeout_ms: int = 5000,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
        pool_timeout: Optional[int] = None,
        pool_recycle: Optional[int] = None,
        echo: bool = False,
    ):
        engine_kwargs: dict[str, Any] = {
            "echo": echo,
            "isolation_level": isolation_level,
            "connect_args": _connect_args(url, lock_timeout_ms),
        }
        # SQLite pools do not accept sizing options
        if make_url(url).get_backend_name() != "sqlite":
            engine_kwargs.update(
                pool_pre_ping=True,
                pool_size=pool_size or 5,
                max_overflow=max_overflow or 10,
                pool_timeout=pool_timeout or 30,
                pool_recycle=pool_recycle or -1,
            )

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        settings = settings or get_settings()
        return cls(
            settings.DATABASE_URL,
            isolation_level=settings.DB_ISOLATION_LEVEL,
            lock_timeout_ms=settings.DB_LOCK_TIMEOUT_MS,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            echo=settings.DEBUG,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        async with self.session_factory() as session:
            try:
                yield Transaction(session)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_created")

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_db(request: Request) -> Database:
    """FastAPI dependency returning the storage handle installed at startup."""
    return request.app.state.db
