import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request
from sqlalchemy import MetaData, inspect, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.sql import Executable

from crud_app.core.config import Settings
from crud_app.core.errors import ConnectivityError, LivenessError, QueryError

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0


class Database:
    """Bounded pool of async connections to the relational store."""

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 0,
        echo: bool = False,
    ) -> None:
        self.url = url
        engine_args: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
        if not url.startswith("sqlite"):
            engine_args["pool_size"] = pool_size
            engine_args["max_overflow"] = max_overflow
        self._engine: AsyncEngine | None = create_async_engine(url, **engine_args)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.resolved_database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            echo=settings.db_echo,
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ConnectivityError("Connection pool is closed")
        return self._engine

    async def acquire(self) -> AsyncConnection:
        try:
            return await self.engine.connect()
        except (SQLAlchemyError, OSError) as exc:
            raise ConnectivityError(str(exc)) from exc

    async def release(self, connection: AsyncConnection) -> None:
        await connection.close()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        conn = await self.acquire()
        try:
            yield conn
        finally:
            await self.release(conn)

    async def execute(
        self,
        statement: str | Executable,
        params: Mapping[str, Any] | None = None,
    ) -> QueryResult:
        if isinstance(statement, str):
            statement = text(statement)
        async with self.connection() as conn:
            try:
                result = await conn.execute(statement, params)
                rowcount = result.rowcount
                rows = [dict(row._mapping) for row in result] if result.returns_rows else []
                await conn.commit()
            except DBAPIError as exc:
                if exc.connection_invalidated:
                    raise ConnectivityError(str(exc)) from exc
                raise QueryError(str(exc)) from exc
            except SQLAlchemyError as exc:
                raise QueryError(str(exc)) from exc
        return QueryResult(rows=rows, rowcount=rowcount)

    async def ping(self) -> None:
        try:
            async with self.connection() as conn:
                await conn.execute(text("SELECT 1"))
        except (ConnectivityError, SQLAlchemyError, OSError) as exc:
            raise LivenessError(str(exc)) from exc

    async def create_schema(self, metadata: MetaData) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise QueryError(str(exc)) from exc

    async def has_table(self, table_name: str) -> bool:
        async with self.connection() as conn:
            try:
                return await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(table_name))
            except SQLAlchemyError as exc:
                raise QueryError(str(exc)) from exc

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        logger.info("Connection pool closed")


def get_database(request: Request) -> Database:
    return request.app.state.database
