"""
Database migrator - waits for the store, then provisions the schema.

Runs once, separately from the API process, because the database may come
up after the application in a multi-container deployment:

- WAIT: probe the store up to ``migrate_max_retries`` times, sleeping
  ``migrate_retry_delay_seconds`` between attempts. Running out of attempts
  exits with status 1 and leaves the schema untouched.
- MIGRATE: create the ``users`` table if absent, check that it exists and
  log its row count. Any failure exits with status 1.

Usage:
    python -m crud_app.migrate
    crud-app-migrate
"""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable

from sqlalchemy import func, select
from sqlmodel import SQLModel
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_fixed

from crud_app.core.config import Settings, settings as default_settings
from crud_app.core.db.connection import Database
from crud_app.core.errors import LivenessError, MigrationError
from crud_app.core.logging import configure_logging
from crud_app.feature.user.model import users_table

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class Migrator:
    """Two-phase readiness protocol around a :class:`Database`."""

    def __init__(
        self,
        database: Database,
        *,
        max_retries: int = 30,
        retry_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.database = database
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    def _log_attempt(self, retry_state: RetryCallState) -> None:
        logger.info(
            "Database not ready yet, retrying",
            extra={
                "context": {
                    "attempt": retry_state.attempt_number,
                    "max_retries": self.max_retries,
                    "retry_in_seconds": self.retry_delay,
                }
            },
        )

    async def wait_for_database(self) -> None:
        """Block until a probe succeeds; raises ``LivenessError`` once the budget is spent."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(LivenessError),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_fixed(self.retry_delay),
            sleep=self._sleep,
            before_sleep=self._log_attempt,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    logger.info(
                        "Connecting to database",
                        extra={
                            "context": {
                                "attempt": attempt.retry_state.attempt_number,
                                "max_retries": self.max_retries,
                            }
                        },
                    )
                    await self.database.ping()
        except LivenessError:
            logger.error(
                "Database unreachable, giving up",
                extra={"context": {"max_retries": self.max_retries}},
            )
            raise
        logger.info("Database ready")

    async def migrate(self) -> int:
        """Create the users table if absent and return its row count."""
        logger.info("Creating table users")
        await self.database.create_schema(SQLModel.metadata)

        if not await self.database.has_table(users_table.name):
            raise MigrationError("Table users was not created")

        result = await self.database.execute(select(func.count()).select_from(users_table))
        count = int(next(iter(result.rows[0].values()))) if result.rows else 0
        logger.info("Migration complete", extra={"context": {"table": users_table.name, "row_count": count}})
        return count

    async def run(self) -> int:
        try:
            await self.wait_for_database()
            await self.migrate()
        except Exception as exc:  # noqa: BLE001 - every failure maps to exit status 1
            logger.error("Migration failed", exc_info=True, extra={"context": {"error": str(exc)}})
            return EXIT_FAILURE
        finally:
            await self.database.close()
        return EXIT_SUCCESS


async def main(settings: Settings | None = None) -> int:
    settings = settings or default_settings
    configure_logging(settings, log_to_file=False)

    database = Database.from_settings(settings)
    logger.info(
        "Starting database migrations",
        extra={"context": {"host": database.engine.url.host, "database": database.engine.url.database}},
    )
    migrator = Migrator(
        database,
        max_retries=settings.migrate_max_retries,
        retry_delay=settings.migrate_retry_delay_seconds,
    )
    return await migrator.run()


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
