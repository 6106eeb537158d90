import logging
from datetime import datetime, timezone

from crud_app.core.db.connection import Database
from crud_app.core.errors import LivenessError
from crud_app.feature.health.schemas import DatabaseStatus, HealthReport, ServicesStatus

logger = logging.getLogger(__name__)

DATABASE_OK_MESSAGE = "Connexion réussie"
DATABASE_DOWN_MESSAGE = "Base de données injoignable"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def check_health(database: Database, version: str) -> tuple[int, HealthReport]:
    """Ping the pool and build the composite status.

    The raw ping failure is logged; the report only carries a generic message.
    """
    try:
        await database.ping()
        database_status = DatabaseStatus(status="OK", message=DATABASE_OK_MESSAGE)
    except LivenessError as exc:
        logger.error("Database ping failed", extra={"context": {"error": exc.message}})
        database_status = DatabaseStatus(status="ERROR", message=DATABASE_DOWN_MESSAGE)

    healthy = database_status.status == "OK"
    report = HealthReport(
        status="OK" if healthy else "ERROR",
        timestamp=_timestamp(),
        services=ServicesStatus(database=database_status),
        version=version,
    )
    return (200 if healthy else 503), report
