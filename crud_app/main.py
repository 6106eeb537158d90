import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from crud_app.core.config import Settings, settings as default_settings
from crud_app.core.db.connection import Database, get_database
from crud_app.core.errors import INTERNAL_ERROR_MESSAGE, CrudAppError
from crud_app.core.logging import configure_logging, reset_logging
from crud_app.core.schemas import ApiResponse
from crud_app.feature.health.service import check_health
from crud_app.feature.user import model as user_model  # noqa: F401
from crud_app.feature.user.router import router as user_router

load_dotenv()

logger = logging.getLogger(__name__)

ROUTE_NOT_FOUND_MESSAGE = "Route non trouvée"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    configure_logging(settings)

    database = Database.from_settings(settings)
    try:
        await database.ping()
        await database.create_schema(SQLModel.metadata)
    except CrudAppError as exc:
        logger.error("Database initialisation failed", extra={"context": {"error": exc.message}})
        await database.close()
        reset_logging()
        raise
    logger.info(
        "Database initialised",
        extra={"context": {"url": database.engine.url.render_as_string(hide_password=True)}},
    )

    app.state.database = database
    logger.info(
        "Server started",
        extra={"context": {"port": settings.port, "environment": settings.environment}},
    )
    try:
        yield
    finally:
        logger.info("Server shutting down")
        await database.close()
        reset_logging()


async def route_not_found(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (404, 405):
        logger.warning(
            "Route not found",
            extra={"context": {"method": request.method, "path": request.url.path}},
        )
        body = ApiResponse(success=False, error=ROUTE_NOT_FOUND_MESSAGE)
        return JSONResponse(status_code=404, content=body.to_content())
    body = ApiResponse(success=False, error=str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body.to_content(), headers=exc.headers)


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        exc_info=exc,
        extra={"context": {"error": str(exc), "method": request.method, "path": request.url.path}},
    )
    body = ApiResponse(success=False, error=INTERNAL_ERROR_MESSAGE)
    return JSONResponse(status_code=500, content=body.to_content())


async def health_check(request: Request, database: Annotated[Database, Depends(get_database)]) -> JSONResponse:
    logger.info("Health check requested", extra={"context": {"endpoint": "/health", "method": "GET"}})
    try:
        status_code, report = await check_health(database, request.app.state.settings.app_version)
    except Exception as exc:  # noqa: BLE001 - health endpoint always answers
        logger.error("Health check failed", exc_info=True, extra={"context": {"error": str(exc)}})
        return JSONResponse(
            status_code=500,
            content={
                "status": "ERROR",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "message": INTERNAL_ERROR_MESSAGE,
            },
        )

    logger.info(
        "Health check completed",
        extra={"context": {"status": report.status, "database_status": report.services.database.status}},
    )
    return JSONResponse(status_code=status_code, content=report.model_dump(mode="json"))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(
        title=settings.app_name,
        description="API CRUD des utilisateurs",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_exception_handler(StarletteHTTPException, route_not_found)
    app.add_exception_handler(Exception, unhandled_error)

    app.add_api_route("/health", health_check, methods=["GET"], response_model=None, tags=["health"])
    app.include_router(user_router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "crud_app.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
