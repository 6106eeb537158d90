import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from crud_app.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    RequestBodyError,
    UserNotFoundError,
    UserValidationError,
)
from crud_app.core.schemas import ApiResponse

logger = logging.getLogger(__name__)

# Errors whose message is meant for the client; everything else is hidden behind a 500.
_CLIENT_ERRORS = (UserValidationError, RequestBodyError, UserNotFoundError)


@dataclass
class Outcome:
    status_code: int
    body: ApiResponse
    context: dict[str, Any] = field(default_factory=dict)


def endpoint_template(request: Request) -> str:
    """Full request path with each path parameter put back as ``{name}``."""
    names = {str(value): name for name, value in request.path_params.items()}
    segments = request.url.path.split("/")
    return "/".join(f"{{{names[segment]}}}" if segment in names else segment for segment in segments)


def _request_context(operation: str, request: Request | None) -> dict[str, Any]:
    context: dict[str, Any] = {"operation": operation}
    if request is not None:
        context["method"] = request.method
        context["endpoint"] = endpoint_template(request)
        context.update(request.path_params)
    return context


def logged_operation(
    operation: str,
    *,
    started: str,
    succeeded: str,
    rejected: str = "Request rejected",
    failed: str = "Request failed",
) -> Callable[[Callable[..., Awaitable[Outcome]]], Callable[..., Awaitable[JSONResponse]]]:
    """Log entry and outcome of a handler and render its envelope.

    The wrapped handler returns an :class:`Outcome` on success and raises on
    failure. Client errors are logged at WARN and answered with their own
    message; anything else is logged at ERROR and answered with a generic 500.
    """

    def decorator(handler: Callable[..., Awaitable[Outcome]]) -> Callable[..., Awaitable[JSONResponse]]:
        @functools.wraps(handler)
        async def wrapper(*args: Any, **kwargs: Any) -> JSONResponse:
            request_context = _request_context(operation, kwargs.get("request"))
            logger.info(started, extra={"context": request_context})
            try:
                outcome = await handler(*args, **kwargs)
            except _CLIENT_ERRORS as exc:
                logger.warning(
                    rejected,
                    extra={"context": {**request_context, **exc.context, "error": exc.message}},
                )
                body = ApiResponse(success=False, error=exc.message)
                return JSONResponse(status_code=exc.status_code, content=body.to_content())
            except Exception as exc:  # noqa: BLE001 - no error reaches the client untranslated
                logger.error(
                    failed,
                    exc_info=True,
                    extra={"context": {**request_context, "error": str(exc)}},
                )
                body = ApiResponse(success=False, error=INTERNAL_ERROR_MESSAGE)
                return JSONResponse(status_code=500, content=body.to_content())

            logger.info(succeeded, extra={"context": {**request_context, **outcome.context}})
            return JSONResponse(status_code=outcome.status_code, content=outcome.body.to_content())

        return wrapper

    return decorator
