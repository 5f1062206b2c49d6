"""Maps lodging errors onto `{success: false, message, type}` responses."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lodging.domain.errors import LodgingError, PartialEligibilityError
from lodging.utils.logger import get_logger, log_fields


logger = get_logger(__name__)


def failure_body(message: str, error_type: str, **extra: object) -> dict[str, object]:
    return {"success": False, "message": message, "type": error_type, **extra}


async def lodging_error_handler(request: Request, exc: LodgingError) -> JSONResponse:
    extra: dict[str, object] = {}
    if isinstance(exc, PartialEligibilityError):
        extra["ineligible_client_ids"] = exc.ineligible_client_ids
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request rejected | %s",
        log_fields(
            path=request.url.path,
            type=exc.error_type,
            status=exc.status_code,
            message=exc.message,
        ),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(exc.message, exc.error_type, **extra),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(str(exc.detail), "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "invalid request"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=failure_body(message, "VALIDATION_ERROR"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LodgingError, lodging_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
