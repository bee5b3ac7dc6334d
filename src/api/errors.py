"""
Exception handlers - render every failure in the error envelope.

Routes translate domain exceptions into HTTPException with a fixed
message; guards raise HTTPException directly. Anything else is an
internal error and its text never reaches the caller.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.models import ErrorResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_body(status_code: int, message: str, errors: object | None = None) -> dict:
    envelope = ErrorResponse(status_code=status_code, message=message, errors=errors)
    return envelope.model_dump(by_alias=True, exclude_none=True)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


# Submitted values (passwords included) never go back to the caller
_HIDDEN_ERROR_KEYS = frozenset({"input", "ctx", "url"})
_VALUE_ERROR_PREFIX = "Value error, "


def _public_error(error: dict) -> dict:
    public = {key: value for key, value in error.items() if key not in _HIDDEN_ERROR_KEYS}
    public["msg"] = str(error.get("msg", "")).removeprefix(_VALUE_ERROR_PREFIX)
    return public


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [_public_error(error) for error in exc.errors()]
    message = details[0]["msg"] if details else "Validation failed"
    return JSONResponse(
        status_code=422,
        content=error_body(422, message, jsonable_encoder(details)),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on an application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
