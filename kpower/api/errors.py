"""
HTTP rendering of the error taxonomy.

error_response() is the single mapping from error variant to status code
and user-facing message. Messages are fixed: no driver or signature
details ever reach the client.
"""
import logging
from typing import Tuple

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from kpower.domain.errors import (
    ApiError,
    AuthenticationError,
    InputError,
    InvalidInviteCode,
)

logger = logging.getLogger(__name__)


def error_response(exc: ApiError) -> Tuple[int, str]:
    """Map an error variant to (status code, message)"""
    if isinstance(exc, InvalidInviteCode):
        return status.HTTP_400_BAD_REQUEST, "Invalid invite code"
    if isinstance(exc, InputError):
        return status.HTTP_400_BAD_REQUEST, "Invalid input"
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED, "Authentication failed"
    # ServerError and anything unclassified
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong"


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render an ApiError as {"error": <message>}"""
    status_code, message = error_response(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {type(exc).__name__}")

    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Log validation errors for debugging"""
    logger.warning(f"Validation error for {request.method} {request.url.path}: {exc.errors()}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())}
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
