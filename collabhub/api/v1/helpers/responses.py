"""
Standardized response helpers for consistent API responses.

Domain errors raised anywhere below the routers are rendered here and only
here: one handler maps the error kind to a status code and logs it.
"""

from typing import Any
import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from collabhub.core.errors import (
    AuthError,
    CollabError,
    ConfirmationRequired,
    ConflictError,
    InvalidTransition,
    NotFoundError,
    RoleForbidden,
    ValidationError,
)

logger = logging.getLogger(__name__)


class APIResponse(BaseModel):
    """Standard API response model"""

    success: bool
    message: str
    kind: str | None = None
    reason: str | None = None
    data: Any | None = None
    errors: list[str] | None = None


STATUS_BY_KIND: dict[str, int] = {
    ValidationError.kind: status.HTTP_400_BAD_REQUEST,
    ConfirmationRequired.kind: status.HTTP_400_BAD_REQUEST,
    AuthError.kind: status.HTTP_401_UNAUTHORIZED,
    RoleForbidden.kind: status.HTTP_403_FORBIDDEN,
    NotFoundError.kind: status.HTTP_404_NOT_FOUND,
    InvalidTransition.kind: status.HTTP_409_CONFLICT,
    ConflictError.kind: status.HTTP_409_CONFLICT,
}


def success_response(
    message: str = "Success",
    data: Any = None,
) -> APIResponse:
    """Create a successful response"""
    return APIResponse(success=True, message=message, data=data)


def error_body(error: CollabError) -> dict:
    response_data = APIResponse(
        success=False,
        message=error.message,
        kind=error.kind,
        reason=error.reason.value if error.reason else None,
        errors=error.errors,
    )
    return {"detail": response_data.model_dump()}


async def collab_error_handler(request: Request, exc: CollabError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    logger.warning(
        "%s %s -> %s %s (%s): %s",
        request.method,
        request.url.path,
        status_code,
        exc.kind,
        exc.reason.value if exc.reason else "-",
        exc.message,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=status_code, content=error_body(exc), headers=headers)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    logger.warning("%s %s -> 422 %s", request.method, request.url.path, errors)
    response_data = APIResponse(
        success=False,
        message="Validation failed",
        kind=ValidationError.kind,
        errors=errors,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"detail": response_data.model_dump()}),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(CollabError, collab_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
