"""Application errors and the handlers that turn them into the JSON error envelope."""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from app.constants.constants import TOKEN_EXPIRED_CODE
from app.core.config import settings

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal server error occurred. Please try again later."


class AppError(Exception):
    """Base class for errors that map to a structured HTTP response."""

    status_code = 500
    message = "Something went wrong"
    code: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        errors: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.message
        self.code = code or self.code
        self.data = data
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)


class ValidationFailedError(AppError):
    status_code = 400
    message = "Invalid request"


class InvalidCredentialsError(AppError):
    status_code = 401


class InvalidTokenError(AppError):
    status_code = 401
    message = "Unauthorized: Invalid token"


class TokenExpiredError(InvalidTokenError):
    message = "Token expired"
    code = TOKEN_EXPIRED_CODE


class SessionRevokedError(AppError):
    status_code = 401


class PermissionDeniedError(AppError):
    status_code = 403
    message = "Forbidden: You do not have permission to access this resource"


class VerificationRequiredError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class ConflictError(AppError):
    status_code = 409


class TooManyAttemptsError(AppError):
    status_code = 429


class CooldownError(AppError):
    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__(
            f"Please wait {retry_after} seconds before requesting a new code",
            data={"retryAfter": retry_after},
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


class EmailDeliveryError(AppError):
    status_code = 500
    message = "Failed to send verification email"


def error_body(message: str, **extra) -> Dict[str, Any]:
    body = {"status": "error", "message": message}
    body.update({key: value for key, value in extra.items() if value is not None})
    return body


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, code=exc.code, data=exc.data, errors=exc.errors),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        loc = err["loc"]
        field = loc[-1] if len(loc) > 1 else loc[0]
        errors[str(field)] = err["msg"]

    logger.info(f"Validation error on {request.url.path}: {list(errors)}")
    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request", errors=errors),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit hit on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content=error_body(f"Too many requests, limit is {exc.detail}"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    if settings.IS_PRODUCTION:
        return JSONResponse(status_code=500, content=error_body(INTERNAL_ERROR_MESSAGE))
    return JSONResponse(
        status_code=500,
        content=error_body(
            str(exc) or INTERNAL_ERROR_MESSAGE,
            stack=traceback.format_exception(type(exc), exc, exc.__traceback__),
        ),
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
