# app/core/errors.py
"""
Application error taxonomy.

Every error is an `HTTPException`, so services can raise them directly
(the same way they raise plain HTTPExceptions) and FastAPI renders them
as `{"detail": ...}` with the right status code.

    ValidationError  400  malformed input the schema layer could not catch
    NotFound         404  missing user / order / product
    Unauthorized     401  missing or invalid credential
    Forbidden        403  valid credential, insufficient privilege
    Conflict         409  unique-key violation (after internal retries)
    UpstreamFailure  502  identity provider failure, never retried here
    Internal         500  anything unexpected; message hidden in production
"""
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail=None, headers: dict[str, str] | None = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail if detail is not None else self.default_detail,
            headers=headers,
        )


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation error"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Admin access required"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class UpstreamFailure(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Upstream service failure"


class Internal(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"


# ---- Auth ----


class CredentialInvalid(Unauthorized):
    default_detail = "Invalid identity provider token"


class CredentialExchangeFailed(UpstreamFailure):
    default_detail = "Failed to exchange authorization code"


class SessionExpired(Unauthorized):
    default_detail = "Token expired"


class SessionInvalid(Unauthorized):
    default_detail = "Invalid token"


# ---- Lookups ----


class ProductNotFound(NotFound):
    default_detail = "Product not found"


class OrderNotFound(NotFound):
    default_detail = "Order not found"


class UserNotFound(NotFound):
    default_detail = "User not found"


# ---- Orders ----


class DuplicateOrderNumber(Conflict):
    default_detail = "Duplicate order number"


class OrderCreationFailed(Conflict):
    default_detail = "Could not allocate a unique order number, please retry"


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler: log the traceback, answer 500.

    The exception message is only echoed back outside production.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    settings = get_settings()
    detail = Internal.default_detail if settings.is_production else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, unhandled_exception_handler)
