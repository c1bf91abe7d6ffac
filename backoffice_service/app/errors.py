"""Error types raised by the back-office handlers and their HTTP rendering.

Every error is rendered as ``{"error": message}`` with the status code carried
by the exception class, so callers always receive the same body shape.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from .loggers import get_logger

logger = get_logger(__name__)


class BackofficeError(Exception):
    """Base class for errors with a caller-safe message."""

    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class UnauthorizedError(BackofficeError):
    status_code = 401


class ValidationError(BackofficeError):
    status_code = 400


class NotFoundError(BackofficeError):
    status_code = 404


class ConflictError(BackofficeError):
    status_code = 409


class InsufficientStockError(BackofficeError):
    """A stock-tracked product cannot cover the requested quantity.

    Reported as a server error, like any other failure that aborts the
    order transaction.
    """

    status_code = 500

    def __init__(self, product_name, available, requested):
        super().__init__(
            f'Insufficient stock for product "{product_name}". '
            f"Available: {available}, Requested: {requested}"
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class CascadeError(BackofficeError):
    """A status-driven side effect could not be applied."""

    status_code = 500


def _error_response(status_code, message):
    return JSONResponse(status_code=status_code, content={"error": message})


async def handle_backoffice_error(request: Request, exc: BackofficeError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return _error_response(400, "Invalid request: " + "; ".join(problems))


async def handle_integrity_error(request: Request, exc: IntegrityError):
    logger.warning("%s %s violated a constraint: %s", request.method, request.url.path, exc.orig)
    return _error_response(409, "Conflicting or invalid reference")


async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("%s %s raised an unexpected error", request.method, request.url.path)
    return _error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(BackofficeError, handle_backoffice_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_unexpected)
