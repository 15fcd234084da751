from typing import Dict, List
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import Settings
from core.exceptions import AppError, ErrorKind
from core.logging_config import get_logger
from utils.response import error_response

logger = get_logger(__name__)


def format_validation_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    """
    Collapse pydantic errors into {"body.password": ["..."], ...}.
    """
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        path = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "Invalid value")
        # pydantic prefixes messages raised from validators
        message = message.removeprefix("Value error, ")
        errors.setdefault(path, []).append(message)
    return errors


def render_app_error(exc: AppError):
    match exc.kind:
        case ErrorKind.VALIDATION:
            return error_response(exc.message, exc.status_code, exc.errors)
        case ErrorKind.AUTHENTICATION:
            return error_response(exc.message, exc.status_code, headers={"WWW-Authenticate": "Bearer"})
        case ErrorKind.RATE_LIMIT:
            return error_response(exc.message, exc.status_code, headers={"Retry-After": "60"})
        case _:
            return error_response(exc.message, exc.status_code)


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """
    Single translation point from failures to the JSON error envelope.
    """

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            exc.message,
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_code": exc.kind.code,
                "status_code": exc.status_code,
            }
        )
        return render_app_error(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = format_validation_errors(exc)
        logger.info(
            "Request validation failed",
            extra={"path": request.url.path, "method": request.method, "fields": sorted(errors)}
        )
        return render_app_error(AppError(ErrorKind.VALIDATION, "Validation failed", errors))

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        logger.warning(
            "Unique constraint violation",
            extra={"path": request.url.path, "method": request.method}
        )
        return render_app_error(AppError(ErrorKind.CONFLICT, "A record with this value already exists"))

    @app.exception_handler(NoResultFound)
    async def handle_no_result(request: Request, exc: NoResultFound):
        return render_app_error(AppError(ErrorKind.NOT_FOUND, "Record not found"))

    @app.exception_handler(RateLimitExceeded)
    async def handle_rate_limit(request: Request, exc: RateLimitExceeded):
        logger.warning(
            "Rate limit exceeded",
            extra={"path": request.url.path, "limit": str(exc.detail)}
        )
        return render_app_error(AppError(ErrorKind.RATE_LIMIT, "Too many requests, please try again later"))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = f"Route {request.method} {request.url.path} not found"
        else:
            message = str(exc.detail)
        return error_response(message, exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        """
        Catch all unhandled exceptions, log them with a stack trace and hide
        the details outside development.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_type": type(exc).__name__,
            },
            exc_info=True
        )
        message = str(exc) if settings.is_development else ErrorKind.INTERNAL.default_message
        return error_response(message, ErrorKind.INTERNAL.status_code)
