"""
Custom exceptions and error handlers for the application.
Every error leaves the API as {"success": false, "message": ..., "error_code": ...}.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from bson.errors import InvalidId
import logging

logger = logging.getLogger(__name__)


class APIException(Exception):
    """Base API exception class."""
    def __init__(self, message: str, status_code: int = 500, error_code: str = None):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or f"ERR_{status_code}"
        super().__init__(self.message)


class NotFoundException(APIException):
    """Resource not found exception."""
    def __init__(self, resource: str, resource_id: str = None, message: str = None):
        if message is None:
            message = f"{resource} not found"
            if resource_id:
                message += f": {resource_id}"
        super().__init__(message, status_code=404, error_code="NOT_FOUND")


class ValidationException(APIException):
    """Validation exception."""
    def __init__(self, message: str, errors: dict = None):
        super().__init__(message, status_code=400, error_code="VALIDATION_ERROR")
        self.errors = errors or {}


class UnauthorizedException(APIException):
    """Unauthorized access exception."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401, error_code="UNAUTHORIZED")


class ForbiddenException(APIException):
    """Forbidden access exception."""
    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, status_code=403, error_code="FORBIDDEN")


def error_response(status_code: int, message: str, error_code: str, **extra) -> JSONResponse:
    content = {"success": False, "message": message, "error_code": error_code}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def api_exception_handler(request: Request, exc: APIException):
    """Handle API exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(f"API Exception on {request.method} {request.url.path}: {exc.message} "
        f"(Code: {exc.error_code}, Status: {exc.status_code})")
    extra = {}
    if isinstance(exc, ValidationException) and exc.errors:
        extra["errors"] = exc.errors
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    response = error_response(exc.status_code, exc.message, exc.error_code, **extra)
    if headers:
        response.headers.update(headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request body / query validation errors as 400s."""
    error_details = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        error_details[field] = error["msg"]

    logger.warning(f"Validation error: {error_details}")

    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation error",
        "VALIDATION_ERROR",
        errors=error_details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    logger.warning(f"HTTP Exception: {exc.detail} (Status: {exc.status_code})")
    return error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")


async def invalid_id_handler(request: Request, exc: InvalidId):
    """Handle invalid MongoDB ObjectId errors."""
    logger.warning(f"Invalid ObjectId: {exc}")
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid ID format", "INVALID_ID")


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {type(exc).__name__}: {str(exc)}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "INTERNAL_ERROR",
    )
