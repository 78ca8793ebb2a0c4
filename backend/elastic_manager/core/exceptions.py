"""
Error taxonomy for the elastic application manager
Every failure carries an explicit ErrorKind; only the HTTP boundary maps kinds to status codes
"""

import logging
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class ErrorKind(str, Enum):
    """Caller-visible error kinds"""
    CONNECTION = "connection"
    INVALID_CONFIG = "invalid_config"
    NOT_FOUND = "not_found"
    INVARIANT_VIOLATION = "invariant_violation"
    BAD_REQUEST = "bad_request"


class ErrorDetails(BaseModel):
    """Standardized error details structure"""
    code: str
    kind: ErrorKind
    message: str
    timestamp: datetime
    context: Dict[str, Any] = {}


class ElasticManagerException(Exception):
    """
    Base exception class for all elastic application manager errors
    """

    def __init__(
        self,
        message: str,
        code: str,
        kind: ErrorKind,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.details = ErrorDetails(
            code=code,
            kind=kind,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=context or {}
        )

    @property
    def kind(self) -> ErrorKind:
        return self.details.kind

    @property
    def message(self) -> str:
        return self.details.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        return {
            "error": {
                "code": self.details.code,
                "kind": self.details.kind.value,
                "message": self.details.message,
                "timestamp": self.details.timestamp.isoformat(),
                "context": self.details.context
            }
        }

    def to_log_dict(self) -> Dict[str, Any]:
        """Convert exception to structured logging format"""
        return {
            "error_code": self.details.code,
            "error_kind": self.details.kind.value,
            "error_message": self.details.message,
            "context": self.details.context
        }


class PlatformConnectionException(ElasticManagerException):
    """Raised when the platform is unreachable or cannot be queried at all"""

    def __init__(self, cause: BaseException, **context):
        super().__init__(
            message=f"Unable to connect to the platform: {_reason(cause)}",
            code="PLATFORM_CONNECTION_ERROR",
            kind=ErrorKind.CONNECTION,
            context=context
        )


class InvalidPlatformConfigException(ElasticManagerException):
    """Raised when the platform answers but its instances do not match the configuration"""

    def __init__(self, cause: BaseException, **context):
        super().__init__(
            message=f"Platform configuration is invalid: {_reason(cause)}",
            code="INVALID_PLATFORM_CONFIG",
            kind=ErrorKind.INVALID_CONFIG,
            context=context
        )


class ApplicationNotFoundException(ElasticManagerException):
    """Raised when an application id is unknown or lacks the expected configuration"""

    def __init__(self, application_id: int, platform: Optional[str] = None):
        if platform:
            message = f"Application with id = {application_id} has no {platform} configuration"
        else:
            message = f"Application with id = {application_id} was not found"
        super().__init__(
            message=message,
            code="APPLICATION_NOT_FOUND",
            kind=ErrorKind.NOT_FOUND,
            context={"application_id": application_id, "platform": platform}
        )


class InvariantViolationException(ElasticManagerException):
    """Raised when stored data breaks the one-config-per-application contract"""

    def __init__(self, message: str, **context):
        super().__init__(
            message=message,
            code="INVARIANT_VIOLATION",
            kind=ErrorKind.INVARIANT_VIOLATION,
            context=context
        )


class BadRequestException(ElasticManagerException):
    """Raised when a request body cannot be read"""

    def __init__(self, message: str, **context):
        super().__init__(
            message=message,
            code="BAD_REQUEST",
            kind=ErrorKind.BAD_REQUEST,
            context=context
        )


def _reason(cause: BaseException) -> str:
    return str(cause) or cause.__class__.__name__


# Exception handlers for FastAPI

_OBSERVED_STATUS = {
    ErrorKind.CONNECTION: 400,
    ErrorKind.INVALID_CONFIG: 400,
    ErrorKind.NOT_FOUND: 400,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.INVARIANT_VIOLATION: 500,
}

_DISTINCT_STATUS = {
    ErrorKind.CONNECTION: 502,
    ErrorKind.INVALID_CONFIG: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.INVARIANT_VIOLATION: 500,
}


def get_status_code_for_kind(kind: ErrorKind, distinct: bool = False) -> int:
    """Map error kinds to HTTP status codes"""
    status_map = _DISTINCT_STATUS if distinct else _OBSERVED_STATUS
    return status_map.get(kind, 500)


async def elastic_manager_exception_handler(request: Request, exc: ElasticManagerException) -> JSONResponse:
    """
    Global exception handler for elastic application manager exceptions
    """
    logger = logging.getLogger("exception_handler")

    distinct = getattr(request.app.state, "distinct_error_status", False)
    status_code = get_status_code_for_kind(exc.kind, distinct)

    if status_code >= 500:
        logger.error(f"Internal error: {exc.details.code}: {exc.message}", extra=exc.to_log_dict())
    else:
        logger.warning(f"Request failed: {exc.details.code}: {exc.message}", extra=exc.to_log_dict())

    return JSONResponse(
        status_code=status_code,
        content=exc.to_dict(),
        headers={"X-Error-Code": exc.details.code}
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handler for malformed request bodies and path parameters
    """
    logger = logging.getLogger("validation_handler")
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    reason = "; ".join(f"{'.'.join(e['loc'])}: {e['msg']}" for e in errors) or "Malformed request"
    logger.warning(f"Validation error on {request.url.path}: {reason}")

    bad_request = ElasticManagerException(
        message=reason,
        code="VALIDATION_ERROR",
        kind=ErrorKind.BAD_REQUEST,
        context={"errors": errors}
    )
    return JSONResponse(status_code=400, content=bad_request.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handler for standard HTTP exceptions, converting them to the common error format
    """
    http_exc = ElasticManagerException(
        message=str(exc.detail),
        code="HTTP_ERROR",
        kind=ErrorKind.NOT_FOUND if exc.status_code == 404 else ErrorKind.BAD_REQUEST,
        context={"status_code": exc.status_code, "path": request.url.path}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=http_exc.to_dict()
    )
