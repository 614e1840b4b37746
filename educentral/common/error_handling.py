"""
Error Handling System for EduCentral

Provides the application exception hierarchy, a retry decorator with
exponential backoff for transient provider failures, and helpers that turn
errors into API responses and log lines.
"""

import logging
import traceback
import asyncio
import random
import functools
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar, Union, cast
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from educentral.common.logger import app_logger

F = TypeVar('F', bound=Callable)

logger = app_logger.getChild("errors")


class ErrorSeverity(Enum):
    """Severity levels for errors"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Standard error codes for EduCentral"""
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    AUTHENTICATION_ERROR = "authentication_error"
    AUTHORIZATION_ERROR = "authorization_error"
    NOT_FOUND_ERROR = "not_found_error"
    CONFLICT_ERROR = "conflict_error"
    PAYLOAD_TOO_LARGE = "payload_too_large"

    AI_SERVICE_ERROR = "ai_service_error"
    AI_NOT_CONFIGURED = "ai_not_configured"
    AI_QUOTA_EXCEEDED = "ai_quota_exceeded"

    DATABASE_ERROR = "database_error"


class ErrorInfo(BaseModel):
    """Structured information about an error"""
    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    exception_type: Optional[str] = None
    stack_trace: Optional[List[str]] = None
    context: Optional[Dict[str, Any]] = None

    @field_validator('stack_trace', mode='before')
    @classmethod
    def validate_stack_trace(cls, v):
        """Format stack trace if it's a string"""
        if isinstance(v, str):
            return v.splitlines()
        return v


class EduCentralError(Exception):
    """Base exception class for all EduCentral errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.severity = severity
        self.details = details or {}
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now()

    def to_error_info(self, include_stack_trace: bool = False) -> ErrorInfo:
        """Convert the exception to an ErrorInfo object"""
        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause)
            }

        return ErrorInfo(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            severity=self.severity,
            details=details,
            exception_type=type(self).__name__,
            stack_trace=traceback.format_exc() if include_stack_trace else None,
            context=self.context
        )

    def to_dict(self, include_stack_trace: bool = False) -> Dict[str, Any]:
        return self.to_error_info(include_stack_trace).model_dump(mode="json")

    def to_json(self, include_stack_trace: bool = False) -> str:
        return json.dumps(self.to_dict(include_stack_trace))

    def __str__(self) -> str:
        base_str = f"{self.code.value}: {self.message}"
        if self.details:
            base_str += f" (details: {self.details})"
        if self.cause:
            base_str += f" caused by {type(self.cause).__name__}: {str(self.cause)}"
        return base_str


class ValidationError(EduCentralError):
    """Error raised when input validation fails"""

    status_code = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details,
            cause=cause
        )


class AuthenticationError(EduCentralError):
    """Error raised when authentication fails"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHENTICATION_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details
        )


class AuthorizationError(EduCentralError):
    """Error raised when an authenticated user may not perform an action"""

    status_code = 403

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHORIZATION_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details
        )


class NotFoundError(EduCentralError):
    """Error raised when a requested resource is not found"""

    status_code = 404

    def __init__(
        self,
        resource_type: str,
        resource_id: Any,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["resource_type"] = resource_type
        details["resource_id"] = resource_id

        super().__init__(
            message=f"{resource_type} not found",
            code=ErrorCode.NOT_FOUND_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details
        )


class ConflictError(EduCentralError):
    """Error raised when a write would violate a uniqueness rule"""

    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code=ErrorCode.CONFLICT_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details
        )


class PayloadTooLargeError(EduCentralError):
    """Error raised when an upload exceeds its size limit"""

    status_code = 413

    def __init__(self, limit_bytes: int, actual_bytes: int):
        super().__init__(
            message=f"Upload exceeds the {limit_bytes // (1024 * 1024)}MB limit",
            code=ErrorCode.PAYLOAD_TOO_LARGE,
            severity=ErrorSeverity.WARNING,
            details={"limit_bytes": limit_bytes, "actual_bytes": actual_bytes}
        )


class AIServiceError(EduCentralError):
    """Error raised when an external inference provider fails"""

    status_code = 502

    def __init__(
        self,
        message: str,
        provider: str,
        code: ErrorCode = ErrorCode.AI_SERVICE_ERROR,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        details = details or {}
        details["provider"] = provider

        super().__init__(
            message=message,
            code=code,
            severity=ErrorSeverity.ERROR,
            details=details,
            cause=cause
        )
        self.provider = provider
        if status_code is not None:
            self.status_code = status_code


class DatabaseError(EduCentralError):
    """Error raised when a database operation fails"""

    def __init__(self, operation: str, cause: Optional[Exception] = None):
        super().__init__(
            message=f"Database operation failed: {operation}",
            code=ErrorCode.DATABASE_ERROR,
            severity=ErrorSeverity.ERROR,
            details={"operation": operation},
            cause=cause
        )


def convert_exception(
    exception: Exception,
    default_message: str = "An unexpected error occurred",
    context: Optional[Dict[str, Any]] = None
) -> EduCentralError:
    """
    Convert an arbitrary exception to an EduCentralError.

    Args:
        exception: The exception to convert
        default_message: Message used when the exception has none
        context: Optional additional context

    Returns:
        The original error if it already is an EduCentralError, otherwise a
        wrapping EduCentralError
    """
    if isinstance(exception, EduCentralError):
        if context:
            exception.context.update(context)
        return exception

    return EduCentralError(
        message=str(exception) or default_message,
        cause=exception,
        context=context
    )


def retry(
    max_retries: int = 3,
    retry_delay: float = 1.0,
    backoff_factor: float = 2.0,
    jitter: float = 0.1,
    retry_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    ignore_exceptions: Tuple[Type[Exception], ...] = (),
    on_retry: Optional[Callable[[int, Exception, float], None]] = None
):
    """
    Decorator for retrying functions when exceptions occur.

    Args:
        max_retries: Maximum number of retries
        retry_delay: Initial delay between retries in seconds
        backoff_factor: Factor to increase delay with each retry
        jitter: Random jitter factor to add to delay
        retry_exceptions: Tuple of exception types to retry on
        ignore_exceptions: Tuple of exception types to not retry on
        on_retry: Optional callback called before each retry

    Returns:
        Decorated function
    """
    def decorator(func: F) -> F:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                retries = 0
                delay = retry_delay

                while True:
                    try:
                        return await func(*args, **kwargs)
                    except ignore_exceptions:
                        raise
                    except retry_exceptions as e:
                        retries += 1
                        if retries > max_retries:
                            raise

                        actual_delay = delay * (1 + random.uniform(-jitter, jitter))
                        if on_retry:
                            on_retry(retries, e, actual_delay)

                        logger.warning(
                            f"Retry {retries}/{max_retries} for {func.__name__} "
                            f"after {actual_delay:.2f}s due to {type(e).__name__}: {e}"
                        )
                        await asyncio.sleep(actual_delay)
                        delay *= backoff_factor

            return cast(F, async_wrapper)

        raise TypeError(f"retry() only decorates coroutine functions, got {func.__name__}")

    return decorator


def error_response(
    error: Union[EduCentralError, Exception],
    include_details: bool = True
) -> Dict[str, Any]:
    """
    Generate a standardized API error response.

    Args:
        error: The error to generate a response for
        include_details: Whether to include error details

    Returns:
        Dictionary shaped like ``APIResponse.error``
    """
    if not isinstance(error, EduCentralError):
        error = convert_exception(error)

    # Causes are logged, never sent to the client
    response = {
        "status": "error",
        "code": error.code.value,
        "message": error.message
    }

    if include_details and error.details:
        response["details"] = dict(error.details)

    return response


def log_error(
    error: Union[EduCentralError, Exception],
    level: int = logging.ERROR,
    include_stack_trace: bool = False,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an error in the standard single-line format.

    Args:
        error: The error to log
        level: Logging level
        include_stack_trace: Whether to append the current traceback
        context: Additional context to include
    """
    if not isinstance(error, EduCentralError):
        error = convert_exception(error, context=context)
    elif context:
        error.context.update(context)

    message = f"ERROR [{error.code.value}]: {error.message}"

    if error.context:
        context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
        message += f" (context: {context_str})"

    if error.cause:
        message += f" caused by {type(error.cause).__name__}: {str(error.cause)}"

    if include_stack_trace:
        message += f"\n{traceback.format_exc()}"

    logger.log(level, message)
