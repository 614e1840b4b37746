"""
Common Components for EduCentral

Logging, error handling and the Redis client shared across the
application packages.
"""

from educentral.common.logger import app_logger
from educentral.common.error_handling import (
    EduCentralError, ErrorCode, ErrorSeverity, ValidationError,
    AuthenticationError, AuthorizationError, NotFoundError, ConflictError,
    PayloadTooLargeError, AIServiceError, DatabaseError, retry,
    error_response, log_error
)

__all__ = [
    'app_logger',
    'EduCentralError', 'ErrorCode', 'ErrorSeverity', 'ValidationError',
    'AuthenticationError', 'AuthorizationError', 'NotFoundError', 'ConflictError',
    'PayloadTooLargeError', 'AIServiceError', 'DatabaseError', 'retry',
    'error_response', 'log_error',
]
