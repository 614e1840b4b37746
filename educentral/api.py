"""
Central API router and utilities for the EduCentral assessment service.

This module provides:
- The ``/api`` router that includes every feature router
- Common response helpers
- Exception handlers that turn errors into the standard JSON envelope
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from educentral.common.error_handling import DatabaseError, EduCentralError, ErrorSeverity, error_response, log_error
from educentral.common.logger import app_logger

logger = app_logger.getChild("api")

API_PREFIX = "/api"


def create_api_router(modules: Dict[str, APIRouter]) -> APIRouter:
    """
    Build the ``/api`` router from the feature routers.

    Args:
        modules: Feature routers keyed by the tag they are documented under

    Returns:
        Router to include in the application
    """
    main_router = APIRouter(prefix=API_PREFIX)
    for name, router in modules.items():
        main_router.include_router(router, tags=[name])
        logger.info(f"Registered module '{name}' with {len(router.routes)} routes")
    return main_router


# Common validation error handler
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle validation errors and return a standardized response.

    Args:
        request: The incoming request
        exc: The validation exception

    Returns:
        A JSON response with error details
    """
    error_details = []
    for error in exc.errors():
        error_details.append({
            "location": error.get("loc", []),
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "")
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "message": "Validation error",
            "details": error_details
        }
    )


async def educentral_exception_handler(request: Request, exc: EduCentralError) -> JSONResponse:
    """
    Map an application error to its HTTP status and the error envelope.

    Args:
        request: The incoming request
        exc: The raised application error

    Returns:
        A JSON response with the error code and message
    """
    if exc.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
        log_error(exc, context={"path": request.url.path})

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc)
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Report a failed query as a ``database_error`` without leaking the SQL."""
    return await educentral_exception_handler(
        request,
        DatabaseError(f"{request.method} {request.url.path}", cause=exc)
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler that hides internals behind a 500 envelope."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=APIResponse.error("Internal server error", code="internal_error")
    )


# Standard API response model
class APIResponse:
    """Standard API response structure"""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        """
        Create a success response.

        Args:
            data: Response data
            message: Success message

        Returns:
            Response dictionary
        """
        return {
            "status": "success",
            "message": message,
            "data": data
        }

    @staticmethod
    def error(message: str, details: Optional[Any] = None,
              code: Optional[str] = None) -> Dict[str, Any]:
        """
        Create an error response.

        Args:
            message: Error message
            details: Optional error details
            code: Optional error code

        Returns:
            Response dictionary
        """
        response = {
            "status": "error",
            "message": message
        }

        if details:
            response["details"] = details

        if code:
            response["code"] = code

        return response
