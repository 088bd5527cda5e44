"""Error handlers for the application

Every failure leaves the API as ``{"success": false, "message": ...}``.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.errors.response_codes import error_response

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handle raised HTTP exceptions (custom and framework ones, e.g. 404 routing)
    """
    message = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = f"Cannot {request.method} {request.url.path}"

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(message)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors
    """
    fields = []
    for error in exc.errors():
        loc = [str(x) for x in error["loc"] if x != "body"]
        fields.append(".".join(loc) or "body")

    logger.warning(f"Validation error on {request.url}: {fields}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response(f"Invalid request fields: {', '.join(fields)}"),
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """
    Handle SQLAlchemy database errors
    """
    logger.error(f"Database error on {request.url}: {str(exc)}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("An internal database error occurred. Please try again later."),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle general exceptions
    """
    logger.error(f"Unhandled exception on {request.url}: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(str(exc) or "An unexpected error occurred. Please try again later."),
    )
