"""
Error handling utilities following FastAPI best practices
"""

import traceback
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from otel_demo.core.config import config
from otel_demo.core.logger import logger


class ErrorResponse(Exception):
    """Custom exception for application errors"""

    def __init__(self, message: str, status_code: int = 400, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class MessageDecodeError(ValueError):
    """Raised when a queue payload cannot be decoded into a message"""


class ErrorResponseModel(BaseModel):
    """Pydantic model for error responses"""
    error: str
    details: Optional[dict] = None


def _request_metadata(request: Request, event: str, status_code: int) -> dict:
    metadata = {
        "event": event,
        "status_code": status_code,
        "url": str(request.url),
        "method": request.method,
    }
    if config.is_development:
        metadata["traceback"] = traceback.format_exc()
    return metadata


async def error_response_handler(request: Request, exc: ErrorResponse):
    """Handler for custom ErrorResponse exceptions"""
    metadata = _request_metadata(request, "error_response", exc.status_code)
    metadata.update(exc.details)

    logger.error(f"Error: {exc.message}", metadata=metadata)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handler for FastAPI HTTPException"""
    logger.error(
        f"HTTPException: {exc.detail}",
        metadata=_request_metadata(request, "http_exception", exc.status_code),
    )

    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handler for request body/query validation failures"""
    logger.warning(
        "Validation error",
        metadata={"event": "validation_error", "errors": exc.errors(), "url": str(request.url)},
    )

    return JSONResponse(
        status_code=422,
        content={"error": "Validation error", "details": jsonable_encoder(exc.errors())},
    )


def register_error_handlers(app) -> None:
    """Attach the shared exception handlers to a FastAPI app"""
    app.add_exception_handler(ErrorResponse, error_response_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
