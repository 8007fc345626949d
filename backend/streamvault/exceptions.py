"""
Domain errors and the global exception handlers.

The data layer raises the domain errors below; routers translate them into
HTTPException. The handlers registered here make sure every non-streaming
failure reaches the client as a JSON ``{"message": ...}`` body.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class LibraryError(Exception):
    """Base class for folder/video domain errors."""


class DuplicateCustomIdError(LibraryError):
    def __init__(self, custom_id: str):
        super().__init__(f"Custom ID already exists: {custom_id}")
        self.custom_id = custom_id


class FolderNotFoundError(LibraryError):
    def __init__(self, folder_id: int):
        super().__init__(f"Folder {folder_id} does not exist")
        self.folder_id = folder_id


class FolderCycleError(LibraryError):
    def __init__(self, folder_id: int, parent_id: int):
        super().__init__(f"Folder {parent_id} is inside folder {folder_id}")
        self.folder_id = folder_id
        self.parent_id = parent_id


class UploadTooLargeError(LibraryError):
    def __init__(self, limit: int):
        super().__init__(f"File exceeds the {limit} byte upload limit")
        self.limit = limit


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException as {"message": detail}."""
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"message": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies/params are client errors (400), not 422."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.info("Validation failed on %s %s: %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request data", "errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


def register_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
