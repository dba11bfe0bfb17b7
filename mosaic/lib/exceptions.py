"""Error taxonomy for the content store and page composition service.

Services raise these; the HTTP layer turns them into structured JSON
errors through the handlers at the bottom of this module.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mosaic.lib import observability

logger = logging.getLogger(__name__)


class MosaicError(Exception):
    """Base class for every error raised by the core."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"status": self.status_code, "message": self.message}


class ValidationError(MosaicError):
    """Input rejected before any write happened."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field is not None:
            data["field"] = self.field
        return data


class NotFoundError(MosaicError):
    """Unknown content type, entry, page, section or section type."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(f"{entity} {str(identifier)!r} not found")
        self.entity = entity
        self.identifier = identifier


class StorageError(MosaicError):
    """The database rejected an operation; carries the entity it concerned."""

    def __init__(self, entity: str, message: str) -> None:
        super().__init__(f"Failed to write {entity}: {message}")
        self.entity = entity


class InvalidTransitionError(MosaicError):
    """A publication status change not allowed by the transition table."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot change status from {current!r} to {target!r}")
        self.current = current
        self.target = target


class PermissionDeniedError(MosaicError):
    """The caller's authorizer refused a write."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, permission: str) -> None:
        super().__init__(f"Missing permission {permission!r}")
        self.permission = permission


def _error_response(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": body})


async def mosaic_error_handler(request: Request, exc: MosaicError) -> JSONResponse:
    """Render a core error as ``{"error": {...}}`` with its status code."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        if not observability.exception(
            "Storage failure on {method} {path}",
            method=request.method,
            path=request.url.path,
        ):
            logger.error(
                "Storage failure on %s %s: %s",
                request.method,
                request.url.path,
                exc.message,
                exc_info=exc,
            )
    return _error_response(exc.status_code, exc.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP exceptions in the same envelope."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(exc.status_code, {"status": exc.status_code, "message": detail})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are reported like core validation errors."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    body = {
        "status": status.HTTP_400_BAD_REQUEST,
        "message": first.get("msg", "Invalid request"),
    }
    if location:
        body["field"] = ".".join(location)
    return _error_response(status.HTTP_400_BAD_REQUEST, body)


async def internal_server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without leaking internals."""
    if not observability.exception(
        "Unhandled exception on {method} {path}",
        method=request.method,
        path=request.url.path,
    ):
        logger.error(
            "Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc
        )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"status": status.HTTP_500_INTERNAL_SERVER_ERROR, "message": "Internal Server Error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MosaicError, mosaic_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, internal_server_error_handler)
