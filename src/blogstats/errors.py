"""Tracking error taxonomy and the JSON error payload handlers."""

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class TrackingError(Exception):
    """Base class for errors surfaced to API callers."""

    reason = "tracking_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.reason
        super().__init__(self.detail)


class ValidationError(TrackingError):
    """A required event field is missing or malformed. Nothing was stored."""

    reason = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(TrackingError):
    reason = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(TrackingError):
    """A concurrent request created the same session first."""

    reason = "conflict"
    status_code = status.HTTP_409_CONFLICT


class StorageError(TrackingError):
    """The store failed for a reason other than uniqueness. Safe to retry."""

    reason = "storage_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def error_payload(reason: str, detail) -> dict:
    return {"success": False, "error": reason, "detail": detail}


async def tracking_error_handler(request: Request, exc: TrackingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.reason, exc.detail),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request validation failures as 400 with the validation_error reason."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_payload(ValidationError.reason, jsonable_encoder(exc.errors())),
    )


HTTP_REASONS = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(HTTP_REASONS.get(exc.status_code, "http_error"), exc.detail),
        headers=getattr(exc, "headers", None),
    )
