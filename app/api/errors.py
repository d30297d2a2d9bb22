from __future__ import annotations

from fastapi import HTTPException, status

from app.core.errors import (
    ConflictError,
    InfrastructureError,
    InputValidationError,
    MaintenanceDeskError,
    NotFoundError,
)


def to_http_exception(exc: MaintenanceDeskError) -> HTTPException:
    """Translate a service error into the matching HTTP response."""

    if isinstance(exc, InputValidationError):
        detail = exc.errors or str(exc)
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, InfrastructureError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
