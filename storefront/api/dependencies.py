"""Shared API dependencies and error mapping."""

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.catalog.service import CatalogService
from storefront.domain.exceptions import (
    CatalogError,
    ConstraintError,
    NotFoundError,
    TransactionError,
    TransientStorageError,
    ValidationError,
)
from storefront.infrastructure.database import get_session, get_session_factory

_STATUS_BY_ERROR: dict[type[CatalogError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConstraintError: status.HTTP_409_CONFLICT,
    TransactionError: status.HTTP_409_CONFLICT,
    TransientStorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_catalog_service(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_session)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> CatalogService:
    """Get a catalog service scoped to the current request."""
    request_id = getattr(request.state, "request_id", None)
    return CatalogService(session, session_factory, request_id=request_id)


CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]


def catalog_error_status(error: CatalogError) -> int:
    """HTTP status code for a catalog error."""
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def catalog_error_detail(error: CatalogError) -> dict[str, Any]:
    """Error body fields for a catalog error, without the request ID."""
    details = []
    if isinstance(error, ValidationError):
        details.append({"field": error.field, "message": error.details.get("reason", "")})
    return {
        "error_code": error.error_code,
        "message": error.message,
        "details": details,
    }


def catalog_error_headers(error: CatalogError) -> dict[str, str] | None:
    """Response headers for a catalog error; retryable errors get Retry-After."""
    return {"Retry-After": "1"} if error.retryable else None


def catalog_http_error(error: CatalogError | None) -> HTTPException:
    """Convert a catalog error into an HTTPException with the standard body."""
    if error is None:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error_code": "INTERNAL_ERROR", "message": "Unknown failure"},
        )

    return HTTPException(
        status_code=catalog_error_status(error),
        detail=catalog_error_detail(error),
        headers=catalog_error_headers(error),
    )
