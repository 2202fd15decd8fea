"""API middleware.

Provides:
- Request ID correlation for logs, responses and the catalog service
- Translation of catalog errors that escape a handler
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.api.dependencies import (
    catalog_error_detail,
    catalog_error_headers,
    catalog_error_status,
)
from storefront.domain.exceptions import CatalogError

logger = structlog.get_logger()

MAX_REQUEST_ID_LENGTH = 128


def _request_id_from(request: Request, header_name: str) -> str:
    incoming = request.headers.get(header_name, "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return str(uuid4())


# ============================================================================
# Request ID Middleware
# ============================================================================


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation ID.

    A client-supplied ``X-Request-ID`` is reused when it is short and
    printable, otherwise a UUID is generated. The ID is stored on
    ``request.state`` (where ``get_catalog_service`` picks it up), bound
    into the structlog context and echoed in the response header.
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _request_id_from(request, self.HEADER_NAME)
        request.state.request_id = request_id

        start_time = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
                status_code = response.status_code
            finally:
                logger.info(
                    "Catalog request completed",
                    method=request.method,
                    path=request.url.path,
                    query=str(request.url.query) or None,
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )

        response.headers[self.HEADER_NAME] = request_id
        return response


# ============================================================================
# Error Handling Middleware
# ============================================================================


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn exceptions that escape a handler into the standard error body.

    A ``CatalogError`` raised instead of returned gets the same status code
    and body as one reported through a service result. Anything else is a
    500 ``INTERNAL_ERROR``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except CatalogError as e:
            request_id = getattr(request.state, "request_id", None)
            logger.warning(
                "Catalog error escaped handler",
                path=request.url.path,
                error_code=e.error_code,
                error=e.message,
            )
            return JSONResponse(
                status_code=catalog_error_status(e),
                content={**catalog_error_detail(e), "request_id": request_id},
                headers=catalog_error_headers(e),
            )
        except Exception as e:
            request_id = getattr(request.state, "request_id", None)
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error_code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                    "details": [],
                    "request_id": request_id,
                },
            )


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Install catalog middleware on ``app``.

    Starlette runs the last added middleware first, so request IDs are
    assigned before errors are translated.
    """
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIdMiddleware)
