"""FastAPI application factory for klaw.

Usage::

    from klaw.api.app import create_app

    app = create_app(registry=registry, sampler=sampler, monitoring=monitoring)

The factory is used by both the production bootstrap (``klaw.app``) and
unit tests.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from klaw.api.routes import router
from klaw.api.schemas import ErrorResponse
from klaw.cluster.registry import ClusterRegistry
from klaw.errors import (
    AlertNotFoundError,
    ClusterNotFoundError,
    KlawError,
    NoHistoryError,
    ResourceNotFoundError,
)
from klaw.metrics.sampler import Sampler
from klaw.monitoring.service import MonitoringService
from klaw.observability.logging import get_logger

_log = get_logger("api.app")

_API_PREFIX = "/api"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def create_app(
    registry: ClusterRegistry,
    sampler: Sampler,
    monitoring: MonitoringService,
) -> FastAPI:
    """Create and configure the klaw FastAPI application.

    Args:
        registry:    ClusterRegistry with connected handles.
        sampler:     Sampler used for on-demand ``/metrics``.
        monitoring:  MonitoringService owning history and alerts.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from klaw import __version__

    app = FastAPI(
        title="klaw",
        summary="Multi-cluster Kubernetes observability sidecar",
        version=__version__,
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json",
    )

    app.state.registry = registry
    app.state.sampler = sampler
    app.state.monitoring = monitoring

    app.include_router(router, prefix=_API_PREFIX)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(ClusterNotFoundError)
    async def cluster_not_found_handler(_request: Request, _exc: ClusterNotFoundError) -> JSONResponse:
        return _error(404, "Cluster not found")

    @app.exception_handler(AlertNotFoundError)
    async def alert_not_found_handler(_request: Request, _exc: AlertNotFoundError) -> JSONResponse:
        return _error(404, "Alert not found")

    @app.exception_handler(ResourceNotFoundError)
    async def resource_not_found_handler(_request: Request, exc: ResourceNotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(NoHistoryError)
    async def no_history_handler(_request: Request, exc: NoHistoryError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(KlawError)
    async def klaw_error_handler(request: Request, exc: KlawError) -> JSONResponse:
        """Downstream failures: Kubernetes queries, sampling, connections."""
        _log.warning(
            "request_failed",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return _error(500, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = str(errors[0].get("msg", "invalid request")) if errors else "invalid request"
        return _error(400, message)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return _error(500, "An unexpected error occurred.")

    return app
