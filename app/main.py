"""
FastAPI Application Entry Point

This module sets up the FastAPI application with all middleware,
routing, and configuration for the Emergency Assistance Service.
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.api import api_router
from app.core.config import Settings, settings as default_settings, setup_logging
from app.core.exceptions import (
    EmergencyServiceException,
    ValidationError,
    normalize_errors,
)
from app.core.metrics import REQUEST_COUNT, REQUEST_DURATION
from app.services.demo_data import seed_demo_data
from app.storage.base import EntityStore
from app.storage.factory import build_store

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An internal server error occurred"


def error_envelope(
    request: Request,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Uniform JSON body for every error response."""
    return {
        "error": True,
        "error_code": error_code,
        "message": message,
        "details": details or {},
        **extra,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": getattr(request.state, "request_id", None),
    }


# =============================================================================
# Application Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds and initializes the entity store (unless one was injected),
    optionally seeds demo data, and closes the store on shutdown.
    """
    config: Settings = app.state.settings

    # Setup logging early before any logger usage
    setup_logging(config)
    log = logger.bind(app=config.APP_NAME, environment=config.ENVIRONMENT)

    log.info("🚀 Starting Emergency Assistance Service", version=config.APP_VERSION)

    if app.state.store is None:
        app.state.store = build_store(config)
    store: EntityStore = app.state.store

    try:
        await store.initialize()
        log.info("🗄️ Entity store initialized", backend=store.backend)
    except Exception as e:
        log.error("💥 Entity store initialization failed", backend=store.backend, error=str(e))
        raise

    if config.SEED_DEMO_DATA:
        if await store.list_users():
            log.info("Store already holds users - skipping demo data")
        else:
            await seed_demo_data(store)

    log.info("🎉 Application startup completed", debug=config.DEBUG)

    yield

    # Shutdown
    log.info("🛑 Shutting down Emergency Assistance Service")
    await store.close()
    log.info("✅ Application shutdown completed")


# =============================================================================
# Request/Response Middleware
# =============================================================================

async def request_logging_middleware(request: Request, call_next):
    """
    Log all requests and add request ID for tracing.
    """
    # Generate request ID
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id

    # Get logger with request context
    log = logger.bind(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    )

    start_time = time.time()
    log.info("📥 Incoming request")

    try:
        response = await call_next(request)
    except Exception as exc:
        duration = time.time() - start_time
        log.error("💥 Request failed", error=str(exc), duration=f"{duration:.3f}s", exc_info=True)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint_label(request),
            status_code=500
        ).inc()
        raise

    duration = time.time() - start_time
    endpoint = endpoint_label(request)

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status_code=response.status_code
    ).inc()
    REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(duration)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time"] = f"{duration:.3f}s"

    log.info("📤 Request completed", status_code=response.status_code, duration=f"{duration:.3f}s")
    return response


def endpoint_label(request: Request) -> str:
    """Route template (``/api/emergency-requests/{request_id}``) to bound label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


# =============================================================================
# Exception Handlers
# =============================================================================

async def service_exception_handler(request: Request, exc: EmergencyServiceException):
    """Handle custom application exceptions."""
    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    log = logger.bind(
        request_id=getattr(request.state, "request_id", "unknown"),
        error_code=exc.error_code,
        error_type=type(exc).__name__,
    )

    extra: Dict[str, Any] = {}
    if isinstance(exc, ValidationError):
        extra["errors"] = exc.errors

    if status_code >= 500:
        cause = exc.__cause__
        log.error(
            "🚨 Application error",
            error=exc.message,
            cause=str(cause) if cause else None,
            operation=getattr(exc, "operation", None),
        )
        body = error_envelope(request, exc.error_code or "INTERNAL_ERROR", GENERIC_ERROR_MESSAGE)
    else:
        log.warning("⚠️ Request rejected", status_code=status_code, error=exc.message)
        body = error_envelope(request, exc.error_code, exc.message, exc.details, **extra)

    return JSONResponse(
        status_code=status_code,
        content=body,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors as 400."""
    errors = normalize_errors(exc.errors())
    logger.warning(
        "⚠️ Validation error",
        request_id=getattr(request.state, "request_id", "unknown"),
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_envelope(request, "VALIDATION_ERROR", "Validation failed", errors=errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes and disallowed methods, in the same envelope."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code, message = "RESOURCE_NOT_FOUND", "The requested resource was not found"
    else:
        error_code, message = "HTTP_ERROR", str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(request, error_code, message),
        headers=getattr(exc, "headers", None),
    )


async def internal_server_error_handler(request: Request, exc: Exception):
    """Handle internal server errors without exposing details."""
    logger.error(
        "💥 Internal server error",
        request_id=getattr(request.state, "request_id", "unknown"),
        error=str(exc),
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_envelope(request, "INTERNAL_ERROR", GENERIC_ERROR_MESSAGE),
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app(store: Optional[EntityStore] = None, config: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Args:
        store: Entity store to serve; built from configuration at startup if omitted
        config: Settings; defaults to the process-wide settings

    Returns:
        Configured FastAPI application instance
    """
    config = config or default_settings

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        description=config.APP_DESCRIPTION,
        openapi_url=f"{config.API_PREFIX}/openapi.json" if config.SHOW_DOCS else None,
        docs_url="/docs" if config.SHOW_DOCS else None,
        redoc_url="/redoc" if config.SHOW_DOCS else None,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.store = store

    # =========================================================================
    # Middleware Configuration
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.middleware("http")(request_logging_middleware)

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    app.add_exception_handler(EmergencyServiceException, service_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, internal_server_error_handler)

    # =========================================================================
    # API Routes
    # =========================================================================

    app.include_router(api_router, prefix=config.API_PREFIX)

    # =========================================================================
    # Health Check and Monitoring Endpoints
    # =========================================================================

    @app.get("/health", tags=["system"])
    async def health_check(request: Request):
        """
        Application health check endpoint.

        Returns 503 when the entity store is unhealthy.
        """
        store_health = await request.app.state.store.health()
        healthy = store_health.get("status") == "healthy"

        health_data = {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": config.APP_VERSION,
            "environment": config.ENVIRONMENT,
            "services": {"store": store_health},
        }
        return JSONResponse(
            content=health_data,
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    if config.METRICS_ENABLED:
        @app.get("/metrics", tags=["system"])
        async def metrics():
            """Prometheus metrics endpoint."""
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/version", tags=["system"])
    async def version_info():
        """Application version information."""
        return {
            "name": config.APP_NAME,
            "version": config.APP_VERSION,
            "description": config.APP_DESCRIPTION,
            "environment": config.ENVIRONMENT,
        }

    # =========================================================================
    # Root Endpoints
    # =========================================================================

    @app.get("/", tags=["system"])
    async def root():
        """API root endpoint with basic information."""
        return {
            "message": "Emergency Assistance Service API",
            "version": config.APP_VERSION,
            "docs_url": "/docs" if config.SHOW_DOCS else None,
            "health_url": "/health",
            "api_prefix": config.API_PREFIX,
            "environment": config.ENVIRONMENT,
            "status": "running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()


# =============================================================================
# CLI and Development Server
# =============================================================================

if __name__ == "__main__":
    # For production, use: uvicorn app.main:app --host 0.0.0.0 --port 8000
    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=default_settings.AUTO_RELOAD and default_settings.is_development,
        log_level=default_settings.LOG_LEVEL.lower(),
        access_log=not default_settings.is_production,
        server_header=False,
        date_header=False,
    )
