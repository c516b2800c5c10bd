"""
FastAPI backend for the CRM Reporting Service
Main application entry point with middleware, routes, and startup configuration
"""

from contextlib import asynccontextmanager
from typing import Any, Dict

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST, Counter, Histogram

from backend.config.settings import get_settings
from backend.api import health, analytics
from backend.services.record_store import RecordStore
from backend.utils.errors import ErrorCode, create_error_response
from backend.utils.logging import setup_logging

# Setup structured logging
logger = structlog.get_logger(__name__)
settings = get_settings()

# Prometheus metrics
request_count = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
request_duration = Histogram('http_request_duration_seconds', 'HTTP request duration')


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events"""
    # Startup
    setup_logging(settings.log_level, json_logs=settings.is_production)
    logger.info("Starting service", app=settings.app_name, environment=settings.environment, timezone=settings.timezone)

    for issue in settings.validate_record_store_configuration():
        logger.warning("Configuration issue", issue=issue)

    try:
        store = RecordStore()
        await store.initialize()
        app.state.record_store = store
        logger.info("Record store initialized successfully")
    except Exception as e:
        logger.error(f"Record store initialization failed: {e}", exc_info=True)
        logger.warning("Running without record store - reports will be unavailable")

    logger.info("CRM Reporting Service startup complete",
                record_store_available=hasattr(app.state, 'record_store'))

    yield

    # Shutdown
    logger.info("Shutting down CRM Reporting Service")
    if getattr(app.state, 'record_store', None) is not None:
        await app.state.record_store.close()
        logger.info("Record store client released")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Period-over-period analytics for leads, customers, orders, invoices and appointments",
    version=health.VERSION,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Prometheus metrics collection middleware"""
    with request_duration.time():
        response = await call_next(request)

    request_count.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    return response


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Request logging middleware"""
    logger.info(
        "HTTP request",
        method=request.method,
        path=request.url.path,
        client=request.client.host if request.client else None
    )

    response = await call_next(request)

    logger.info(
        "HTTP response",
        status_code=response.status_code,
        method=request.method,
        path=request.url.path
    )

    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        path=request.url.path,
        method=request.method
    )

    if settings.is_production:
        return JSONResponse(
            status_code=500,
            content=create_error_response(ErrorCode.INTERNAL_ERROR)
        )
    return JSONResponse(
        status_code=500,
        content=create_error_response(
            ErrorCode.INTERNAL_ERROR,
            details={"type": exc.__class__.__name__, "message": str(exc)}
        )
    )


# Include routers
app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/")
async def root() -> Dict[str, Any]:
    """Root endpoint with API information"""
    return {
        "message": settings.app_name,
        "version": health.VERSION,
        "docs_url": "/docs" if not settings.is_production else None,
        "health_check": "/health",
        "metrics": "/metrics"
    }


if __name__ == "__main__":
    uvicorn.run(
        "backend.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )
