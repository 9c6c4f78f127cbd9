"""
Image Toolbox - Main Application

FastAPI application with:
- API versioning (/api/v1/)
- Structured logging with structlog
- Prometheus metrics
- Global exception handling
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from image_toolbox.core.config import settings
from image_toolbox.core.logging import setup_logging, get_logger, request_id_var
from image_toolbox.core.exceptions import register_exception_handlers, internal_error_response
from image_toolbox.core.metrics import set_app_info, http_requests_total, http_request_duration_seconds
from image_toolbox.api.v1 import api_v1_router


# =============================================================================
# Initialize Logging
# =============================================================================
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT_JSON
)
logger = get_logger(__name__)


def vendor_status() -> dict:
    """Which vendor credentials are configured. Never exposes the keys."""
    return {
        "ark": bool(settings.ARK_API_KEY),
        "remove_bg": bool(settings.REMOVE_BG_API_KEY),
    }


# =============================================================================
# Lifespan Handler
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - startup and shutdown."""
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    set_app_info(
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    configured = vendor_status()
    for vendor, ok in configured.items():
        if not ok:
            logger.warning("vendor_not_configured", vendor=vendor)

    logger.info("application_ready", vendors=configured)

    yield

    logger.info("application_shutdown_complete")


# =============================================================================
# Create FastAPI Application
# =============================================================================
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Image processing toolbox:

    - **Compression**: Local re-encoding with quality and size cap (Pillow)
    - **Background Removal**: Third-party background-removal API
    - **Recognition**: Vision chat model answers questions about an image
    - **Generation**: Text-to-image model with style presets

    ## API Versioning

    All endpoints are versioned under `/api/v1/`

    ## Errors

    Every failure returns `{"error", "code", "operation", "details",
    "request_id", "timestamp"}`. Nothing is retried server-side.
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# =============================================================================
# Middleware
# =============================================================================

# CORS
cors_origins = settings.CORS_ORIGINS.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Content-Disposition",
        "X-Request-ID",
        "X-Original-Size",
        "X-Compressed-Size",
        "X-Compression-Ratio",
        "X-Output-Dimensions",
        "X-Output-Size",
        "X-Credits-Charged",
    ],
)


# Request timing middleware
@app.middleware("http")
async def add_request_timing(request: Request, call_next):
    """Track request timing for metrics."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(duration)

    http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    response.headers["X-Process-Time"] = str(duration)

    return response


# Request ID middleware (registered last so it runs first)
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Bind a request id to the logging context and echo it back.

    Unhandled exceptions are turned into the 500 envelope here, while
    the request id is still bound.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    except Exception as e:
        response = internal_error_response(request, e)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# Register Exception Handlers
# =============================================================================
register_exception_handlers(app)


# =============================================================================
# Include API Routers
# =============================================================================
app.include_router(api_v1_router)


# =============================================================================
# Root Endpoints
# =============================================================================

@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/api/docs",
        "api_v1": "/api/v1",
        "features": "/api/v1/features",
        "metrics": "/api/v1/metrics"
    }


@app.get("/health", tags=["health"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


@app.get("/ready", tags=["health"])
async def ready():
    """Readiness check - verifies vendor credentials are configured."""
    checks = vendor_status()
    all_ready = all(checks.values())

    return JSONResponse(
        status_code=200 if all_ready else 503,
        content={
            "ready": all_ready,
            "checks": checks
        }
    )


# =============================================================================
# Development Server
# =============================================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "image_toolbox.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
