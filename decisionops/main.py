"""DecisionOps: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# configure_structlog MUST run before the other app imports
# (structlog caches the processor chain on first use).
from decisionops.core.logging import configure_structlog
from decisionops.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from decisionops.api.routes import api_router
from decisionops.core.config import get_settings
from decisionops.core.exceptions import DecisionOpsError
from decisionops.db import close_db, close_redis, get_redis, init_db, init_redis
from decisionops.middleware.correlation import get_correlation_id, setup_correlation_middleware
from decisionops.services.events import NullEventSink, RedisEventSink

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    await init_db()
    logger.info("db_initialized")

    # The event channel is optional: without Redis, events are dropped.
    app.state.redis_enabled = False
    app.state.event_sink = NullEventSink()
    if settings.events_enabled:
        try:
            await init_redis()
            app.state.event_sink = RedisEventSink(get_redis())
            app.state.redis_enabled = True
            logger.info("redis_initialized", channel_prefix=settings.event_channel_prefix)
        except Exception as e:
            logger.warning("event_channel_unavailable", error=str(e), error_type=type(e).__name__)
    else:
        logger.info("events_disabled")

    yield

    logger.info("shutdown_begin")
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


def _error_response(request: Request, status_code: int, detail: object, event: str, **extra) -> JSONResponse:
    debug_id = str(uuid.uuid4())
    logger.error(
        event,
        status_code=status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        tenant_id=request.headers.get("x-tenant-id"),
        **extra,
    )
    return JSONResponse(status_code=status_code, content={"detail": detail, "debug_id": debug_id})


async def domain_exception_handler(request: Request, exc: DecisionOpsError) -> JSONResponse:
    """Map business-rule failures to their HTTP status with a debug_id."""
    return _error_response(
        request,
        exc.status_code,
        str(exc),
        "domain_error",
        error_type=type(exc).__name__,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking."""
    return _error_response(request, exc.status_code, exc.detail, "http_exception")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors.

    Logs the full exception with traceback, returns a generic 500 to the client.
    """
    return _error_response(
        request,
        500,
        "Internal server error",
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Decision workflow core: SLAs, escalation and cascading unblocks",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    return app


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(DecisionOpsError)(domain_exception_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "decisionops.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
