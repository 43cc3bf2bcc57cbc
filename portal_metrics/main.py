"""
FastAPI application factory with middleware, CORS, and request tracing.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal_metrics import __version__
from portal_metrics.config import get_settings
from portal_metrics.engine.baselines import default_baseline_entries
from portal_metrics.routers import baselines, dashboard
from portal_metrics.storage import get_storage
from portal_metrics.utils.logging import bind_request_context, configure_logging, get_logger

# Configure logging at module level
configure_logging()
logger = get_logger(__name__)

API_PREFIX = "/api/v1/portal-dashboard"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Seeds the global default baselines on startup when enabled.
    """
    settings = get_settings()

    logger.info(
        "application_startup",
        version=app.version,
        db_type=settings.db_type,
        dev_mode=settings.dev_mode,
    )

    if settings.seed_default_baselines:
        # Honour test overrides of the storage dependency
        storage = app.dependency_overrides.get(get_storage, get_storage)()
        inserted = storage.seed_default_baselines(default_baseline_entries())
        logger.info("default_baselines_checked", inserted=inserted)

    yield

    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """
    Application factory.
    Creates and configures FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Portal Metrics API",
        description="KPI aggregation for the AI agent workflow portal",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # Request tracing middleware
    @app.middleware("http")
    async def request_tracing_middleware(request: Request, call_next):
        """Add request ID to all requests and log their outcome."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        bind_request_context(request_id, request.method, request.url.path)

        logger.info(
            "request_started",
            client=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "request_completed",
                status_code=response.status_code,
            )

            return response
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": "Internal server error",
                    "request_id": request_id,
                },
                headers={"X-Request-ID": request_id},
            )

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for load balancers and monitoring."""
        return {
            "status": "healthy",
            "version": app.version,
            "db_type": settings.db_type,
        }

    app.include_router(dashboard.router, prefix=API_PREFIX, tags=["Portal Dashboard"])
    app.include_router(baselines.router, prefix=API_PREFIX, tags=["Baselines"])

    logger.info("application_configured", routers_count=2)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "portal_metrics.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
