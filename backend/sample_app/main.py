# sample_app/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from dotenv import load_dotenv

load_dotenv()

from .core.config import Settings, settings as default_settings
from .core.exceptions import (
    SampleAppException,
    sample_app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler
)
from .core.dependencies import ServiceRegistry
from .api.middleware import LoggingMiddleware, MetricsMiddleware, SecurityHeadersMiddleware
from .api.v1 import health, sample
from .services.sample_service import SampleService
from .utils.logging_filter import setup_secure_logging
from .utils.time_format import format_instant

logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Setup secure logging with sensitive data filtering
setup_secure_logging()

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    service: Optional[SampleService] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to use instead of the environment-derived defaults
        service: Pre-built SampleService to serve (tests inject one with a fixed clock)
    """
    app_settings = app_settings or default_settings
    registry = ServiceRegistry(app_settings, service)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle management"""
        logger.info("Application starting...")
        registry.initialize()
        if app_settings.METRICS_ENABLED:
            health.bind_request_count(registry)
        logger.info(
            f"Application startup completed - debug endpoints "
            f"{'enabled' if app_settings.ENABLE_DEBUG_ENDPOINTS else 'disabled'}"
        )

        yield

        logger.info("Application shutting down...")
        registry.shutdown()
        logger.info("Application shutdown completed")

    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
        debug=app_settings.DEBUG,
        description="Sample REST API used as a load-testing workload",
        redoc_url="/redoc" if app_settings.DEBUG else None,
        docs_url="/docs" if app_settings.DEBUG else None,
        openapi_url="/openapi.json",
        lifespan=lifespan
    )
    app.state.registry = registry

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS", "HEAD"],
        allow_headers=["*"]
    )

    if app_settings.METRICS_ENABLED:
        app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    # Exception handlers
    app.add_exception_handler(SampleAppException, sample_app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "message": f"Welcome to {app_settings.APP_NAME} API",
            "version": app_settings.APP_VERSION,
            "status": "running",
            "api_base": app_settings.API_PREFIX,
            "timestamp": format_instant(datetime.now(timezone.utc))
        }

    # API router registration
    app.include_router(sample.router, prefix=app_settings.API_PREFIX, tags=["sample"])
    app.include_router(health.router, tags=["health"])
    if app_settings.METRICS_ENABLED:
        app.include_router(health.metrics_router, tags=["metrics"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sample_app.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower()
    )
