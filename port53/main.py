"""
port53 - Main Application
JSON:API service for DNS backends, zones and records
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html, get_redoc_html
from fastapi.responses import PlainTextResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from prometheus_client import make_asgi_app

from .config import Settings, settings
from .database import Database
from .routers import backends_router, zones_router, records_router, health_router
from .services.errors import ConflictError, Port53Error


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format=settings.log_format,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler, owns the storage handle"""
    app_settings: Settings = app.state.settings

    # Startup
    logger.info(f"Starting {app_settings.api_title} {app_settings.api_version}...")
    database = Database(
        app_settings.database_url,
        echo=app_settings.database_echo,
        audit_enabled=app_settings.audit_log_enabled,
        audit_persist=app_settings.audit_log_database,
    )
    await database.open()
    app.state.database = database

    yield

    # Shutdown
    logger.info(f"Shutting down {app_settings.api_title}...")
    await database.close()


async def port53_error_handler(request: Request, exc: Port53Error):
    """Errors are short plain-text messages"""
    headers = {}
    if isinstance(exc, ConflictError) and exc.location:
        headers["Location"] = exc.location
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return PlainTextResponse(exc.message, status_code=exc.status_code, headers=headers)


async def global_exception_handler(request: Request, exc: Exception):
    """Anything unrecognized is fatal, the raw error goes back to the client"""
    logger.exception(f"Unhandled exception: {exc}")
    return PlainTextResponse(str(exc), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application for the given settings"""
    app_settings = app_settings or settings

    app = FastAPI(
        title=app_settings.api_title,
        description=app_settings.api_description,
        version=app_settings.api_version,
        docs_url=None,  # Custom docs
        redoc_url=None,  # Custom redoc
        openapi_url=f"{app_settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    # Add rate limiting
    app.state.limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[f"{app_settings.rate_limit_requests}/{app_settings.rate_limit_period} second"],
        enabled=app_settings.rate_limit_enabled,
    )
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=app_settings.cors_allow_methods,
        allow_headers=app_settings.cors_allow_headers,
    )

    # Mount Prometheus metrics
    if app_settings.metrics_enabled:
        app.mount(app_settings.metrics_path, make_asgi_app())

    # Include routers
    app.include_router(health_router)
    app.include_router(backends_router, prefix=app_settings.api_prefix)
    app.include_router(zones_router, prefix=app_settings.api_prefix)
    app.include_router(records_router, prefix=app_settings.api_prefix)

    app.add_exception_handler(Port53Error, port53_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Custom documentation endpoints
    @app.get("/docs", include_in_schema=False)
    async def custom_swagger_ui_html():
        return get_swagger_ui_html(
            openapi_url=f"{app_settings.api_prefix}/openapi.json",
            title=f"{app_settings.api_title} - Swagger UI",
        )

    @app.get("/redoc", include_in_schema=False)
    async def redoc_html():
        return get_redoc_html(
            openapi_url=f"{app_settings.api_prefix}/openapi.json",
            title=f"{app_settings.api_title} - ReDoc",
        )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": app_settings.api_title,
            "version": app_settings.api_version,
            "docs": "/docs",
            "redoc": "/redoc",
            "openapi": f"{app_settings.api_prefix}/openapi.json",
            "health": "/health",
        }

    return app


app = create_app()


def run():
    """Console entry point"""
    import uvicorn

    uvicorn.run(
        "port53.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )


# Run with uvicorn
if __name__ == "__main__":
    run()
