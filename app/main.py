"""
FastAPI application main module.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.core.database import Database
from app.core.middleware import LoggingMiddleware, RateLimitMiddleware
from app.core.exceptions import (
    MailPilotException,
    mailpilot_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    database_exception_handler,
    general_exception_handler,
)
from app.services.email_service import SendGridEmailGateway
from app.api.api import api_router
from app.api.health import health_router, VERSION


# Configure logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and email gateway at startup, release them on shutdown."""
    logger.info("Starting MailPilot API", environment=settings.environment)

    database = Database(
        settings.database_url,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    database.connect()
    await database.create_all()
    logger.info("Database initialized")

    gateway = SendGridEmailGateway.from_settings(settings)

    app.state.database = database
    app.state.email_gateway = gateway

    try:
        yield
    finally:
        logger.info("Shutting down MailPilot API")

        await gateway.close()
        await database.disconnect()
        logger.info("Database connections closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="MailPilot API",
        description="Email campaign management API",
        version=VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.add_middleware(LoggingMiddleware)

    # Add rate limiting middleware if enabled
    if settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            calls=settings.rate_limit_calls,
            period=settings.rate_limit_period,
            path_prefix="/api",
        )

    # Add exception handlers
    app.add_exception_handler(MailPilotException, mailpilot_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["health"])
    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "MailPilot API",
            "version": VERSION,
            "docs": "/docs" if settings.debug else "Documentation not available in production",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
