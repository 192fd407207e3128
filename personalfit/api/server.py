"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import psycopg

from personalfit.api.routes import router
from personalfit.api.metrics_routes import router as metrics_router
from personalfit.api.middleware import setup_cors, setup_rate_limiting, setup_request_metrics
from personalfit.db.connection import db
from personalfit.config import LOG_LEVEL, validate_config
from personalfit.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleError,
    ConcurrencyConflictError,
    DatabaseError,
    PersonalFitError,
    RecordNotFoundError,
    ValidationError,
    wrap_external_exception,
)
from personalfit.services.container import init_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)

# Most specific first: RecordNotFoundError is also a DatabaseError
ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (RecordNotFoundError, 404),
    (BusinessRuleError, 400),
    (ConcurrencyConflictError, 409),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (DatabaseError, 503),
)


def status_code_for(error: PersonalFitError) -> int:
    """HTTP status for an application error"""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_response(error: PersonalFitError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(error), content=error.to_dict())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    validate_config()
    await db.init_pool()
    logger.info("Database pool initialized")
    init_container(db)

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    await db.close_pool()
    logger.info("Database pool closed")


def create_api_application() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="PersonalFit Gamification API",
        description="XP, streaks, gems and workout accountability",
        version="1.0.0",
        lifespan=lifespan
    )

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)
    setup_request_metrics(app)

    # Include routes
    app.include_router(router)
    app.include_router(metrics_router)

    @app.exception_handler(PersonalFitError)
    async def personalfit_exception_handler(request: Request, exc: PersonalFitError):
        return error_response(exc)

    # Driver errors, including pool timeouts
    @app.exception_handler(psycopg.Error)
    async def database_exception_handler(request: Request, exc: psycopg.Error):
        return error_response(wrap_external_exception(exc, operation=f"{request.method} {request.url.path}"))

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": "An error occurred. Please try again."}
        )

    logger.info("FastAPI application created")

    return app
