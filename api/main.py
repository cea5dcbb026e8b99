"""StackQA API Service.

FastAPI application serving questions, answers, tags and user profiles to
the browser client. The MongoDB client is created once per process in the
application lifespan and handed to the routers as a dependency.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import HealthResponse
from api.routers import posts as posts_router, tags as tags_router, users as users_router
from libs.common.settings import get_settings
from libs.mongo.client import create_mongo_client, ensure_indexes, get_database

API_VERSION = "0.1.0"

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Owns the MongoDB client for the lifetime of the process."""
    settings = get_settings()
    logger.info("Connecting to MongoDB", database=settings.mongodb_database)
    client = create_mongo_client(settings)
    app.state.db = get_database(client, settings)
    await ensure_indexes(app.state.db)
    try:
        yield
    finally:
        app.state.db = None
        await client.close()
        logger.info("MongoDB client closed")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"Invalid request: {field} {first.get('msg', '')}".strip()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(format="%(message)s", level=settings.log_level)

    app = FastAPI(
        title="StackQA API",
        description="Questions, answers, tags and user profiles",
        version=API_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render every HTTP error as ``{"error": message}``."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed bodies and missing fields as 400."""
        message = _validation_message(exc)
        logger.info("Request validation failed", path=request.url.path, reason=message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Last resort: log details server-side, return a generic message."""
        logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    # Add request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing and structured data."""
        start_time = time.time()
        request_id = f"req_{int(start_time * 1000000)}"

        request.state.request_id = request_id

        logger.info(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        process_time = time.time() - start_time

        logger.info(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            process_time_ms=round(process_time * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(posts_router.router, prefix="/api", tags=["Posts"])
    app.include_router(tags_router.router, prefix="/api", tags=["Tags"])
    app.include_router(users_router.router, prefix="/api", tags=["Users"])

    @app.get("/api/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Liveness probe.

        Example:
            ```bash
            curl http://localhost:3000/api/health
            ```
        """
        return HealthResponse(status="ok", message="Server is running", version=API_VERSION)

    return app


# Create the FastAPI app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    # For local development only
    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
