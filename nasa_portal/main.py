import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from nasa_portal.cache import close_redis
from nasa_portal.db.connection import (
    dispose_engine,
    get_database_type,
    get_database_url,
    get_engine,
)
from nasa_portal.db.models import Base
from nasa_portal.settings import get_settings

from .api import collections, favorites
from .schemas.error import ErrorType, ValidationErrorDetail
from .services.errors import StorageError, StoreError
from .utils.error_responses import (
    build_error_response,
    build_store_error_response,
    build_validation_error_response,
)
from .utils.request_context import get_request_id, resolve_request_id, set_request_id

settings = get_settings()

logging.basicConfig(
    level=settings.log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_HTTP_ERROR_TYPES: dict[int, ErrorType] = {
    status.HTTP_401_UNAUTHORIZED: ErrorType.AUTHENTICATION_ERROR,
    status.HTTP_404_NOT_FOUND: ErrorType.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorType.CONFLICT,
}


def _sanitize_database_url(url: str) -> str:
    """Sanitize database URL to hide password in logs."""
    if "://" not in url:
        return url

    scheme, rest = url.split("://", 1)
    if "@" in rest:
        auth, host_db = rest.split("@", 1)
        if ":" in auth:
            user, _ = auth.split(":", 1)
            return f"{scheme}://{user}:***@{host_db}"
        return f"{scheme}://{auth}@{host_db}"
    return url


def validate_environment() -> None:
    """Log warnings for optional settings that were left at their defaults."""

    warnings = settings.optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning("  • %s", warning)
        logger.warning("=" * 60)


async def _create_schema() -> None:
    engine = get_engine()
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    validate_environment()

    db_type = get_database_type()
    sanitized_url = _sanitize_database_url(get_database_url())

    logger.info("=" * 60)
    logger.info("NASA Portal API - Database Preflight Check")
    logger.info("=" * 60)
    logger.info("Database Type: %s", db_type.upper())
    logger.info("Database URL: %s", sanitized_url)

    if settings.auto_create_schema:
        logger.info("AUTO_CREATE_SCHEMA enabled - creating missing tables")
        await _create_schema()
    elif db_type == "postgresql":
        logger.info("PostgreSQL mode - using Alembic migrations")
        logger.info("Ensure migrations are up to date (run: alembic upgrade head)")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down NASA Portal API")
    await close_redis()
    await dispose_engine()


app = FastAPI(
    title="NASA Portal API",
    version="0.1.0",
    description="Per-user favorites and collections for NASA/NOAA data items.",
    lifespan=lifespan,
    redirect_slashes=False,
)


def _default_origins() -> list[str]:
    ports = list(range(3000, 3011)) + [5173]
    origins = []
    for host in ("localhost", "127.0.0.1"):
        origins.extend([f"http://{host}:{port}" for port in ports])
    return origins


def _combine_origins(*origin_groups: list[str]) -> list[str]:
    """Merge origins preserving order and removing duplicates."""
    seen: set[str] = set()
    combined: list[str] = []
    for group in origin_groups:
        for origin in group:
            normalized = origin.rstrip("/")
            if normalized and normalized not in seen:
                seen.add(normalized)
                combined.append(normalized)
    return combined


allow_origins = _combine_origins(_default_origins(), settings.cors_allow_origins)
logger.info("Configured CORS allow_origins: %s", ", ".join(allow_origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Tag each request with an ``X-Request-ID``, reusing the gateway's if sent."""
    request_id = resolve_request_id(
        request.headers.get("X-Request-ID"), fallback=str(uuid.uuid4())
    )
    set_request_id(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors as ``400``."""
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Request validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_400_BAD_REQUEST,
        path=str(request.url.path),
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(StoreError)
async def store_exception_handler(request: Request, exc: StoreError):
    """Map store failures onto 400/404/409/503."""
    error_response = build_store_error_response(exc, path=str(request.url.path))

    log = logger.error if isinstance(exc, StorageError) else logger.info
    log(
        "%s for request %s to %s: %s",
        type(exc).__name__,
        get_request_id(),
        request.url.path,
        exc.message,
    )

    headers = None
    if error_response.retry_after is not None:
        headers = {"Retry-After": str(error_response.retry_after)}

    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.model_dump(mode="json"),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap ``HTTPException`` raised by routes in the standard envelope."""
    error_response = build_error_response(
        error_type=_HTTP_ERROR_TYPES.get(exc.status_code, ErrorType.INTERNAL_ERROR),
        message=str(exc.detail),
        detail=str(exc.detail),
        status_code=exc.status_code,
        path=str(request.url.path),
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(OperationalError)
@app.exception_handler(DBAPIError)
async def database_connection_exception_handler(request: Request, exc: Exception):
    """Handle database connection errors that escaped a store."""
    logger.error(
        "Database connection error for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        str(exc),
    )

    error_response = build_error_response(
        error_type=ErrorType.DATABASE_ERROR,
        message="Database connection failed",
        detail="Unable to connect to the database. Please try again later.",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        path=str(request.url.path),
        retry_after=5,
    )

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(SQLAlchemyTimeoutError)
async def database_timeout_exception_handler(
    request: Request, exc: SQLAlchemyTimeoutError
):
    """Handle connection pool timeouts."""
    logger.error(
        "Database timeout error for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        str(exc),
    )

    error_response = build_error_response(
        error_type=ErrorType.TIMEOUT_ERROR,
        message="Database query timeout",
        detail="The database did not respond in time. Please try again.",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        path=str(request.url.path),
        retry_after=3,
    )

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other unhandled exceptions."""
    logger.exception(
        "Unhandled exception for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        type(exc).__name__,
    )

    error_response = build_error_response(
        error_type=ErrorType.INTERNAL_ERROR,
        message="Internal server error",
        detail=f"An unexpected error occurred: {type(exc).__name__}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        path=str(request.url.path),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Simple health endpoint for readiness checks."""
    return {"status": "ok"}


app.include_router(favorites.router, prefix="/favorites", tags=["favorites"])
app.include_router(collections.router, prefix="/collections", tags=["collections"])
