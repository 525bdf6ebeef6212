from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from carintel.apps.vehicles.routers import fallback_router, vehicles_router
from carintel.apps.vehicles.services import VinDecoderService
from carintel.core.config import app_logger, settings
from carintel.core.db import dispose_db
from carintel.core.dependencies import get_async_session
from carintel.core.exceptions.handlers import (
    authentication_exception_handler,
    database_exception_handler,
    exception_schema,
    general_exception_handler,
    http_exception_handler,
    rate_limit_exception_handler,
    upstream_exception_handler,
    validation_exception_handler,
)
from carintel.core.exceptions.types import (
    AppException,
    AuthenticationException,
    DatabaseException,
    RateLimitExceededException,
    UpstreamServiceException,
)
from carintel.core.middleware import add_middleware
from carintel.core.services import RateLimiter, RedisService, UsageRecorder


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_logger.info("Starting application...")

    # Initialize Redis service (only needed by the distributed limiter)
    if settings.RATE_LIMIT_BACKEND == "redis":
        app_logger.info("Initializing Redis service...")
        await RedisService.init(settings.REDIS_URL)
        app_logger.info("Redis service initialized successfully.")

    # Initialize rate limiter
    app.state.rate_limiter = RateLimiter.from_settings()
    app_logger.info(
        f"Rate limiter initialized with {settings.RATE_LIMIT_BACKEND} backend."
    )

    # Start usage recorder
    app_logger.info("Starting usage recorder...")
    app.state.usage_recorder = UsageRecorder()
    app.state.usage_recorder.start()

    # Initialize VIN decoder
    app_logger.info("Initializing VIN decoder...")
    await VinDecoderService.init(
        base_url=settings.VIN_DECODER_BASE_URL,
        timeout=settings.VIN_DECODER_TIMEOUT_SECONDS,
    )
    app_logger.info("VIN decoder initialized successfully.")

    # Yield control back to the application
    yield

    # Cleanup on shutdown
    app_logger.info("Shutting down application...")

    # Drain pending usage before the database goes away
    app_logger.info("Stopping usage recorder...")
    await app.state.usage_recorder.aclose()

    app_logger.info("Closing VIN decoder...")
    await VinDecoderService.aclose()

    if settings.RATE_LIMIT_BACKEND == "redis":
        app_logger.info("Closing Redis service...")
        await RedisService.aclose()
        app_logger.info("Redis service closed successfully.")

    await dispose_db()
    app_logger.info("Database connections disposed.")


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    debug=settings.DEBUG,
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    responses=exception_schema,
)

# Register exception handlers (order matters - more specific first)
app.add_exception_handler(RateLimitExceededException, rate_limit_exception_handler)
app.add_exception_handler(AuthenticationException, authentication_exception_handler)
app.add_exception_handler(DatabaseException, database_exception_handler)
app.add_exception_handler(UpstreamServiceException, upstream_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
# Generic fallback
app.add_exception_handler(AppException, general_exception_handler)

# Request ids, last-resort 500s and usage recording
add_middleware(app)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Retry-After"],
)

# Include routers
app.include_router(vehicles_router, prefix=settings.API_PREFIX, tags=["Vehicles"])


@app.get("/", include_in_schema=False)
async def root(request: Request):
    base_url = str(request.base_url).rstrip("/")
    return {
        "message": "Welcome to Car Intel API",
        "documentations": {
            "swagger": f"{base_url}/docs",
            "redoc": f"{base_url}/redoc",
        },
        "version": settings.APP_VERSION,
    }


@app.head("/health", include_in_schema=False)
@app.get("/health")
async def health_check(session: Annotated[AsyncSession, Depends(get_async_session)]):
    """
    Health check endpoint to verify if the API is running.

    Checks:
        - Database connectivity
        - Redis connectivity (only with the Redis rate limit backend)
    """
    health_status = {
        "status": "ok",
        "message": "Car Intel API is running.",
        "checks": {"database": "ok"},
    }

    # Check database connectivity
    try:
        async with session.begin():
            result = await session.execute(text("SELECT 1"))
            if result.scalar() != 1:
                health_status["checks"]["database"] = "unhealthy"
                health_status["status"] = "degraded"
    except Exception as e:
        app_logger.error(f"Database health check failed: {e}")
        health_status["checks"]["database"] = "unhealthy"
        health_status["status"] = "degraded"

    # Check Redis connectivity
    if settings.RATE_LIMIT_BACKEND == "redis":
        redis_ok = await RedisService.ping()
        health_status["checks"]["redis"] = "ok" if redis_ok else "unhealthy"
        if not redis_ok:
            health_status["status"] = "degraded"

    # Return 503 if any check failed
    if health_status["status"] != "ok":
        raise AppException(
            "One or more health checks failed.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="service_unavailable",
            details=health_status,
        )

    return health_status


# Mounted after every other route so real endpoints match first
app.include_router(fallback_router, prefix=settings.API_PREFIX)
