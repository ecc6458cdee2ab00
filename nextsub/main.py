from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

from nextsub.core.config import settings, app_logger
from nextsub.core.db import AsyncSessionLocal, dispose_db
from nextsub.core.dependencies import get_async_session
from nextsub.core.exceptions.handlers import (
    admin_session_exception_handler,
    authentication_exception_handler,
    bad_request_exception_handler,
    database_exception_handler,
    exception_schema,
    forbidden_exception_handler,
    general_exception_handler,
    notification_exception_handler,
    rate_limit_exception_handler,
)
from nextsub.core.exceptions.types import (
    AdminSessionException,
    AppException,
    AuthenticationException,
    BadRequestException,
    DatabaseException,
    ForbiddenException,
    NotificationException,
    RateLimitExceededException,
)
from nextsub.core.routers import admin_router
from nextsub.core.services import (
    AuditLogger,
    BrevoService,
    EmailManagerService,
    RedisService,
    Renderer,
)
from nextsub.infrastructure.messaging import start_consumers
from nextsub.infrastructure.messaging.connection import close_connection


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_logger.info("Starting application...")
    consumer_connection = None

    # Redis is only needed for shared rate-limit counters
    if settings.RATE_LIMIT_BACKEND == "redis":
        app_logger.info("Initializing Redis service...")
        await RedisService.init(settings.REDIS_URL)
        app_logger.info("Redis service initialized successfully.")
    else:
        app_logger.info("Using in-memory rate limiting; Redis not initialized.")

    # Initialize audit logger
    app_logger.info("Initializing audit logger...")
    AuditLogger.init(AsyncSessionLocal)
    app_logger.info("Audit logger initialized successfully.")

    # Initialize Brevo Service
    app_logger.info("Initializing Brevo service...")
    await BrevoService.init(
        api_key=settings.BREVO_API_KEY,
        sender_email=settings.BREVO_SENDER_EMAIL,
        sender_name=settings.BREVO_SENDER_NAME,
    )
    app_logger.info("Brevo service initialized successfully.")

    # Initialize template renderer
    app_logger.info("Initializing template renderer...")
    Renderer.initialize()
    EmailManagerService.init()
    app_logger.info("Template renderer initialized successfully.")

    # Start message consumers (only if enabled)
    if settings.ENABLE_MESSAGING:
        app_logger.info("Starting message consumers...")
        consumer_connection = await start_consumers(keep_alive=False)
        app_logger.info("Message consumers started successfully.")
    else:
        app_logger.info("Messaging disabled via ENABLE_MESSAGING setting.")

    yield

    # Cleanup on shutdown
    app_logger.info("Shutting down application...")

    if consumer_connection:
        app_logger.info("Closing message consumer connection...")
        await consumer_connection.close()
        app_logger.info("Message consumer connection closed successfully.")

    # Publisher connection, opened lazily by the first queued code
    await close_connection()

    app_logger.info("Flushing pending audit entries...")
    await AuditLogger.drain()

    app_logger.info("Closing Brevo service...")
    await BrevoService.aclose()

    if settings.RATE_LIMIT_BACKEND == "redis":
        app_logger.info("Closing Redis service...")
        await RedisService.aclose()
        app_logger.info("Redis service closed successfully.")

    await dispose_db()
    app_logger.info("Application shut down.")


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    debug=settings.DEBUG,
    root_path=settings.ROOT_PATH,
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    responses=exception_schema,
    root_path_in_servers=False,
    servers=[
        {
            "url": f"{settings.API_DOMAIN}",
        },
    ],
)

# Register exception handlers (order matters - more specific first)
app.add_exception_handler(RateLimitExceededException, rate_limit_exception_handler)
app.add_exception_handler(AdminSessionException, admin_session_exception_handler)
app.add_exception_handler(AuthenticationException, authentication_exception_handler)
app.add_exception_handler(ForbiddenException, forbidden_exception_handler)
app.add_exception_handler(BadRequestException, bad_request_exception_handler)
app.add_exception_handler(NotificationException, notification_exception_handler)
app.add_exception_handler(DatabaseException, database_exception_handler)
# Generic fallback
app.add_exception_handler(AppException, general_exception_handler)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(admin_router, tags=["Admin Authentication"])


@app.get("/", include_in_schema=False)
async def root(request: Request):
    base_url = request.base_url._url.rstrip("/")
    return {
        "message": f"Welcome to {settings.APP_NAME}",
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
        - Redis connectivity, when Redis backs the rate limiter
    """
    health_status = {
        "status": "ok",
        "message": f"{settings.APP_NAME} is running.",
        "checks": {
            "database": "ok",
            "redis": "ok" if settings.RATE_LIMIT_BACKEND == "redis" else "not_configured",
        },
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
        if not redis_ok:
            app_logger.error("Redis health check failed")
            health_status["checks"]["redis"] = "unhealthy"
            health_status["status"] = "degraded"

    # Return 503 if any check failed
    if health_status["status"] != "ok":
        health_status["message"] = "One or more health checks failed."
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=health_status
        )

    return health_status
