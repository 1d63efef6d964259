"""
Podiatry Scheduler API

FastAPI application entry point that ties all components together.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from podiatry_scheduler import __version__
from podiatry_scheduler.api.routes import appointments, commands, health, webhooks
from podiatry_scheduler.config import settings
from podiatry_scheduler.infra.claude import ClaudeClient
from podiatry_scheduler.infra.database import close_db, init_db
from podiatry_scheduler.infra.notifications import get_whatsapp_sender
from podiatry_scheduler.infra.redis import RedisClient


def setup_logging() -> None:
    """Configure logging based on environment."""
    log_level = logging.DEBUG if settings.debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # === STARTUP ===
    setup_logging()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")

    health.set_start_time()

    # Create tables in development only; production schemas use migrations
    if settings.is_development and not settings.use_memory_store:
        try:
            await init_db()
            logger.info("Database tables initialized")
        except Exception as e:
            logger.warning(f"Database init skipped: {e}")

    # Booking locks degrade to in-process locks without Redis
    redis = await RedisClient.get_client()
    if redis:
        logger.info("Redis connection established")
    else:
        logger.warning("Redis unavailable - professional locks are process-local")

    logger.info(f"Application ready at http://{settings.host}:{settings.port}")

    yield

    # === SHUTDOWN ===
    logger.info("Shutting down application...")

    await get_whatsapp_sender().close()

    if ClaudeClient._instance is not None:
        await ClaudeClient._instance.close()
        ClaudeClient.reset_instance()

    await RedisClient.close()

    await close_db()
    logger.info("Database connections closed")

    logger.info("Shutdown complete")


app = FastAPI(
    title="Podiatry Scheduler API",
    description="""
    Appointment scheduling for a podiatry clinic.

    ## Channels
    - Staff dictation (`/commands`)
    - Staff form (`/appointments`)
    - Email and WhatsApp webhooks (`/webhooks`)

    Every channel goes through the same availability resolver, so a slot
    is only booked when a qualified professional is working and free.
    """,
    version=__version__,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "detail": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without non-serializable context objects."""
    return [
        {key: value for key, value in error.items() if key in ("loc", "msg", "type")}
        for error in exc.errors()
    ]


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    # Don't expose internal errors in production
    detail = str(exc) if settings.is_development else "Internal server error"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": detail,
        },
    )


@app.middleware("http")
async def request_timing_middleware(request: Request, call_next):
    """Log request duration in debug mode."""
    start_time = time.time()
    try:
        return await call_next(request)
    finally:
        if settings.debug:
            duration = time.time() - start_time
            logger.debug(
                f"{request.method} {request.url.path} "
                f"completed in {duration:.3f}s"
            )


app.include_router(health.router)
app.include_router(commands.router)
app.include_router(appointments.router)
app.include_router(webhooks.router)


@app.get("/", tags=["Root"])
async def root() -> dict:
    """
    Root endpoint.

    Returns basic API information.
    """
    return {
        "name": settings.app_name,
        "version": __version__,
        "status": "running",
        "environment": settings.app_env,
        "docs": "/docs" if settings.is_development else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "podiatry_scheduler.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
