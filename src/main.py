"""streakboard - community challenge tracker with daily logs and a points leaderboard."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import DEV_SECRET_KEY, constants, settings
from src.core.db_client import DatabaseError, init_db
from src.core.errors import NotSupportedError, PermissionDeniedError
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.api_router import error_response, router as api_router
from src.services import auth_service


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Refuse to start a production deployment with a missing or default signing secret.

    Raises:
        SystemExit: If validation fails
    """
    if not settings.is_production:
        return

    try:
        secret_key = settings.require_credential("secret_key", "Session signing")
        if secret_key == DEV_SECRET_KEY:
            raise ValueError("SECRET_KEY still holds the development default. Set a unique secret for production.")
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so startup logs are captured
    configure_logfire()
    validate_startup_configuration()

    await init_db()
    logger.info("Database initialized")

    user = await auth_service.restore_session()
    logger.info("startup_session", extra={"restored": user is not None})
    yield


app = FastAPI(
    title="streakboard",
    description="Community challenge tracker with daily logs and a points leaderboard",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

app.include_router(api_router)

for exception_class in (DatabaseError, NotSupportedError, PermissionDeniedError):
    app.add_exception_handler(exception_class, error_response)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)
