"""
Request Gatekeeper API.

FastAPI application that admits or denies every request through the
admission pipeline: rate limits, abusive content, suspicious activity and
blocks.

Run with ``uvicorn gatekeeper.main:create_app --factory``.
"""

import asyncio
import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatekeeper.config import Settings, get_settings, validate_security_settings
from gatekeeper.middleware.admission import AdmissionMiddleware
from gatekeeper.routers.admin import router as admin_router
from gatekeeper.routers.emergency import EMERGENCY_UNBLOCK_PATH
from gatekeeper.routers.emergency import router as emergency_router
from gatekeeper.routers.submit import SUBMIT_MAX_REQUESTS, SUBMIT_PATH, SUBMIT_WINDOW_MS
from gatekeeper.routers.submit import router as submit_router
from gatekeeper.services.container import GatekeeperServices

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("gatekeeper")


async def _sweep_expired_state(services: GatekeeperServices, interval: float) -> None:
    """Periodically drop expired rate records and idle request windows."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = services.sweep()
        except Exception:
            logger.exception("State sweep failed")
            continue
        if removed:
            logger.debug("Sweep removed %d expired entries", removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    services: GatekeeperServices = app.state.services
    validate_security_settings(services.settings)

    sweeper = asyncio.create_task(
        _sweep_expired_state(services, services.settings.rate_limit_cleanup_interval_seconds)
    )
    logger.info(
        "Gatekeeper started (%s), data directory %s",
        services.settings.environment,
        services.settings.data_dir,
    )
    yield
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper


# --- Middleware ---


async def add_request_id(request: Request, call_next):
    """Add a unique request ID to each request and log its outcome."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s %d %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - start) * 1000,
    )
    return response


# --- Exception Handlers ---


def _sanitize_error_detail(error: dict[str, Any]) -> dict[str, Any]:
    """Sanitize Pydantic error detail to be JSON-serializable."""
    sanitized = {}
    for key, value in error.items():
        if key == "ctx":
            # Context may contain non-serializable objects like ValueError
            sanitized[key] = {k: str(v) for k, v in value.items()} if isinstance(value, dict) else str(value)
        elif key == "loc":
            sanitized[key] = [str(loc) for loc in value]
        elif key == "input":
            continue
        else:
            sanitized[key] = value
    return sanitized


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with consistent error format."""
    request_id = getattr(request.state, "request_id", None)

    errors = [_sanitize_error_detail(e) for e in exc.errors()]
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{field}: {msg}" if field else msg
    else:
        message = "Validation error"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": message,
                "request_id": request_id,
                "details": errors,
            }
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent error format."""
    request_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled error for %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "request_id": request_id,
            }
        },
    )


# --- Application Factory ---


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its own service container."""
    settings = settings or get_settings()
    logger.setLevel(settings.log_level.upper())

    services = GatekeeperServices(settings)
    services.rules.ensure_rule(SUBMIT_PATH, SUBMIT_MAX_REQUESTS, SUBMIT_WINDOW_MS)

    app = FastAPI(
        title="Request Gatekeeper API",
        description="Rate limiting, abuse detection and blocking in front of application routes",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        AdmissionMiddleware,
        exempt_paths=frozenset({EMERGENCY_UNBLOCK_PATH}),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_request_id)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(emergency_router)
    app.include_router(submit_router)
    app.include_router(admin_router)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, Any]:
        """
        Health check endpoint.

        Returns 200 OK with the default rate rule. Subject to the default rule.
        """
        default = services.rules.default_rule
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "rateLimit": {
                "max": default.max_requests,
                "windowMs": default.window_ms,
            },
        }

    return app
