"""
Collab Platform API - FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) builds the shared components, stores them on
       app.state, registers middleware, exception handlers and routers.
Who:   uvicorn (collab_api.main:app) and the test suite (create_app with
       test settings).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                     FastAPI App                          │
    │                                                          │
    │  Middleware Chain (outermost first):                     │
    │  ┌──────┐ ┌──────────┐ ┌────────────┐ ┌───────────────┐  │
    │  │ CORS │→│ Req ID   │→│ Rate Limit │→│ Logging       │  │
    │  └──────┘ └──────────┘ └────────────┘ └───────────────┘  │
    │                                                          │
    │  PipelineRoute (every endpoint):                         │
    │  ┌──────────┐ ┌────────────┐ ┌────────────────────────┐  │
    │  │ Deadline │→│ Validation │→│ Handler → Shaper       │  │
    │  └──────────┘ └────────────┘ └────────────────────────┘  │
    │                                                          │
    │  FailureTranslator: every error → failure envelope       │
    └──────────────────────────────────────────────────────────┘

app.state (constructed once, shared read-only):
    settings, logger (StructuredLogger), database (Database),
    hasher (PasswordHasher), deadline (DeadlineEnforcer),
    failure_translator (FailureTranslator), started_at
"""

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from collab_api.config import Settings, settings as default_settings
from collab_api.database import Database
from collab_api.exceptions import CollabError
from collab_api.middleware.logging import RequestLoggingMiddleware
from collab_api.middleware.rate_limit import RateLimitMiddleware
from collab_api.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from collab_api.pipeline.deadline import DeadlineEnforcer
from collab_api.pipeline.failures import FailureTranslator
from collab_api.routes import health, users
from collab_api.services.password_hasher import PasswordHasher
from collab_api.structured_logger import CorrelationIdFilter, StructuredLogger

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging for the whole process.

    Every record passes through CorrelationIdFilter, so module loggers
    print the current request's correlation ID. StructuredLogger records
    arrive as JSON in %(message)s.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, announce the service.
    Shutdown: dispose the database engine (closes pooled connections).
    """
    app_settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings.log_level)
    logger.info(
        "%s %s starting (environment=%s)",
        app_settings.app_name,
        app_settings.app_version,
        app_settings.environment,
    )
    logger.info("API prefix: %s", app_settings.api_prefix)
    logger.info("Request timeout: %.1fs", app_settings.request_timeout_seconds)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Shutting down...")
    await app.state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Route framework-level exceptions into the Failure Translator.

    Endpoint failures are translated inside PipelineRoute; these handlers
    cover what the router raises before an endpoint runs (unknown path,
    wrong method) and anything raised outside a PipelineRoute.
    """
    translator: FailureTranslator = app.state.failure_translator

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return await translator.translate(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return await translator.translate(request, exc)

    @app.exception_handler(CollabError)
    async def handle_collab_error(request: Request, exc: CollabError):
        return await translator.translate(request, exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        return await translator.translate(request, exc)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to build the app from; defaults to the
            environment-derived module settings.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="Collab Platform API",
        description=(
            "User registration, login and profile API for the collaboration platform. "
            "Every response uses the success/failure envelope and carries X-Request-ID."
        ),
        version=app_settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Shared Components ─────────────────────────────────────────────────
    structured_logger = StructuredLogger(environment=app_settings.environment)

    app.state.settings = app_settings
    app.state.logger = structured_logger
    app.state.database = Database(app_settings)
    app.state.hasher = PasswordHasher(rounds=app_settings.password_hash_rounds)
    app.state.deadline = DeadlineEnforcer(timeout_seconds=app_settings.request_timeout_seconds)
    app.state.failure_translator = FailureTranslator(
        structured_logger,
        environment=app_settings.environment,
    )
    app.state.started_at = time.time()

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = outermost. Execution order:
    # CORS → RequestID → RateLimit → Logging → router

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(
        RateLimitMiddleware,
        limit=app_settings.rate_limit_requests,
        window=app_settings.rate_limit_window,
    )

    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router, prefix=app_settings.api_prefix)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `collab_api.main:app` to be importable
app = create_app()
