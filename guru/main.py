"""FastAPI application — entry point, middleware, and health endpoint.

Creates the Guru Protocol backend API with:
- API versioning via router prefix (/api/v1/)
- CORS middleware (origins from settings)
- Request logging middleware (raw ASGI — no response body buffering)
- Global exception handlers (HTTPException, validation, domain errors, catch-all)
- Storage fallback chains and the scorer pool, wired from settings
- Health endpoint

Run with: uvicorn guru.main:app --reload

Tier 3 orchestration module: imports from config (Tier 2), deps (Tier 2),
hooks/* (Tier 2), scoring/bridge (Tier 2), errors and schemas (Tier 1).
"""

from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from guru.config import get_settings
from guru.errors import (
    GuruError,
    InvalidStageError,
    SessionAlreadyCompletedError,
    SessionNotFoundError,
    SessionStageMismatchError,
    StageLockedError,
    TutorialCompletedError,
    TutorialStepNotPassedError,
)
from guru.schemas import ApiError, ApiResponse

logger = logging.getLogger("guru")


# ---------------------------------------------------------------------------
# Request logging middleware (raw ASGI)
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware:
    """Logs method, path, status code, and duration for every request.

    Uses raw ASGI to avoid response body buffering. Does NOT log request or
    response bodies (stroke samples included), query params, or client IPs.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Wraps the ASGI call to measure timing and capture status code."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "?")
        path = scope.get("path", "?")
        start = time.monotonic()
        status_code = 0

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive, logging_send)
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            logger.info("%s %s %d %.1fms", method, path, status_code, duration_ms)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

# Domain error → (HTTP status, error code). First match wins.
_DOMAIN_ERRORS: tuple[tuple[type[GuruError], int, str], ...] = (
    (InvalidStageError, 422, "INVALID_STAGE"),
    (StageLockedError, 403, "STAGE_LOCKED"),
    (SessionNotFoundError, 404, "SESSION_NOT_FOUND"),
    (SessionAlreadyCompletedError, 409, "SESSION_ALREADY_COMPLETED"),
    (SessionStageMismatchError, 409, "STAGE_MISMATCH"),
    (TutorialStepNotPassedError, 409, "STEP_NOT_PASSED"),
    (TutorialCompletedError, 409, "ONBOARDING_COMPLETE"),
)


def _http_exception_response(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wraps HTTPException in ApiResponse envelope.

    If the detail is already an ApiResponse dict (from a route), returns it
    directly. Otherwise wraps in a generic error.
    """
    if isinstance(exc.detail, dict) and "ok" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse(
            ok=False,
            error=ApiError(code="HTTP_ERROR", message=str(exc.detail)),
        ).model_dump(),
    )


def _validation_error_response(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Wraps Pydantic validation errors in ApiResponse envelope.

    Returns a human-readable summary without leaking internal details.
    """
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = " -> ".join(str(part) for part in first.get("loc", []))
        msg = first.get("msg", "Validation error")
        detail = f"{loc}: {msg}" if loc else msg
    else:
        detail = "Request validation failed."

    return JSONResponse(
        status_code=422,
        content=ApiResponse(
            ok=False,
            error=ApiError(code="VALIDATION_ERROR", message=detail),
        ).model_dump(),
    )


def _guru_error_response(request: Request, exc: GuruError) -> JSONResponse:
    """Maps domain errors to their status code and error code."""
    for error_type, status_code, code in _DOMAIN_ERRORS:
        if isinstance(exc, error_type):
            break
    else:
        status_code, code = 400, "GURU_ERROR"

    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(
            ok=False,
            error=ApiError(code=code, message=str(exc)),
        ).model_dump(),
    )


def _unhandled_exception_response(request: Request, exc: Exception) -> JSONResponse:
    """Catches all unhandled exceptions — never leaks internals to client.

    Logs the full traceback server-side. Returns a generic 500 response.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=500,
        content=ApiResponse(
            ok=False,
            error=ApiError(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred.",
            ),
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def _init_storage() -> None:
    """Builds the durable → key-value → memory chains from settings.

    A durable store that can't be opened is logged and skipped; the app
    always starts, worst case on the in-memory tier alone.
    """
    from guru.api import deps
    from guru.hooks.chain import FallbackProgressChain, FallbackSessionLog
    from guru.hooks.interfaces import KeyValueStore, ProgressBackend, SessionLog
    from guru.hooks.kv import JsonFileStore, KeyValueProgressBackend
    from guru.hooks.memory import InMemoryKeyValueStore

    settings = get_settings()
    progress_tiers: list[ProgressBackend] = []
    session_tiers: list[SessionLog] = []

    if settings.database_url:
        from guru.hooks.database import SqlStore

        try:
            sql_store = SqlStore(settings.database_url)
        except Exception as exc:
            logger.warning(
                "Durable store unavailable (%s). Continuing without it.", exc
            )
        else:
            progress_tiers.append(sql_store)
            session_tiers.append(sql_store)

    kv_store: KeyValueStore
    if settings.kv_store_path:
        kv_store = JsonFileStore(settings.kv_store_path)
    else:
        kv_store = InMemoryKeyValueStore()
    progress_tiers.append(KeyValueProgressBackend(kv_store))

    progress_chain = FallbackProgressChain(progress_tiers)
    session_chain = FallbackSessionLog(session_tiers)
    deps.configure_services(progress_chain, session_chain, kv_store)

    logger.info(
        "Storage initialized: progress=%s, sessions=%s",
        " -> ".join(tier.name for tier in progress_chain.tiers),
        " -> ".join(tier.name for tier in session_chain.tiers),
    )


def _init_scorers() -> None:
    """Starts the scorer pool (threads or processes, per settings)."""
    from guru.api import deps
    from guru.scoring.bridge import ScorerBridge

    settings = get_settings()
    deps.configure_scorers(ScorerBridge.from_settings(settings))
    logger.info(
        "Scorers initialized: executor=%s, workers=%d, timeout=%.1fs",
        settings.scorer_executor,
        settings.scorer_max_workers,
        settings.scorer_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# App creation
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Creates and configures the FastAPI application."""
    settings = get_settings()

    # Configure logging level
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    application = FastAPI(
        title="Guru Protocol",
        description="Stroke scoring and mastery progression for rangoli practice",
        version="0.1.0",
    )

    # -- Middleware (order matters: last added = first executed) --

    # CORS: outermost so preflight requests are answered first
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging (raw ASGI)
    application.add_middleware(RequestLoggingMiddleware)

    # -- Exception handlers --
    application.add_exception_handler(StarletteHTTPException, _http_exception_response)
    application.add_exception_handler(RequestValidationError, _validation_error_response)
    application.add_exception_handler(GuruError, _guru_error_response)
    application.add_exception_handler(Exception, _unhandled_exception_response)

    # -- Routers --
    _register_routes(application)

    # -- Storage and scorers --
    _init_storage()
    _init_scorers()

    return application


def _register_routes(application: FastAPI) -> None:
    """Registers all API routers on the application."""
    from fastapi import APIRouter

    v1 = APIRouter(prefix="/api/v1")

    @v1.get("/health")
    async def health() -> dict[str, Any]:
        return ApiResponse(ok=True, data={"status": "healthy"}).model_dump()

    from guru.api.guru import router as guru_router

    v1.include_router(guru_router, tags=["guru"])

    application.include_router(v1)


app = create_app()
