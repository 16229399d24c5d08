"""FastAPI application for the SFU dashboard backend.

Endpoints:
  POST   /sora/auth        - SFU auth webhook (always 200, publishes on allow)
  POST   /sora/event       - SFU event webhook (always 200)
  POST   /sora/session     - SFU session webhook (always 200)
  GET    /api/ssevents     - SSE push stream of ``front`` envelopes
  POST   /api/proxy        - Relay an allow-listed signaling API call
  POST   /api/recording    - Start or stop a channel recording
  GET    /health           - Health check
  GET    /metrics          - Prometheus metrics
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import StreamingResponse

import sfudash
from sfudash.api.ratelimit import limiter
from sfudash.api.routes import sfu, webhooks
from sfudash.api.stream import StreamHub
from sfudash.config import settings
from sfudash.core.bus import bus
from sfudash.core.policy import default_policy
from sfudash.exceptions import SfuDashError
from sfudash.logging_config import log_startup_info, setup_logging
from sfudash.upstream import SignalingClient

logger = logging.getLogger("sfudash")

_STARTUP_TIME: float = 0.0

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_hub = StreamHub(
    bus,
    heartbeat_interval=settings.heartbeat_interval,
    max_queue_size=settings.stream_queue_size,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _STARTUP_TIME
    _STARTUP_TIME = time.monotonic()
    setup_logging()
    log_startup_info()
    yield
    logger.info("Shutting down, closing %d stream connections", _hub.active)
    _hub.close_all()
    await app.state.signaling.aclose()
    logger.info("Shutdown complete")


_OPENAPI_TAGS = [
    {"name": "Health", "description": "Health checks and version info"},
    {"name": "Webhooks", "description": "Notifications pushed by the SFU"},
    {"name": "Stream", "description": "Server-Sent Events push channel"},
    {"name": "SFU", "description": "Signaling API relay and recording control"},
    {"name": "Metrics", "description": "Prometheus metrics endpoint"},
]

app = FastAPI(
    title="SFU Dashboard Backend",
    description="Webhook ingest, event fan-out and signaling relay for an SFU dashboard.",
    version=sfudash.__version__,
    lifespan=lifespan,
    openapi_tags=_OPENAPI_TAGS,
)

app.state.limiter = limiter
app.state.bus = bus
app.state.hub = _hub
app.state.auth_policy = default_policy()
app.state.signaling = SignalingClient(settings.sora_api_url, timeout=settings.upstream_timeout)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
@app.exception_handler(SfuDashError)
async def sfudash_error_handler(request: Request, exc: SfuDashError) -> JSONResponse:
    """Centralized handler for custom backend exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_type,
            "message": exc.message,
            "request_id": request_id,
        },
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After header on rate limit."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(
        "Rate limit exceeded: %s %s from %s",
        request.method,
        request.url.path,
        get_remote_address(request),
    )
    response = JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": str(exc.detail),
            "request_id": request_id,
        },
    )
    response.headers["Retry-After"] = "60"
    return response


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Security headers middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def security_headers_middleware(request: Request, call_next) -> Response:
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ---------------------------------------------------------------------------
# Request logging middleware (also sets request_id on state for error handler)
# ---------------------------------------------------------------------------
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    request_id = str(uuid4())[:8]
    request.state.request_id = request_id
    start = time.monotonic()
    response: Response = await call_next(request)
    elapsed_ms = round((time.monotonic() - start) * 1000, 1)
    logger.info(
        "%s %s %s %.1fms [%s]",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
        },
    )
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Prometheus metrics
# ---------------------------------------------------------------------------
from prometheus_fastapi_instrumentator import Instrumentator  # noqa: E402

_instrumentator = Instrumentator(
    excluded_handlers=["/metrics", "/api/ssevents"],
    should_respect_env_var=False,
)
_instrumentator.instrument(app).expose(app, endpoint="/metrics", tags=["Metrics"])


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"], summary="Health check")
async def health():
    uptime_s = time.monotonic() - _STARTUP_TIME if _STARTUP_TIME > 0 else 0
    return {
        "status": "ok",
        "version": sfudash.__version__,
        "uptime_seconds": round(uptime_s, 1),
        "stream_connections": _hub.active,
    }


# ---------------------------------------------------------------------------
# SSE - real-time push stream
# ---------------------------------------------------------------------------


@app.get("/api/ssevents", tags=["Stream"], summary="SSE push stream of dashboard events")
async def stream_events():
    """Server-Sent Events endpoint; one long-lived connection per dashboard."""
    return StreamingResponse(
        _hub.stream(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


app.include_router(webhooks.router)
app.include_router(sfu.router)
