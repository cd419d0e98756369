"""
Gather API - Main Application
=============================

FastAPI application entry point with middleware configuration
and route registration.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import newrelic.agent

# Configure logging for the application (root logger defaults to WARNING)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gather.config import settings
from gather.core.errors import setup_exception_handlers
from gather.db.session import close_db, init_db
from gather.services.cache import close_redis, init_redis

logger = logging.getLogger(__name__)


# =============================================================================
# New Relic Transaction Enrichment Middleware (Raw ASGI)
# =============================================================================

class NewRelicTransactionMiddleware:
    """
    Raw ASGI middleware that adds custom attributes to every New Relic
    transaction.

    Raw ASGI keeps the route handler in the same task, so New Relic's
    contextvars-based spans for Redis, DB and Anthropic calls stay attached
    to the request.

    Captures: response status, latency, HTTP method, route pattern, client
    IP and user ID (``demo-user`` for demo visitors).
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500  # until the real one is sent

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration_ms = (time.perf_counter() - start) * 1000

            txn = newrelic.agent.current_transaction()
            if txn:
                # Route pattern (e.g. "/api/v1/tasks/{task_id}") for grouping
                route = scope.get("route")
                route_path = route.path if route else scope.get("path", "unknown")

                client = scope.get("client")
                client_ip = client[0] if client else "unknown"

                newrelic.agent.add_custom_attributes([
                    ("http.method", scope.get("method", "")),
                    ("http.route", route_path),
                    ("http.status_code", status_code),
                    ("http.duration_ms", round(duration_ms, 2)),
                    ("http.client_ip", client_ip),
                    ("environment", settings.ENVIRONMENT),
                ])

                # Set by the auth dependencies
                state = scope.get("state")
                user_id = state.get("user_id") if isinstance(state, dict) else getattr(state, "user_id", None)
                if user_id:
                    newrelic.agent.add_custom_attribute("enduser.id", str(user_id))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Opens the database pool and Redis client on startup and closes them on
    shutdown. Startup continues if either is unreachable so /health still
    answers.
    """
    logger.info("Starting Gather API...")

    if settings.auth_disabled:
        logger.warning("Authentication is DISABLED (DEV_AUTH_DISABLED=true); all requests use the dev profile")
    if not settings.ai_configured:
        logger.warning("ANTHROPIC_API_KEY is not set; AI endpoints will return 503")
    if not settings.search_configured:
        logger.info("TAVILY_API_KEY is not set; web search is disabled")

    try:
        await init_db()
    except Exception as e:
        logger.error("Database connection failed: %s", e)

    try:
        await init_redis()
    except Exception as e:
        logger.error("Redis connection failed: %s", e)

    yield

    logger.info("Shutting down Gather API...")
    await close_db()
    await close_redis()


# Create FastAPI application
app = FastAPI(
    title="Gather API",
    description="""
## Gather Backend

Task capture and follow-through for people with ADHD.

### Features
- **Capture**: Clarifying questions, then researched, actionable steps
- **Tasks and habits**: Steps, streaks, snoozing and energy levels
- **Chat**: Ask about a task, with web-sourced answers
- **Rewards**: Points, levels and a growing garden, with no penalties
- **Demo mode**: Try the AI features without an account (`X-Demo-Mode: true`)

### Rate Limits
- Creation endpoints: 30 requests/minute
- Read endpoints: 100 requests/minute
- AI (demo): 10 chat / 5 breakdown per hour
- AI (free): 5 chat / 3 breakdown per day
- AI (pro): 100 chat / 50 breakdown per hour
    """,
    version="1.0.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Permission denied"},
        404: {"description": "Resource not found"},
        409: {"description": "Resource conflict"},
        422: {"description": "Validation error"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Internal server error"},
        503: {"description": "AI service unavailable"},
    },
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# New Relic transaction enrichment (adds custom attrs to every transaction)
app.add_middleware(NewRelicTransactionMiddleware)

# Setup exception handlers
setup_exception_handlers(app)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns the current status of the API and which integrations are set up.
    """
    return {
        "status": "healthy",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "aiConfigured": settings.ai_configured,
        "searchConfigured": settings.search_configured,
    }


@app.get("/", tags=["Health"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Gather API",
        "version": "1.0.0",
        "docs": "/docs" if settings.is_development else "Disabled in production",
    }


# =============================================================================
# API Routes
# =============================================================================

from gather.api.v1 import profile
app.include_router(profile.router, prefix="/api/v1/profile", tags=["Profile"])

from gather.api.v1 import tasks
app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["Tasks"])

from gather.api.v1 import habits, mood
app.include_router(habits.router, prefix="/api/v1/habits", tags=["Habits"])
app.include_router(mood.router, prefix="/api/v1/mood", tags=["Mood"])

from gather.api.v1 import rewards
app.include_router(rewards.router, prefix="/api/v1/rewards", tags=["Rewards"])

from gather.api.v1 import reflections
app.include_router(reflections.router, prefix="/api/v1/reflections", tags=["Reflections"])

from gather.api.v1 import ai, capture
app.include_router(ai.router, prefix="/api/v1/ai", tags=["AI"])
app.include_router(capture.router, prefix="/api/v1/capture", tags=["Capture"])

from gather.api.v1 import task_intelligence
app.include_router(task_intelligence.router, prefix="/api/v1/task-intelligence", tags=["Task Intelligence"])

from gather.api.v1 import demo
app.include_router(demo.router, prefix="/api/v1/demo", tags=["Demo"])
