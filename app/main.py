"""
Relationship Coaching API - Main Application
============================================

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

from app.config import settings
from app.db.session import init_db, close_db
from app.services.cache import init_redis, close_redis
from app.core.errors import setup_exception_handlers

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# =============================================================================
# New Relic Transaction Enrichment Middleware (Raw ASGI)
# =============================================================================

class NewRelicTransactionMiddleware:
    """
    Raw ASGI middleware that enriches every New Relic transaction with
    custom attributes for filtering, alerting, and dashboarding.

    Uses raw ASGI instead of BaseHTTPMiddleware so the route handler runs
    in the same task and New Relic's contextvars-based spans (Redis, DB,
    Gemini, Stripe) stay attached to the transaction.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500  # default until we capture the real one

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
                # Route pattern (e.g. "/api/v1/relationships/{relationship_id}") for grouping
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


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of the database engine and Redis client.
    """
    logger.info("Starting Relationship Coaching API (%s)", settings.ENVIRONMENT)

    if settings.auth_disabled:
        logger.warning(
            "Authentication is DISABLED (DEV_AUTH_DISABLED=true); "
            "all requests run as the development user"
        )

    # Continue startup even if a backend fails (for health checks)
    try:
        await init_db()
    except Exception as e:
        logger.error("Database connection failed: %s", e)

    try:
        await init_redis()
    except Exception as e:
        logger.error("Redis connection failed: %s", e)

    yield

    logger.info("Shutting down Relationship Coaching API")
    await close_db()
    await close_redis()


# Create FastAPI application
app = FastAPI(
    title="Relationship Coaching API",
    description="""
## Relationship Coaching Application Backend

Journaling, check-ins and AI coaching for the relationships in a user's life.

### Features
- **Journal & Check-ins**: Private entries with background AI analysis
- **Relationships**: Shared relationships with partner suggestions routed between members
- **Insights & Dashboard**: Ranked insights, relationship cards and connection health
- **Cycle Tracking**: Phase prediction with partner-facing suggestions
- **Premium**: Stripe subscriptions unlocking partner suggestions and analytics

### Rate Limits
- Read endpoints: 100 requests/minute
- Creation endpoints: 30 requests/minute
- AI generation endpoints: 10 requests/minute
- Billing endpoints: 10 requests/minute
    """,
    version=API_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
    responses={
        400: {"description": "Validation error"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not a member or feature locked"},
        404: {"description": "Resource not found"},
        409: {"description": "Resource conflict"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Internal server error"},
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

    Returns the current status of the API.
    """
    return {
        "status": "healthy",
        "version": API_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/", tags=["Health"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Relationship Coaching API",
        "version": API_VERSION,
        "docs": "/docs" if settings.is_development else "Disabled in production",
    }


# =============================================================================
# API Routes
# =============================================================================

from app.api.v1 import profile
app.include_router(profile.router, prefix="/api/v1/profile", tags=["Profile"])

from app.api.v1 import journal, checkins, cycle
app.include_router(journal.router, prefix="/api/v1/journal", tags=["Journal"])
app.include_router(checkins.router, prefix="/api/v1/checkins", tags=["Check-ins"])
app.include_router(cycle.router, prefix="/api/v1/cycle", tags=["Cycle"])

from app.api.v1 import relationships, onboarding
app.include_router(relationships.router, prefix="/api/v1/relationships", tags=["Relationships"])
app.include_router(onboarding.router, prefix="/api/v1/onboarding", tags=["Onboarding"])

from app.api.v1 import insights, partner_suggestions, dashboard, scores
app.include_router(insights.router, prefix="/api/v1/insights", tags=["Insights"])
app.include_router(partner_suggestions.router, prefix="/api/v1/partner-suggestions", tags=["Partner Suggestions"])
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])
app.include_router(scores.router, prefix="/api/v1/scores", tags=["Scores"])

from app.api.v1 import premium, stripe_billing, webhooks
app.include_router(premium.router, prefix="/api/v1/premium", tags=["Premium"])
app.include_router(stripe_billing.router, prefix="/api/v1/stripe", tags=["Stripe"])
app.include_router(webhooks.router, prefix="/api/v1/webhooks", tags=["Webhooks"])

from app.api.v1 import jobs, account
app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["Scheduled Jobs"])
app.include_router(account.router, prefix="/api/v1/account", tags=["Account"])
