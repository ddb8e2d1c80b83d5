"""TaskFlow ASGI app: middleware, routers and health check."""
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from taskflow.core.config import settings
from taskflow.core.structured_logging import build_log_context, configure_logging
from taskflow.db.session import engine

configure_logging()
logger = logging.getLogger("taskflow.request")

# ============================================================================
# Sentry (only when a DSN is set outside dev)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # Message bodies and phone numbers stay out of Sentry
    )
    logging.info("Sentry enabled for %s", settings.ENV)

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from taskflow.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    from taskflow.services.channel_manager import channel_manager

    await channel_manager.shutdown()


app = FastAPI(
    title="TaskFlow API",
    description="Task management with WhatsApp message ingestion",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS for the browser frontend; credentials carry the session cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, route, status and duration; never bodies."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    logger.info(
        "%s %s -> %s",
        request.method,
        request.url.path,
        response.status_code,
        extra=build_log_context(
            request_id=request_id,
            route=getattr(route, "path", None),
            method=request.method,
            status_code=response.status_code,
            duration_ms=(time.perf_counter() - started) * 1000,
        ),
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ============================================================================
# Routers
# ============================================================================

from taskflow.routers import admin, auth, channel, messages, notifications, stats, tasks, webhooks

# Accounts and sessions
app.include_router(auth.router, prefix="/auth", tags=["auth"])

app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
app.include_router(stats.router, prefix="/stats", tags=["stats"])

# WhatsApp messages, connection lifecycle and inbound webhooks
app.include_router(messages.router, prefix="/messages", tags=["messages"])
app.include_router(channel.router, prefix="/channel", tags=["channel"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

# In-app notifications
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])

# User management (admin only)
app.include_router(admin.router, prefix="/admin", tags=["admin"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Runs SELECT 1 against the database and reports env and version.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
