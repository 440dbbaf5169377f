"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from backoffice.core.config import settings
from backoffice.core.structured_logging import configure_logging
from backoffice.db.session import engine

configure_logging(settings.LOG_LEVEL)

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Back-office API",
    description="Quote estimation and project profitability API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Content-Disposition"],
)

# ============================================================================
# Routers
# ============================================================================

from backoffice.routers import (  # noqa: E402
    alerts,
    clients,
    estimations,
    pricing,
    projects,
    quotes,
    reports,
    tracker,
)

app.include_router(clients.router, prefix="/clients", tags=["clients"])
app.include_router(quotes.router, prefix="/quotes", tags=["quotes"])
# Mounted under /quotes: /quotes/{id}/estimations/...
app.include_router(estimations.router, prefix="/quotes", tags=["estimations"])
app.include_router(pricing.router, prefix="/pricing", tags=["pricing"])
app.include_router(projects.router, prefix="/projects", tags=["projects"])
app.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])
app.include_router(tracker.router, prefix="/tracker", tags=["tracker"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
