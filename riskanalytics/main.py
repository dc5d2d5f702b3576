"""
GRC Risk Analytics — FastAPI Application.

Entry point for the analytics API server.
Run: uvicorn riskanalytics.main:app --host 0.0.0.0 --port 8002 --reload

Endpoints:
  - POST /api/v1/analytics/*   ← simulation, anomaly, correlation, scoring
  - GET  /health               ← liveness probe
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from riskanalytics.api.routers.analytics import router as analytics_router
from riskanalytics.config import settings
from riskanalytics.exceptions import register_exception_handlers
from riskanalytics.logconfig import configure_logging
from riskanalytics.middleware.error_handler import ErrorHandlerMiddleware
from riskanalytics.middleware.request_context import RequestContextMiddleware

configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    logger.info("risk_analytics_starting", version=settings.app_version, environment=settings.environment)
    yield
    logger.info("risk_analytics_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description=(
            "# GRC Risk Analytics\n\n"
            "Numerical core of the GRC platform: Monte Carlo scenario simulation, "
            "statistical anomaly detection, risk correlation analysis and "
            "predictive risk scoring.\n\n"
            "Stateless: records in, computed artifacts out. Persistence is the caller's job."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_tags=[
            {"name": "health", "description": "Liveness probe"},
            {"name": "analytics", "description": "Simulation, anomaly, correlation, scoring"},
        ],
    )

    # ── Middleware (last added = outermost) ──
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)

    register_exception_handlers(app)

    app.include_router(analytics_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness probe — is the process alive?"""
        return {
            "status": "ok",
            "version": settings.app_version,
            "service": "grc-risk-analytics",
        }

    return app


app = create_app()


# ============================================================================
# DEVELOPMENT SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "riskanalytics.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
