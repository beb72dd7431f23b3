"""
Explore Feed API — entry point.

Startup sequence:
  1. Configure logging and OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Expose Prometheus /metrics endpoint

Run locally:
  python -m clipfeed.main      (or the `clipfeed-api` console script)
"""
import logging

import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from clipfeed.config import settings
from clipfeed.database import engine, init_db
from clipfeed.errors import install_error_handlers
from clipfeed.telemetry import instrument_app, setup_tracing
from clipfeed.routers import explore, security

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of the database pool."""
    logger.info("Starting Explore Feed API (env=%s)", settings.environment)

    await init_db()

    logger.info("Database connected. API ready.")
    yield

    logger.info("Shutting down...")
    await engine.dispose()


app = FastAPI(
    title="Explore Feed API",
    description=(
        "Mixed explore/search feed for a short-video platform: videos, "
        "creators and sounds ranked, interleaved and paginated."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

install_error_handlers(app)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(explore.router, prefix="/explore", tags=["Explore"])
app.include_router(security.router, prefix="/security", tags=["Security"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
# Mounted at /metrics, scraped by Prometheus
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}


def run() -> None:
    uvicorn.run(
        "clipfeed.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
