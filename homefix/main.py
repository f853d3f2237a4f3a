"""HomeFix API -- Main Application Entry Point

Creates the FastAPI application, configures logging and CORS middleware,
and registers all API route modules under the /api/v1 prefix.

Run with::

    uvicorn homefix.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from homefix.core.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup:
      - Configure root logging from ``settings.log_level``.

    Shutdown:
      - Dispose of the database engine's connection pool.
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("%s %s starting", settings.app_name, settings.app_version)

    yield

    from homefix.api.deps import engine

    await engine.dispose()


# ---------------------------------------------------------------------------
# Application instance
# ---------------------------------------------------------------------------

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health():
    """Lightweight health check for load balancers and readiness probes."""
    return {"status": "ok", "version": settings.app_version}


# ---------------------------------------------------------------------------
# Register API route modules
# ---------------------------------------------------------------------------
# Each router already defines its own prefix (e.g. /requests, /assignments)
# and tags.  We mount them under the shared /api/v1 prefix so the full paths
# become /api/v1/requests, /api/v1/assignments, etc.
# ---------------------------------------------------------------------------

from homefix.api.routes import (  # noqa: E402
    assignments,
    categories,
    notifications,
    providers,
    requests,
)

_prefix = settings.api_v1_prefix

app.include_router(assignments.router, prefix=_prefix)
app.include_router(requests.router, prefix=_prefix)
app.include_router(providers.router, prefix=_prefix)
app.include_router(categories.router, prefix=_prefix)
app.include_router(notifications.router, prefix=_prefix)
