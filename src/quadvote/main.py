# src/quadvote/main.py
"""ASGI application for the quadvote service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from quadvote import __version__
from quadvote.api.v1 import (
    credits_router,
    issues_router,
    notifications_router,
    system_router,
    votes_router,
)
from quadvote.core.settings import settings
from quadvote.services.replenish_worker import ReplenishWorker

logger = logging.getLogger(__name__)

API_TITLE = "QuadVote API"
API_DESCRIPTION = "Quadratic voting credit ledger for local issues"
API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the replenish worker for the lifetime of the app when enabled."""
    worker: ReplenishWorker | None = None
    if settings.replenish_worker_enabled:
        worker = ReplenishWorker()
        await worker.start()
        logger.info(
            "Replenish worker started, sweeping every %.0fs",
            settings.replenish_worker_interval_seconds,
        )
    app.state.replenish_worker = worker
    try:
        yield
    finally:
        if worker is not None:
            await worker.stop()


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)
app.add_middleware(GZipMiddleware)

for router in (credits_router, votes_router, issues_router, notifications_router, system_router):
    app.include_router(router, prefix=API_PREFIX)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "name": API_TITLE,
        "version": __version__,
        "description": API_DESCRIPTION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("quadvote.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
