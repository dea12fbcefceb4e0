"""
Page builder FastAPI application.

Entry point for the page persistence API and live page serving.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from builder.kernel.postgres_storage import PostgresPageStorage
from builder.kernel.storage import HttpPageStorage, MemoryStorage

from backend import db
from backend.config import settings
from backend.routes import pages as pages_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Picks the page storage once at startup:
    - Postgres when DATABASE_URL is set
    - the remote page API when PAGE_API_URL is set
    - in-memory otherwise (development and tests)
    A storage already placed on app.state is left alone.
    """
    if getattr(app.state, "page_storage", None) is None:
        if settings.DATABASE_URL:
            app.state.page_storage = PostgresPageStorage(await db.init_pool())
            logger.info("Page storage: postgres")
        elif settings.PAGE_API_URL:
            app.state.page_storage = HttpPageStorage(settings.PAGE_API_URL, settings.PAGE_API_TOKEN or None)
            logger.info("Page storage: %s", settings.PAGE_API_URL)
        else:
            app.state.page_storage = MemoryStorage()
            logger.info("Page storage: in-memory")

    yield

    await db.close_pool()
    logger.info("Page storage closed")


app = FastAPI(
    title="Page Builder",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)
app.state.page_storage = None

# Register routes
app.include_router(pages_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
