"""
Notekeeper AI — Application Entry Point

FastAPI application for note enrichment (classification, extraction,
embedding) and retrieval-augmented answers over a user's own notes.

Start locally:
    uvicorn notekeeper.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from notekeeper import __version__
from notekeeper.api.v1.ai import router as ai_router
from notekeeper.api.v1.notes import router as notes_router
from notekeeper.core.config import settings
from notekeeper.core.database import dispose_engine, get_engine
from notekeeper.core.exceptions import register_exception_handlers
from notekeeper.core.logging import setup_logging
from notekeeper.events import EventDispatcher, set_dispatcher
from notekeeper.services.processor import build_note_processor

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        1. Validate database connectivity.
        2. Start the note event dispatcher.

    Shutdown:
        1. Drain queued note events and stop the workers.
        2. Dispose database engine.
    """
    logger.info("Starting %s...", settings.PROJECT_NAME)

    engine = get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except Exception:
        logger.exception("Database connection failed")
        raise

    processor = build_note_processor()
    dispatcher = EventDispatcher(processor.handle, workers=settings.PROCESSOR_WORKERS)
    dispatcher.start()
    set_dispatcher(dispatcher)
    app.state.dispatcher = dispatcher

    yield

    # Shutdown
    set_dispatcher(None)
    await dispatcher.stop()
    await dispose_engine()
    logger.info("%s shutdown complete", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Note classification, embedding and question answering over notes.",
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(notes_router, prefix="/api/v1/notes", tags=["Notes"])
app.include_router(ai_router, prefix="/api/v1", tags=["AI"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check for load balancers and orchestrators."""
    return {
        "status": "ok",
        "service": "notekeeper-ai",
        "environment": os.getenv("ENVIRONMENT", "local"),
    }
