"""Waypoint API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly, one router per resource
    - Global error handlers map WaypointError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database connection verified on startup; the process exits if it never comes up

Design Decisions:
    - Lifespan over @app.on_event: cleanup runs in the same context as startup
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from waypoint.api.error_handlers import register_error_handlers
from waypoint.api.routes import admin, exploration, health, places
from waypoint.config import get_settings
from waypoint.infrastructure.database import init_db
from waypoint.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    await manager.connect_with_retry(
        attempts=settings.database_connect_attempts,
        delay_seconds=settings.database_connect_retry_delay_seconds,
    )
    logger.info("Waypoint API started")
    yield
    logger.info("Waypoint API shutting down")
    await manager.dispose()


app = FastAPI(title="Waypoint API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(exploration.router)
app.include_router(places.router)
app.include_router(admin.router)

register_error_handlers(app)
