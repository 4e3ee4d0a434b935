"""
FastAPI application entry point
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from meeting_copilot.api.v1.api import api_router
from meeting_copilot.config import settings
from meeting_copilot.core import (
    ExceptionHandlingMiddleware,
    RequestLoggingMiddleware,
    api_logger,
    register_exception_handlers,
    setup_logging,
)
from meeting_copilot.core.live_store import LiveMeetingStore
from meeting_copilot.db.database import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    api_logger.info(f"Starting {settings.app_name}...")

    if app.state.init_database:
        try:
            await init_db()
        except Exception as e:
            api_logger.error(f"Failed to initialize database: {e}")
            raise
        api_logger.info("Database initialized successfully")

    api_logger.info(f"{settings.app_name} started successfully")

    yield

    live_count = len(app.state.live_store)
    api_logger.info(f"Shutting down {settings.app_name}, dropping {live_count} live meetings")


def create_app(
    live_store: Optional[LiveMeetingStore] = None,
    init_database: bool = True,
) -> FastAPI:
    """Build the application with its own live meeting store."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Live meeting transcription, suggestions and summaries",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.init_database = init_database
    # An empty store is falsy (it defines __len__)
    if live_store is None:
        live_store = LiveMeetingStore(
            max_entries=settings.live_store_max_entries,
            ttl_seconds=settings.live_store_ttl_seconds,
        )
    app.state.live_store = live_store

    # Order matters: the last middleware added runs first
    app.add_middleware(ExceptionHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    if not settings.blob_storage_enabled:
        app.mount("/files", StaticFiles(directory=settings.upload_dir), name="files")

    @app.get("/")
    async def root():
        return {
            "message": f"{settings.app_name} is running",
            "version": settings.app_version,
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": settings.app_version,
            "live_meetings": len(app.state.live_store),
        }

    return app


setup_logging()

app = create_app()
