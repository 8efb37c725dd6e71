"""
KeepNotes Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
Why:   One factory for uvicorn and tests alike, so every test gets a fresh
       app wired to its own temp notes document and upload directory.
How:   Factory pattern: create_app(settings) returns a configured FastAPI
       instance with its own services on app.state.
Who:   uvicorn (keepnotes.main:app), the `keepnotes` console script, tests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌────────┐  │
    │  │   CORS   │→│  Req ID  │→│ Logging  │→│  GZip  │  │
    │  └──────────┘ └──────────┘ └──────────┘ └────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  /api/health  /api/notes  /api/attachments  /uploads│
    │                                                     │
    │  Exception Handlers:                                │
    │  Validation→400 │ NotFound→404 │ Storage/other→500  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, create data and upload directories
    Shutdown: log only; every write is already on disk
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from keepnotes import __version__
from keepnotes.config import Settings, settings as default_settings
from keepnotes.exceptions import (
    FileStorageError,
    KeepNotesError,
    NotFoundError,
    ValidationError,
)
from keepnotes.middleware.cors import PermissiveCORSMiddleware
from keepnotes.middleware.logging import RequestLoggingMiddleware
from keepnotes.middleware.request_id import (
    RequestIDMiddleware,
    request_id_var,
    unexpected_error_response,
)
from keepnotes.repositories.note_repository import JsonFileNoteRepository
from keepnotes.routes import attachments, health, notes, uploads
from keepnotes.services.file_service import FileService
from keepnotes.services.multipart import MultipartDecoder
from keepnotes.services.note_service import NoteService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request lines come from keepnotes.access instead
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup sequence:
        1. Setup logging
        2. Create the upload directory and the notes document
    """
    app_settings: Settings = app.state.settings
    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("KeepNotes Backend %s starting up...", __version__)

    app.state.file_service.ensure_directory()
    await app.state.note_repository.read()
    logger.info("Notes document: %s", app.state.note_repository.path)
    logger.info("Upload directory: %s", app.state.file_service.upload_dir)

    logger.info(
        "Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port
    )
    logger.info("=" * 60)

    yield

    logger.info("KeepNotes Backend shutting down...")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and response bodies.

    Handler hierarchy:
        ValidationError         → 400 Bad Request
        NotFoundError           → 404 Not Found
        FileStorageError        → 500 Internal Server Error
        KeepNotesError (base)   → 500 Internal Server Error
        Exception (fallback)    → 500 Internal Server Error

    Context dicts and stack traces are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        logger.info("[%s] %s: %s", rid, exc.message, exc.resource_id)
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(KeepNotesError)
    async def handle_app_error(request: Request, exc: KeepNotesError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Last resort for errors raised outside RequestIDMiddleware.

        Errors from routes and services (e.g. an unreadable notes document)
        are answered by RequestIDMiddleware, so they keep X-Request-ID and
        the CORS headers.
        """
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return unexpected_error_response(rid)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Overrides the environment-derived settings (tests pass
                      one pointing at a temp directory).
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="KeepNotes API",
        description=(
            "Sticky-note style note taking: create, search, pin, archive and "
            "delete notes with labels and file attachments."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Services ──────────────────────────────────────────────────────────
    file_service = FileService(app_settings.upload_dir, app_settings.upload_url_prefix)
    repository = JsonFileNoteRepository(app_settings.data_file)
    app.state.settings = app_settings
    app.state.file_service = file_service
    app.state.note_repository = repository
    app.state.note_service = NoteService(
        repository, file_service, default_color=app_settings.default_note_color
    )
    app.state.multipart_decoder = MultipartDecoder(file_service)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added = outermost)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        PermissiveCORSMiddleware, allow_origins=app_settings.cors_origins_list
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(notes.router)
    app.include_router(attachments.router)
    app.include_router(uploads.router, prefix=app_settings.upload_url_prefix)

    return app


def run() -> None:
    """Entry point of the `keepnotes` console script."""
    uvicorn.run(
        "keepnotes.main:app",
        host=default_settings.backend_host,
        port=default_settings.backend_port,
        log_level=default_settings.log_level.lower(),
    )


# uvicorn expects `keepnotes.main:app` to be importable
app = create_app()
