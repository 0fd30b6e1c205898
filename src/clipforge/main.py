"""Main entry point for the ClipForge server."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from clipforge import __version__
from clipforge.api.deps import get_export_manager, init_services
from clipforge.api.routes import exports, health, media, timeline
from clipforge.config import settings
from clipforge.errors import (
    ClipForgeError,
    ExportInProgressError,
    ExportIOError,
    ExportValidationError,
    ExternalToolError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# First match wins, so subclasses come before their bases.
_STATUS_CODES: list[tuple[type[ClipForgeError], int]] = [
    (NotFoundError, 404),
    (ValidationError, 422),
    (ExportValidationError, 422),
    (ExportInProgressError, 409),
    (ExportIOError, 400),
    (ExternalToolError, 502),
]


async def clipforge_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate domain errors into HTTP responses."""
    status_code = 500
    for error_type, code in _STATUS_CODES:
        if isinstance(exc, error_type):
            status_code = code
            break
    body: dict[str, str] = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, ValidationError):
        body["reason"] = exc.reason
    if status_code == 500:
        logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize resources on startup, cancel running exports on shutdown."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_services(settings)
    yield
    manager = get_export_manager()
    active = manager.active_job()
    if active is not None:
        logger.info("Shutting down, cancelling export %s", active.id)
        await manager.cancel_export(active.id)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="ClipForge",
        description="Multi-track timeline editing with ffmpeg export",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(ClipForgeError, clipforge_error_handler)

    # Include API routes
    app.include_router(health.router)
    app.include_router(media.router)
    app.include_router(timeline.router)
    app.include_router(exports.router)
    app.include_router(exports.ws_router)

    return app


app = create_app()


def main() -> None:
    """Run the application."""
    uvicorn.run(
        "clipforge.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
