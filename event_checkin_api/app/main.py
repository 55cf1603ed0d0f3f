"""
Main entrypoint for the Event Check-in API.

This module assembles the FastAPI application, sets up logging and
includes versioned routers.  The ``create_app`` function builds and
configures the app, which is then instantiated at module import time
as ``app``, e.g.::

    uvicorn event_checkin_api.app.main:app --reload
"""

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .core.config import settings
from .core.logging_config import setup_logging
from .api.v1.router import router as v1_router
from .core.db import init_db
from .services.email_service import EmailService
from .services.upload_service import PUBLIC_PREFIX


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Logging is configured first so that everything imported or started
    afterwards can log.  The database is migrated on startup.
    """
    setup_logging(settings.log_level, settings.log_file or None)
    logger = logging.getLogger(__name__)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)

    app.include_router(v1_router, prefix="/api/v1")

    # Uploaded images; the directory is created on startup.
    app.mount(
        PUBLIC_PREFIX,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="attached_assets",
    )

    @app.on_event("startup")
    async def startup_event() -> None:
        init_db()
        Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
        EmailService.log_configuration()
        logger.info("%s %s started", settings.project_name, settings.api_version)

    return app


app = create_app()
