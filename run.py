"""Entry point for the Event Check-in API.

Runs the FastAPI application under Uvicorn.  Intended to be executed
from the project root, for example under Docker, where you only
specify a single Python file to run.

Host and port are read from ``API_HOST`` and ``API_PORT`` (defaults
``0.0.0.0`` and ``8000``); see ``event_checkin_api/app/core/config.py``
for the remaining variables.

Usage:
    python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from event_checkin_api.app.core.config import settings
from event_checkin_api.app.main import app


async def run_api() -> None:
    """Start the API server using Uvicorn."""
    config = Config(
        app=app,
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


async def main() -> None:
    try:
        await run_api()
    except Exception:
        logging.exception("API server stopped with an error")
        raise


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
