"""
SERVER - Process entry point

Loads settings, bootstraps storage and serves the app with uvicorn.
Storage problems stop the process before it starts listening.

Run with:
    user-service
    python -m app.server
    uvicorn --factory app.server:build_app
"""

import sys
import uvicorn
from fastapi import FastAPI
from app.config import load_settings
from app.db import bootstrap
from app.main import create_app
from app.utils import setup_logging, get_logger

logger = get_logger(__name__)


def build_app() -> FastAPI:
    """Bootstrap storage and build the app; raises StartupError on failure."""
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_json)

    result = bootstrap(settings)
    if not result.ok:
        raise result.error
    return create_app(settings, session_factory=result.session_factory)


def main() -> int:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_json)

    # STEP 1: Storage must be reachable before we accept connections
    result = bootstrap(settings)
    if not result.ok:
        logger.error(f"Startup aborted: {result.error}")
        return 1

    # STEP 2: Serve
    app = create_app(settings, session_factory=result.session_factory)
    logger.info(f"Server starting on {settings.server_host}:{settings.server_port}")
    try:
        uvicorn.run(app, host=settings.server_host, port=int(settings.server_port), log_config=None)
    finally:
        result.engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
