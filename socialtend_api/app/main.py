"""
Main entrypoint for the SocialTend API.

This module assembles the FastAPI application, sets up logging and
middleware and includes the versioned routers.  The ``create_app``
function builds and configures the app, which is then instantiated at
module import time as ``app``, e.g.::

    uvicorn socialtend_api.app.main:app --reload

The application title and version are provided via ``Settings`` from
``core.config``.
"""

import logging

from fastapi import FastAPI

from .core.config import settings
from .core.logging_config import setup_logging
from .core.middleware import register_middleware
from .api.v1.router import router as v1_router
from .api.v1.endpoints import health
from .core.db import get_database_path, init_db


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # Initialise logging before anything else so that the routers and
    # services log through the configured handlers.
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)

    register_middleware(app)

    app.include_router(v1_router, prefix="/api/v1")
    app.include_router(health.router, prefix="/health", tags=["health"])

    @app.on_event("startup")
    async def startup_event() -> None:
        # Apply migrations at startup.  This will create the database
        # file if it does not exist and ensure all tables are up to date.
        init_db()
        logging.getLogger(__name__).info("Database ready at %s", get_database_path())

    return app


app = create_app()
