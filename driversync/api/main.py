"""FastAPI application for the DriverSync API.

Provides the application factory with the driver router, blob file
serving for the local backend, and a lifespan that creates tables on
startup and drains in-flight notifications on shutdown.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from driversync import __version__
from driversync.api.routes import driver
from driversync.config import DriverSyncConfig, load_config
from driversync.db.connection import (
    create_db_engine,
    create_session_factory,
    engine as default_engine,
    init_db,
)
from driversync.services.runtime import build_runtime

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure logging to stdout for uvicorn to capture."""
    logging.basicConfig(
        level=level.upper(),
        format="%(levelname)s:%(name)s:%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("driversync").setLevel(level.upper())


def create_app(config: DriverSyncConfig | None = None) -> FastAPI:
    """Build the FastAPI app from configuration.

    Args:
        config: Service configuration. Loaded from file/env when None.

    Returns:
        Configured FastAPI application.
    """
    config = config or load_config()
    configure_logging(config.logging.level)

    db_engine = create_db_engine(config.database.url) if config.database.url else default_engine
    session_factory = create_session_factory(db_engine)
    runtime = build_runtime(config, session_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        init_db(db_engine)
        logger.info("DriverSync %s started", __version__)
        yield
        await runtime.shutdown()

    app = FastAPI(
        title="DriverSync API",
        description="Delivery confirmation submission for field drivers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.session_factory = session_factory
    app.state.runtime = runtime

    app.include_router(driver.router, prefix="/api/v1")

    if config.blob.backend == "local" and config.blob.public_base_url.startswith("/"):
        app.mount(
            config.blob.public_base_url,
            StaticFiles(directory=config.blob.base_dir, check_dir=False),
            name="blobs",
        )

    @app.get("/health")
    def health() -> dict[str, Any]:
        """Liveness probe."""
        dispatcher = runtime.dispatcher
        return {
            "status": "ok",
            "version": __version__,
            "notifications_enabled": runtime.notifications_enabled,
            "notifications_in_flight": dispatcher.pending if dispatcher else 0,
        }

    return app
