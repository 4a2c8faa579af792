"""
Blockwork - Server-driven UI preview service

FastAPI application entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blockwork import __version__
from blockwork.app.api.preview import router as preview_router
from blockwork.app.dependencies import get_settings, get_store, initialize_services, shutdown_services

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Blockwork preview...")
    try:
        await initialize_services()
        logger.info("Blockwork preview initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down Blockwork preview...")
    try:
        await shutdown_services()
        logger.info("Blockwork preview shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Blockwork",
        description="Server-driven UI rendering preview: validate structures and inspect rendered pages",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(preview_router)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """Root endpoint with service info."""
        return {
            "service": "blockwork",
            "version": __version__,
            "status": "running",
        }

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, Any]:
        """Health check including structure status."""
        store = get_store()
        if not store.loaded:
            return {"status": "unhealthy", "structure": "not loaded"}
        return {
            "status": "healthy",
            "structure": {
                "version": store.structure.version,
                "pages": len(store.structure.pages),
                "appVersion": store.app_version,
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "blockwork.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
