"""
FastAPI liveness application for the FMI news watcher.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
import uvicorn
from fastapi import FastAPI

from api.models import HealthResponse

logger = structlog.get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Liveness server started")
    yield
    logger.info("Liveness server stopped")


app = FastAPI(
    title="FMI News Watcher",
    version=VERSION,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    lifespan=lifespan
)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=VERSION
    )


def create_server(host: str, port: int, log_level: str = "info") -> uvicorn.Server:
    """
    Build a uvicorn server for the liveness app.

    The caller runs `server.serve()` on its own event loop and sets
    `server.should_exit` to stop it.
    """
    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level.lower(),
        access_log=False,
    )
    server = uvicorn.Server(server_config)
    logger.info("Listening", host=host, port=port)
    return server
