"""
CacheScout HTTP API.
Provides REST API and WebSocket access to CacheScout agent runs.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core.config import settings
from ..core.logging_config import configure_logging
from .registry import RunRegistry, ProbeFactory
from .routes import runs
from .websocket import router as websocket_router


logger = logging.getLogger("cachescout.api")


def create_app(probe_factory: ProbeFactory | None = None) -> FastAPI:
    """
    Build the API around a fresh run registry.

    Args:
        probe_factory: Builds the probe set for each run (live probes when None)

    Returns:
        FastAPI app; runs live in `app.state.runs` while it is running
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.runs = RunRegistry(probe_factory)
        logger.info("CacheScout API ready")

        yield

        logger.info("Shutting down, stopping active runs...")
        await app.state.runs.shutdown()

    app = FastAPI(
        title="CacheScout",
        description=(
            "Autonomous WordPress cache diagnostics: discovers pages, runs double-hit "
            "cache tests, detects plugins and CDNs, runs cache experiments and "
            "monitors for drift."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(runs.router, prefix="/api/runs", tags=["Runs"])
    app.include_router(websocket_router, prefix="/ws", tags=["WebSocket"])

    @app.get("/", tags=["Root"])
    async def root():
        """Service name, version and agent phases."""
        return {
            "name": "CacheScout",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "phases": [
                "reconnaissance", "analyzing", "experimenting", "synthesizing", "monitoring"
            ],
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness plus the number of runs in flight."""
        registry = getattr(app.state, "runs", None)
        return {
            "status": "healthy",
            "active_runs": sum(1 for h in registry.runs.values() if h.running) if registry else 0,
            "authorized_domains": settings.authorized_domains or "*",
        }

    return app


# Module-level app for `uvicorn cachescout.api.main:app`
app = create_app()


def serve() -> None:
    """Console entry point: serve the API with uvicorn on the configured host/port."""
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
