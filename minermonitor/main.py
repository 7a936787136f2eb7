"""
MinerMonitor - FastAPI Application
Main entry point for the API server
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import structlog

from minermonitor.api.routes import health, ingest, miners
from minermonitor.core.config import Settings, settings as default_settings
from minermonitor.core.logging_config import configure_logging
from minermonitor.core.security import Unauthorized
from minermonitor.database.connection import create_db_engine, create_session_factory, init_database
from minermonitor.services.ingest import IngestionNormalizer, Clock, now_ms
from minermonitor.services.projector import ReadProjector
from minermonitor.store.memory import DeviceStore
from minermonitor.store.persistence import SqlMinerRepository, hydrate_store

configure_logging(default_settings.log_level)

logger = structlog.get_logger(__name__)

def attach_persistence(app: FastAPI):
    """Mirror the store into SQL and restore whatever was saved before the last restart"""
    settings = app.state.settings
    engine = create_db_engine(settings.database_url, echo=settings.debug)
    init_database(engine)

    store = app.state.store
    repository = SqlMinerRepository(create_session_factory(engine), max_points=store.max_points)
    hydrate_store(store, repository)
    store.persistence = repository
    app.state.engine = engine

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting MinerMonitor API")
    # Startup
    if app.state.settings.persistence_enabled and app.state.engine is None:
        attach_persistence(app)
    yield
    # Shutdown
    if app.state.engine is not None:
        app.state.store.persistence = None
        app.state.engine.dispose()
        app.state.engine = None
    logger.info("Shutting down MinerMonitor API")

def create_app(settings: Optional[Settings] = None,
               store: Optional[DeviceStore] = None,
               clock: Clock = now_ms) -> FastAPI:
    """Build the application around one explicitly constructed store"""
    settings = settings or default_settings
    store = store or DeviceStore(max_points=settings.history_max_points)

    app = FastAPI(
        title="MinerMonitor API",
        description="Telemetry ingestion and read model for a fleet of cryptocurrency miners",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.store = store
    app.state.engine = None
    app.state.normalizer = IngestionNormalizer(store, clock=clock)
    app.state.projector = ReadProjector(store, history_limit=settings.history_read_limit, clock=clock)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(ingest.router, prefix="/v1", tags=["ingest"])
    app.include_router(miners.router, prefix="/v1", tags=["miners"])

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "MinerMonitor API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/healthz"
        }

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized):
        return JSONResponse(status_code=401, content={"error": "unauthorized"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "server_error"}
        )

    return app

app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "minermonitor.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        log_level=default_settings.log_level.lower()
    )
