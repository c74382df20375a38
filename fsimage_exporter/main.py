"""
Main FastAPI application entry point.

Sets up the FastAPI app with:
- Loguru logging
- Background fsimage refresh task (started and cancelled by the lifespan)
- Prometheus /metrics endpoint backed by a dedicated registry
- Health check endpoint
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from prometheus_client import CollectorRegistry

from fsimage_exporter import __app_name__, __version__
from fsimage_exporter.config.deployment_validation import log_deployment_configuration
from fsimage_exporter.config.logger import setup_logging
from fsimage_exporter.config.settings import settings
from fsimage_exporter.features.fsimage_locator.factory import build_locator
from fsimage_exporter.features.health.router import router as health_router
from fsimage_exporter.features.metrics.collector import FsImageCollector
from fsimage_exporter.features.metrics.router import router as metrics_router
from fsimage_exporter.features.refresh.scheduler import RefreshScheduler
from fsimage_exporter.features.refresh.snapshot_store import SnapshotStore
from fsimage_exporter.features.statistics.oiv_parser import OivFsImageParser

# Set up logging before anything else
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Wires store, locator, parser and collector, starts the refresh task, and
    cancels it on shutdown. An InvalidConfiguration raised while wiring
    aborts startup.

    Args:
        app: FastAPI application instance.

    Yields:
        Control to the application runtime.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {__app_name__} {__version__}")
    logger.info(f"Metrics endpoint: http://{settings.host}:{settings.port}/metrics")
    logger.info("=" * 60)

    log_deployment_configuration()

    store = SnapshotStore()
    locator = build_locator(settings)
    parser = OivFsImageParser(settings.statistics, hdfs_command=settings.fsimage.hdfs_command)
    scheduler = RefreshScheduler(
        locator=locator,
        parser=parser,
        store=store,
        interval_seconds=settings.fsimage.refresh_interval,
    )

    registry = CollectorRegistry()
    registry.register(FsImageCollector(store, settings.statistics))

    app.state.store = store
    app.state.scheduler = scheduler
    app.state.registry = registry

    refresh_task = asyncio.create_task(scheduler.run_forever())
    logger.info("fsimage refresh task created")

    yield

    # Shutdown
    logger.info("Shutting down application")

    # An in-flight parse in the thread pool is abandoned, not interrupted
    if not refresh_task.done():
        refresh_task.cancel()
        try:
            await refresh_task
        except asyncio.CancelledError:
            logger.info("fsimage refresh task cancelled")


# Create FastAPI app
app = FastAPI(
    title="fsimage exporter",
    description="Prometheus exporter for HDFS fsimage statistics",
    version=__version__,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

# === ROUTERS ===
app.include_router(metrics_router)
app.include_router(health_router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint with exporter information.

    Returns:
        Dictionary containing app name, version, and endpoint links.
    """
    return {
        "app": __app_name__,
        "version": __version__,
        "metrics": "/metrics",
        "health": "/health",
    }


def run() -> None:
    """Console script entry point."""
    import uvicorn

    uvicorn.run(
        "fsimage_exporter.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,  # Disable uvicorn logging (we use loguru)
    )


if __name__ == "__main__":
    run()
