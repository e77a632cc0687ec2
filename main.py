"""nearby-bars-server entry point.

On startup the DI container is built (venue cache, Overpass client, rate
limiter) and its lookup handler is injected into the bars router. On
shutdown the handler is withdrawn first so late requests get 503, then the
container releases its connections. Nothing runs outside request handling.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from nearby_bars.config import Settings
from nearby_bars.container import Container
from nearby_bars.metrics import APP_INFO
from nearby_bars.middleware import CORSHeadersMiddleware, PrometheusMiddleware
from nearby_bars.routers import bars_router, set_bars_handler

APP_VERSION = "1.0.0"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

container: Optional[Container] = None


async def startup_sequence(settings: Settings):
    """Build the container and hand its lookup handler to the router."""
    global container

    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info(
        f"[Main] Starting nearby-bars-server (cache={settings.cache_backend}, "
        f"overpass={settings.overpass_endpoint})"
    )

    container = Container(settings)
    set_bars_handler(container.bars_handler)
    APP_INFO.info({"version": APP_VERSION, "cache_backend": settings.cache_backend})

    logger.info("[Main] Ready to serve lookups")


async def shutdown_sequence():
    """Withdraw the handler, then release the container's resources."""
    global container

    logger.info("[Main] Shutting down")
    set_bars_handler(None)

    if container is not None:
        await container.shutdown()
        container = None

    logger.info("[Main] Shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup_sequence(Settings())
    try:
        yield
    finally:
        await shutdown_sequence()


def create_app() -> FastAPI:
    """Assemble the FastAPI application with middleware and routes."""
    app = FastAPI(
        title="Nearby Bars API",
        description="Bars, pubs and nightclubs near you, with walking distances",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    # Middleware added last runs first: CORS answers preflights before metrics
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(CORSHeadersMiddleware)

    app.include_router(bars_router)

    @app.get("/health")
    def health():
        """Liveness check."""
        return {"status": "healthy"}

    @app.get("/metrics", response_class=PlainTextResponse)
    def metrics():
        """Prometheus scrape endpoint."""
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
