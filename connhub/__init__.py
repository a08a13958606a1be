# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from connhub.api.http.connections import router as connections_router
from connhub.api.http.health import router as health_router
from connhub.api.http.metrics import router as metrics_router
from connhub.api.ws.endpoint import router as ws_router
from connhub.logging import install_access_log_filter, logger
from connhub.registry import ConnectionRegistry
from connhub.settings import app_settings


async def shutdown(registry: ConnectionRegistry) -> None:
    """
    Disconnects every registered connection and waits for the closes.

    Args:
        registry: The application's registry.
    """
    logger.info("Application shutdown initiated")

    handles = list(registry)
    registry.disconnect_all()

    for handle in handles:
        wait_pending = getattr(handle, "wait_pending", None)
        if wait_pending is not None:
            await wait_pending()

    logger.info("Application shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Creates the connection registry on startup and tears it down on shutdown.

    The registry is stored on ``app.state.registry`` and reaches endpoints
    through the ``get_registry`` dependency.
    """
    app.state.registry = ConnectionRegistry(
        clear_on_disconnect_all=app_settings.REGISTRY_CLEAR_ON_DISCONNECT_ALL
    )
    logger.info("Connection registry initialized")

    install_access_log_filter()

    yield

    await shutdown(app.state.registry)


def application() -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    The application exposes:
    - ``/ws``: WebSocket endpoint registering every client in the registry
    - ``/connections``, ``/broadcast``, ``/multicast``, ``/disconnect-all``:
      HTTP access to the registry's operations
    - ``/health`` and ``/metrics`` for monitoring
    """
    app = FastAPI(
        title="Connection hub",
        description="WebSocket connection registry with fan-out dispatch",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.include_router(ws_router)
    app.include_router(connections_router)
    app.include_router(health_router)
    app.include_router(metrics_router)

    return app
