"""FastAPI application wiring."""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from .config import AppConfig
from .router import get_proxy_router
from .service import LocationStockService
from .storage import InMemorySessionStorage, SessionStorage, SQLiteSessionStorage
from .tokens import AccessTokenResolver, TokenCache
from .webhook import WebhookHandler


def create_storage(config: AppConfig) -> SessionStorage:
    """Session storage selected by configuration."""
    if config.storage.session_db_path:
        return SQLiteSessionStorage(config.storage.session_db_path)
    return InMemorySessionStorage()


def create_app(
    config: AppConfig,
    storage: Optional[SessionStorage] = None,
    client: Optional[httpx.AsyncClient] = None,
    resolver: Optional[AccessTokenResolver] = None,
    token_cache: Optional[TokenCache] = None,
) -> FastAPI:
    """
    Create the FastAPI app with the proxy, webhook and health endpoints.

    Args:
        config: Service configuration
        storage: Session storage (selected from configuration if omitted)
        client: Optional HTTP client for outbound calls
        resolver: Optional token resolver overriding the configured strategy
        token_cache: Optional cache for the client-credentials strategy

    Returns:
        FastAPI app ready to run

    Example:
        app = create_app(AppConfig.from_env())

        # Run with uvicorn:
        # uvicorn app:app --host 0.0.0.0 --port 8000
    """
    owns_storage = storage is None
    storage = storage or create_storage(config)
    service = LocationStockService(
        config, storage=storage, client=client, resolver=resolver, token_cache=token_cache
    )

    webhooks = WebhookHandler(storage, webhook_secret=config.shopify.api_secret)
    webhooks.register_defaults()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await service.close()
        if owns_storage:
            storage.close()

    app = FastAPI(title="Shopify Location Stock", lifespan=lifespan)
    app.state.service = service
    app.state.webhooks = webhooks
    app.include_router(get_proxy_router(service))
    app.include_router(webhooks.get_router())

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app
