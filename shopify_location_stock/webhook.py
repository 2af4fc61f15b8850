"""Webhook handler for Shopify app lifecycle events."""

import json
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from .router import error_response
from .signature import verify_webhook_hmac
from .storage import SessionStorage

logger = logging.getLogger("shopify_location_stock.webhook")

APP_UNINSTALLED = "app/uninstalled"


class WebhookHandler:
    """
    Handle Shopify webhooks for the app.

    Supports webhook topics:
    - app/uninstalled
    """

    def __init__(self, storage: SessionStorage, webhook_secret: Optional[str] = None):
        """
        Initialize webhook handler.

        Args:
            storage: Session storage cleaned up on uninstall
            webhook_secret: App secret used to sign webhooks
        """
        self.storage = storage
        self.webhook_secret = webhook_secret
        self._handlers: Dict[str, list] = {}

    def verify_webhook(self, data: bytes, hmac_header: Optional[str]) -> bool:
        """Verify a webhook signature; fails when no secret is configured."""
        return verify_webhook_hmac(data, hmac_header, self.webhook_secret)

    def on(self, topic: str):
        """
        Decorator to register webhook event handlers.

        Args:
            topic: Webhook topic (e.g., 'app/uninstalled')

        Example:
            @webhook_handler.on('app/uninstalled')
            async def handle_uninstall(shop, payload):
                ...
        """
        def decorator(func: Callable):
            if topic not in self._handlers:
                self._handlers[topic] = []
            self._handlers[topic].append(func)
            return func
        return decorator

    async def handle_webhook(self, topic: str, shop: str, data: Dict[str, Any]):
        """
        Process webhook event and call registered handlers.

        Args:
            topic: Webhook topic
            shop: Shop domain the event belongs to
            data: Webhook payload data
        """
        logger.info("Received %s webhook for %s", topic, shop)
        for handler in self._handlers.get(topic, []):
            await handler(shop, data)

    def register_defaults(self) -> None:
        """Register the built-in handler that forgets an uninstalled shop's sessions."""

        @self.on(APP_UNINSTALLED)
        async def on_app_uninstalled(shop: str, _data: Dict[str, Any]):
            if shop:
                removed = self.storage.delete_sessions_by_shop(shop)
                logger.info("Deleted %d session(s) for %s", removed, shop)

    def get_router(self) -> APIRouter:
        """Router with the webhook endpoint."""
        router = APIRouter()

        @router.post("/webhooks/app/uninstalled")
        async def app_uninstalled(request: Request):
            """Endpoint to receive the app/uninstalled webhook."""
            try:
                hmac_header = request.headers.get("X-Shopify-Hmac-Sha256")
                topic = request.headers.get("X-Shopify-Topic") or APP_UNINSTALLED
                shop = request.headers.get("X-Shopify-Shop-Domain", "")

                body = await request.body()
                if not self.verify_webhook(body, hmac_header):
                    return JSONResponse({"error": "Invalid webhook signature"}, status_code=401)

                if topic != APP_UNINSTALLED:
                    return JSONResponse({"error": f"Unexpected webhook topic: {topic}"}, status_code=400)

                try:
                    data = json.loads(body) if body else {}
                except (json.JSONDecodeError, UnicodeDecodeError):
                    return JSONResponse({"error": "Invalid JSON payload"}, status_code=400)

                await self.handle_webhook(topic, shop, data)
                return Response(status_code=200)
            except Exception as exc:
                return error_response(exc)

        return router
