"""Data models for Shopify sessions, Admin API payloads and proxy responses."""

from .shopify_models import (
    OfflineSession,
    CachedToken,
    InventoryLevel,
    InventoryItem,
    ProductVariantInventory,
)
from .proxy_models import (
    LocationStock,
    ErrorBody,
    SessionTokenDump,
)

__all__ = [
    "OfflineSession",
    "CachedToken",
    "InventoryLevel",
    "InventoryItem",
    "ProductVariantInventory",
    "LocationStock",
    "ErrorBody",
    "SessionTokenDump",
]
