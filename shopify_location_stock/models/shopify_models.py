"""Pydantic models for Shopify sessions and Admin API responses."""

from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict


class OfflineSession(BaseModel):
    """A stored app session for a shop."""
    id: str
    shop: str
    is_online: bool = Field(False, alias="isOnline")
    access_token: Optional[str] = Field(None, alias="accessToken")
    scope: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class CachedToken(BaseModel):
    """An exchanged access token and the epoch millisecond it expires at."""
    token: str
    expires_at_ms: int


class InventoryLevel(BaseModel):
    """``inventoryLevel`` node; ``available`` is kept raw to be coerced later."""
    available: Any = None


class InventoryItem(BaseModel):
    inventory_level: Optional[InventoryLevel] = Field(None, alias="inventoryLevel")

    model_config = ConfigDict(populate_by_name=True)


class ProductVariantInventory(BaseModel):
    inventory_item: Optional[InventoryItem] = Field(None, alias="inventoryItem")

    model_config = ConfigDict(populate_by_name=True)
