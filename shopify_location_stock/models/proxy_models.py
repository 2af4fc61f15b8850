"""Pydantic models for App Proxy responses."""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class LocationStock(BaseModel):
    """Stock of a variant at the location serving a country."""
    variant_id: int = Field(alias="variantId")
    country: str
    location_id: int = Field(alias="locationId")
    qty: int
    available: bool

    model_config = ConfigDict(populate_by_name=True)


class ErrorBody(BaseModel):
    """JSON body of every error response."""
    error: str
    details: Optional[str] = None


class SessionTokenDump(BaseModel):
    """Offline session token returned by the debug endpoint."""
    shop: str
    is_online: bool = Field(alias="isOnline")
    access_token: str = Field(alias="accessToken")

    model_config = ConfigDict(populate_by_name=True)
