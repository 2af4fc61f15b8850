"""Configuration management for the location stock service."""

import os
from enum import Enum
from typing import Mapping, Optional
from pydantic import BaseModel, Field, ConfigDict

from .errors import ConfigurationError


DEFAULT_API_VERSION = "2026-01"


class TokenStrategy(str, Enum):
    """How the Admin API access token is obtained."""
    STATIC = "static"
    CLIENT_CREDENTIALS = "client_credentials"
    OFFLINE_SESSION = "offline_session"


class ShopifyConfig(BaseModel):
    """Shopify API configuration."""
    shop_domain: Optional[str] = Field(None, description="Shopify shop domain (e.g., 'mystore.myshopify.com')")
    api_version: str = Field(DEFAULT_API_VERSION, description="Admin API version")
    api_secret: Optional[str] = Field(None, description="App secret used to sign proxy requests and webhooks")
    request_timeout_seconds: float = Field(10.0, gt=0, description="Timeout for outbound Admin API calls")


class TokenConfig(BaseModel):
    """Access token resolution configuration."""
    strategy: TokenStrategy = Field(TokenStrategy.STATIC, description="Token resolution strategy")
    admin_token: Optional[str] = Field(None, description="Static Admin API access token")
    client_id: Optional[str] = Field(None, description="Client id for the client-credentials exchange")
    client_secret: Optional[str] = Field(None, description="Client secret for the client-credentials exchange")
    default_ttl_seconds: int = Field(20 * 60, gt=0, description="Token TTL when the exchange omits expires_in")
    refresh_margin_seconds: int = Field(60, ge=0, description="Refresh cached tokens this long before expiry")


class LocationConfig(BaseModel):
    """Country to warehouse location mapping."""
    uk_location_id: Optional[str] = Field(None, description="Numeric id of the UK location")
    us_location_id: Optional[str] = Field(None, description="Numeric id of the US location")

    def location_for(self, country: str) -> str:
        """Return the location id serving ``country``; anything unknown ships from the UK."""
        code = (country or "").upper()
        if code == "US":
            name, location_id = "US_LOCATION_ID", self.us_location_id
        else:
            name, location_id = "UK_LOCATION_ID", self.uk_location_id
        if not location_id or not location_id.isdigit():
            raise ConfigurationError(f"{name} is missing or not numeric")
        return location_id


class StorageConfig(BaseModel):
    """Session storage configuration."""
    session_db_path: Optional[str] = Field(None, description="SQLite file holding app sessions (in-memory if unset)")


class AppConfig(BaseModel):
    """Main configuration for the location stock service."""
    shopify: ShopifyConfig = Field(default_factory=ShopifyConfig)
    token: TokenConfig = Field(default_factory=TokenConfig)
    locations: LocationConfig = Field(default_factory=LocationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    internal_api_key: Optional[str] = Field(None, description="Enables /internal/dump-token when set")
    cache_max_age_seconds: int = Field(15, ge=0, description="Public max-age of proxy responses")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "shopify": {
                    "shop_domain": "mystore.myshopify.com",
                    "api_version": DEFAULT_API_VERSION,
                    "api_secret": "shpss_xxxxx",
                },
                "token": {
                    "strategy": "static",
                    "admin_token": "shpat_xxxxx",
                },
                "locations": {
                    "uk_location_id": "61234567890",
                    "us_location_id": "61234567891",
                },
                "storage": {
                    "session_db_path": "sessions.db"
                },
                "cache_max_age_seconds": 15,
            }
        }
    )

    def require_secret(self) -> str:
        if not self.shopify.api_secret:
            raise ConfigurationError("SHOPIFY_API_SECRET is not configured")
        return self.shopify.api_secret

    def require_shop_domain(self) -> str:
        if not self.shopify.shop_domain:
            raise ConfigurationError("SHOPIFY_SHOP is not configured")
        return self.shopify.shop_domain

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Build configuration from environment variables.

        Values are not required here; each one is checked where it is used so
        a partially configured deployment still serves what it can.
        """
        env = os.environ if environ is None else environ

        def get(name: str, fallback: Optional[str] = None) -> Optional[str]:
            value = env.get(name)
            if value is None or value.strip() == "":
                return get(fallback) if fallback else None
            return value.strip()

        shopify = {
            "shop_domain": get("SHOPIFY_SHOP"),
            "api_version": get("SHOPIFY_API_VERSION") or DEFAULT_API_VERSION,
            "api_secret": get("SHOPIFY_API_SECRET"),
        }
        if get("REQUEST_TIMEOUT_SECONDS"):
            shopify["request_timeout_seconds"] = get("REQUEST_TIMEOUT_SECONDS")

        data = {
            "shopify": shopify,
            "token": {
                "strategy": (get("SHOPIFY_TOKEN_STRATEGY") or TokenStrategy.STATIC.value).lower(),
                "admin_token": get("SHOPIFY_ADMIN_TOKEN"),
                "client_id": get("SHOPIFY_CLIENT_ID", "SHOPIFY_API_KEY"),
                "client_secret": get("SHOPIFY_CLIENT_SECRET", "SHOPIFY_API_SECRET"),
            },
            "locations": {
                "uk_location_id": get("UK_LOCATION_ID"),
                "us_location_id": get("US_LOCATION_ID"),
            },
            "storage": {"session_db_path": get("SESSION_DB_PATH")},
            "internal_api_key": get("INTERNAL_API_KEY"),
        }
        if get("PROXY_CACHE_MAX_AGE"):
            data["cache_max_age_seconds"] = get("PROXY_CACHE_MAX_AGE")
        return cls(**data)
