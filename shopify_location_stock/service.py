"""Location stock lookup behind the App Proxy endpoint."""

import re
from typing import Mapping, Optional

import httpx

from .config import AppConfig
from .errors import AuthenticationError, TokenResolutionError, ValidationError
from .inventory import AdminAPIClient
from .models.proxy_models import LocationStock
from .signature import verify_proxy_signature
from .storage import InMemorySessionStorage, SessionStorage
from .tokens import AccessTokenResolver, TokenCache, build_token_resolver

VARIANT_RE = re.compile(r"[0-9]{1,20}")
SHOP_RE = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9-]*\.myshopify\.com")

REINSTALL_HINT = "Open the app from the Shopify admin to reinstall it and create an offline session."


class LocationStockService:
    """
    Answers "how many of this variant are at the warehouse for this country".

    This class handles:
    - Verifying the App Proxy signature
    - Validating proxy inputs
    - Mapping the country to a warehouse location
    - Resolving an Admin API token
    - Querying the Admin API for the available quantity
    """

    def __init__(
        self,
        config: AppConfig,
        storage: Optional[SessionStorage] = None,
        client: Optional[httpx.AsyncClient] = None,
        resolver: Optional[AccessTokenResolver] = None,
        token_cache: Optional[TokenCache] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Service configuration
            storage: Session storage for offline tokens
            client: Optional HTTP client (e.g. one with a mock transport)
            resolver: Optional token resolver overriding the configured strategy
            token_cache: Optional cache for the client-credentials strategy
        """
        self.config = config
        self.storage = storage or InMemorySessionStorage()

        if client is not None:
            self.client = client
            self._owns_client = False
        else:
            self.client = httpx.AsyncClient(timeout=config.shopify.request_timeout_seconds)
            self._owns_client = True

        self.admin_api = AdminAPIClient(self.client, config.shopify.api_version)
        self.token_cache = token_cache
        self._resolver = resolver

    @property
    def resolver(self) -> AccessTokenResolver:
        """Token resolver, built from configuration on first use."""
        if self._resolver is None:
            self._resolver = build_token_resolver(self.config, self.client, self.storage, self.token_cache)
        return self._resolver

    async def close(self):
        """Close HTTP client."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def authenticate(self, params: Mapping[str, str]) -> None:
        secret = self.config.require_secret()
        if not verify_proxy_signature(params, secret):
            raise AuthenticationError()

    def resolve_shop(self, params: Mapping[str, str]) -> str:
        """Shop to query: the requesting shop for per-shop strategies, else the configured one."""
        if not self.resolver.requires_shop:
            return self.config.require_shop_domain()
        shop = params.get("shop") or ""
        if not SHOP_RE.fullmatch(shop):
            raise ValidationError("Missing/invalid shop")
        return shop

    async def lookup(self, params: Mapping[str, str]) -> LocationStock:
        """
        Run a signed proxy request through to a stock answer.

        Args:
            params: Query parameters of the proxied request

        Returns:
            Stock at the location serving the requested country

        Raises:
            ConfigurationError: missing secret, shop domain, token settings or location ids
            AuthenticationError: signature missing or wrong
            ValidationError: bad ``variant`` or ``shop``
            TokenResolutionError: no usable access token
            UpstreamError: Admin API or token endpoint failure
        """
        self.authenticate(params)

        variant_id = params.get("variant") or ""
        if not VARIANT_RE.fullmatch(variant_id):
            raise ValidationError("Missing/invalid variant")

        country = (params.get("country") or "").upper()
        shop = self.resolve_shop(params)
        location_id = self.config.locations.location_for(country)

        access_token = await self.resolver.resolve(shop)
        if not access_token:
            raise TokenResolutionError(f"No offline access token for {shop}", details=REINSTALL_HINT)

        qty = await self.admin_api.fetch_available(shop, access_token, variant_id, location_id)
        return LocationStock(
            variant_id=int(variant_id),
            country=country,
            location_id=int(location_id),
            qty=qty,
            available=qty > 0,
        )
