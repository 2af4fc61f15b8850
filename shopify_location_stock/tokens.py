"""Admin API access token resolution.

Three interchangeable strategies sit behind :class:`AccessTokenResolver`:

- a static token from configuration
- an OAuth client-credentials exchange whose result is cached
- a lookup of the shop's stored offline session

The proxy handler only sees the interface; :func:`build_token_resolver`
picks the backend from :class:`~.config.TokenConfig`.
"""

import json
import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import httpx

from .config import AppConfig, TokenStrategy
from .errors import ConfigurationError, ExchangeError
from .models.shopify_models import CachedToken
from .storage import SessionStorage

logger = logging.getLogger("shopify_location_stock.tokens")

Clock = Callable[[], int]

DEFAULT_TTL_MS = 20 * 60 * 1000
REFRESH_MARGIN_MS = 60 * 1000


def epoch_ms() -> int:
    return int(time.time() * 1000)


class TokenCache:
    """Holds one exchanged token with its expiry.

    A token is served only while more than ``refresh_margin_ms`` remain before
    it expires. Writes overwrite unconditionally, so concurrent refreshes
    settle on whichever finished last.
    """

    def __init__(self, clock: Clock = epoch_ms, refresh_margin_ms: int = REFRESH_MARGIN_MS):
        self.clock = clock
        self.refresh_margin_ms = refresh_margin_ms
        self._entry: Optional[CachedToken] = None

    def get(self) -> Optional[str]:
        """Return the cached token if it is still fresh."""
        entry = self._entry
        if entry is None:
            return None
        if entry.expires_at_ms - self.clock() <= self.refresh_margin_ms:
            return None
        return entry.token

    def set(self, token: str, ttl_ms: int) -> CachedToken:
        self._entry = CachedToken(token=token, expires_at_ms=self.clock() + ttl_ms)
        return self._entry

    def clear(self) -> None:
        self._entry = None

    @property
    def entry(self) -> Optional[CachedToken]:
        return self._entry


class AccessTokenResolver(ABC):
    """Produces a bearer token for the Admin API."""

    #: Whether :meth:`resolve` needs the requesting shop's domain.
    requires_shop: bool = False

    @abstractmethod
    async def resolve(self, shop: Optional[str] = None) -> Optional[str]:
        """Return an access token, or None when none is available."""


class StaticTokenResolver(AccessTokenResolver):
    """Returns a token fixed in configuration."""

    def __init__(self, token: str):
        if not token:
            raise ConfigurationError("SHOPIFY_ADMIN_TOKEN is not configured")
        self.token = token

    async def resolve(self, shop: Optional[str] = None) -> Optional[str]:
        return self.token


def _parse_body(response: httpx.Response) -> Any:
    """Parsed JSON body, or the raw text when it does not parse."""
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


class ClientCredentialsResolver(AccessTokenResolver):
    """Exchanges app credentials for a token and caches it."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        shop_domain: str,
        client_id: str,
        client_secret: str,
        cache: Optional[TokenCache] = None,
        default_ttl_ms: int = DEFAULT_TTL_MS,
    ):
        """
        Initialize the resolver.

        Args:
            client: HTTP client used for the exchange
            shop_domain: Shop whose token endpoint is called
            client_id: App client id
            client_secret: App client secret
            cache: Token cache (a private one is created if omitted)
            default_ttl_ms: TTL used when the response carries no ``expires_in``
        """
        self.client = client
        self.shop_domain = shop_domain
        self.client_id = client_id
        self.client_secret = client_secret
        self.cache = cache or TokenCache()
        self.default_ttl_ms = default_ttl_ms

    @property
    def token_url(self) -> str:
        return f"https://{self.shop_domain}/admin/oauth/access_token"

    async def resolve(self, shop: Optional[str] = None) -> Optional[str]:
        cached = self.cache.get()
        if cached is not None:
            return cached
        return await self.exchange()

    async def exchange(self) -> str:
        """Run the client-credentials exchange and store the result in the cache."""
        try:
            response = await self.client.post(
                self.token_url,
                json={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "client_credentials",
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise ExchangeError(f"Token exchange request failed: {exc}") from exc

        if not response.is_success:
            body = _parse_body(response)
            raise ExchangeError(
                f"Token exchange failed: {response.status_code} {response.reason_phrase}: {_render(body)}",
                status=response.status_code,
                status_text=response.reason_phrase,
                body=body,
            )

        body = _parse_body(response)
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise ExchangeError(
                f"No access_token in token exchange response: {response.text}",
                status=response.status_code,
                status_text=response.reason_phrase,
                body=response.text,
            )

        ttl_ms = self.default_ttl_ms
        expires_in = body.get("expires_in")
        if (
            isinstance(expires_in, (int, float))
            and not isinstance(expires_in, bool)
            and math.isfinite(expires_in)
            and expires_in > 0
        ):
            ttl_ms = int(expires_in * 1000)

        entry = self.cache.set(token, ttl_ms)
        logger.info("Exchanged client credentials for %s, expires at %s", self.shop_domain, entry.expires_at_ms)
        return token


class OfflineSessionResolver(AccessTokenResolver):
    """Reads the shop's stored offline session token."""

    requires_shop = True

    def __init__(self, storage: SessionStorage):
        self.storage = storage

    async def resolve(self, shop: Optional[str] = None) -> Optional[str]:
        if not shop:
            return None
        token = self.storage.find_offline_token(shop)
        if token is None:
            logger.warning("No offline session with a token for %s", shop)
        return token


def _render(body: Any) -> str:
    if isinstance(body, str):
        return body
    return json.dumps(body)


def build_token_resolver(
    config: AppConfig,
    client: httpx.AsyncClient,
    storage: SessionStorage,
    cache: Optional[TokenCache] = None,
) -> AccessTokenResolver:
    """
    Build the resolver selected by ``config.token.strategy``.

    Raises:
        ConfigurationError: if the selected strategy lacks a required setting
    """
    token_config = config.token
    strategy = token_config.strategy

    if strategy == TokenStrategy.STATIC:
        return StaticTokenResolver(token_config.admin_token or "")

    if strategy == TokenStrategy.CLIENT_CREDENTIALS:
        if not token_config.client_id or not token_config.client_secret:
            raise ConfigurationError("SHOPIFY_CLIENT_ID and SHOPIFY_CLIENT_SECRET are required for client_credentials")
        if cache is None:
            cache = TokenCache(refresh_margin_ms=token_config.refresh_margin_seconds * 1000)
        return ClientCredentialsResolver(
            client,
            shop_domain=config.require_shop_domain(),
            client_id=token_config.client_id,
            client_secret=token_config.client_secret,
            cache=cache,
            default_ttl_ms=token_config.default_ttl_seconds * 1000,
        )

    if strategy == TokenStrategy.OFFLINE_SESSION:
        return OfflineSessionResolver(storage)

    raise ConfigurationError(f"Unknown token strategy: {strategy}")
