import json

import httpx
import pytest

from shopify_location_stock.config import AppConfig
from shopify_location_stock.errors import ConfigurationError, ExchangeError
from shopify_location_stock.models.shopify_models import OfflineSession
from shopify_location_stock.storage import InMemorySessionStorage
from shopify_location_stock.tokens import (
    DEFAULT_TTL_MS,
    ClientCredentialsResolver,
    OfflineSessionResolver,
    StaticTokenResolver,
    TokenCache,
    build_token_resolver,
)


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class TokenEndpoint:
    """Mock token endpoint counting exchanges."""

    def __init__(self, status_code=200, body=None, text=None):
        self.calls = []
        self.status_code = status_code
        self.body = body if body is not None else {"access_token": "tok_1", "expires_in": 3600}
        self.text = text

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)


def make_resolver(endpoint, clock):
    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    return ClientCredentialsResolver(
        client,
        shop_domain="demo.myshopify.com",
        client_id="cid",
        client_secret="csecret",
        cache=TokenCache(clock=clock),
    )


def test_cache_only_serves_tokens_with_more_than_a_minute_left():
    clock = FakeClock()
    cache = TokenCache(clock=clock)
    assert cache.get() is None

    cache.set("tok", 120_000)
    assert cache.get() == "tok"

    clock.advance(59_999)
    assert cache.get() == "tok"

    clock.advance(1)
    assert cache.get() is None


@pytest.mark.asyncio
async def test_static_resolver_returns_configured_token():
    resolver = StaticTokenResolver("shpat_static")
    assert await resolver.resolve() == "shpat_static"
    assert await resolver.resolve("other.myshopify.com") == "shpat_static"


def test_static_resolver_requires_a_token():
    with pytest.raises(ConfigurationError):
        StaticTokenResolver("")


@pytest.mark.asyncio
async def test_exchange_posts_client_credentials():
    endpoint = TokenEndpoint()
    resolver = make_resolver(endpoint, FakeClock())

    assert await resolver.resolve() == "tok_1"

    request = endpoint.calls[0]
    assert request.method == "POST"
    assert str(request.url) == "https://demo.myshopify.com/admin/oauth/access_token"
    assert json.loads(request.content) == {
        "client_id": "cid",
        "client_secret": "csecret",
        "grant_type": "client_credentials",
    }


@pytest.mark.asyncio
async def test_fresh_cached_token_skips_network():
    clock = FakeClock()
    endpoint = TokenEndpoint()
    resolver = make_resolver(endpoint, clock)

    first = await resolver.resolve()
    clock.advance(10 * 60 * 1000)
    second = await resolver.resolve()

    assert first == second == "tok_1"
    assert len(endpoint.calls) == 1


@pytest.mark.asyncio
async def test_token_near_expiry_is_refreshed_once():
    clock = FakeClock()
    endpoint = TokenEndpoint(body={"access_token": "tok_1", "expires_in": 120})
    resolver = make_resolver(endpoint, clock)
    await resolver.resolve()
    assert len(endpoint.calls) == 1

    clock.advance(90_000)
    endpoint.body = {"access_token": "tok_2", "expires_in": 3600}
    assert await resolver.resolve() == "tok_2"
    assert await resolver.resolve() == "tok_2"
    assert len(endpoint.calls) == 2


@pytest.mark.asyncio
async def test_missing_expires_in_defaults_to_twenty_minutes():
    clock = FakeClock()
    endpoint = TokenEndpoint(body={"access_token": "tok_1"})
    resolver = make_resolver(endpoint, clock)
    await resolver.resolve()
    assert resolver.cache.entry.expires_at_ms == clock.now + DEFAULT_TTL_MS


@pytest.mark.asyncio
async def test_non_positive_expires_in_defaults_to_twenty_minutes():
    clock = FakeClock()
    endpoint = TokenEndpoint(body={"access_token": "tok_1", "expires_in": 0})
    resolver = make_resolver(endpoint, clock)
    await resolver.resolve()
    assert resolver.cache.entry.expires_at_ms == clock.now + DEFAULT_TTL_MS


@pytest.mark.asyncio
async def test_exchange_without_access_token_raises_with_raw_body():
    endpoint = TokenEndpoint(body={"scope": "read_inventory"})
    resolver = make_resolver(endpoint, FakeClock())
    with pytest.raises(ExchangeError) as exc_info:
        await resolver.resolve()
    assert "read_inventory" in exc_info.value.body
    assert resolver.cache.entry is None


@pytest.mark.asyncio
async def test_exchange_http_error_carries_status_and_body():
    endpoint = TokenEndpoint(status_code=401, body={"error": "invalid_client"})
    resolver = make_resolver(endpoint, FakeClock())
    with pytest.raises(ExchangeError) as exc_info:
        await resolver.resolve()
    error = exc_info.value
    assert error.status == 401
    assert error.status_text == "Unauthorized"
    assert error.body == {"error": "invalid_client"}
    assert error.status_code == 502


@pytest.mark.asyncio
async def test_exchange_http_error_with_unparsable_body_keeps_text():
    endpoint = TokenEndpoint(status_code=500, text="<html>oops</html>")
    resolver = make_resolver(endpoint, FakeClock())
    with pytest.raises(ExchangeError) as exc_info:
        await resolver.resolve()
    assert exc_info.value.body == "<html>oops</html>"


@pytest.mark.asyncio
async def test_offline_resolver_picks_first_offline_session_with_token():
    storage = InMemorySessionStorage()
    storage.store_session(OfflineSession(id="online", shop="demo.myshopify.com", is_online=True, access_token="online_tok"))
    storage.store_session(OfflineSession(id="empty", shop="demo.myshopify.com", is_online=False, access_token=""))
    storage.store_session(OfflineSession(id="offline", shop="demo.myshopify.com", is_online=False, access_token="offline_tok"))
    storage.store_session(OfflineSession(id="other", shop="other.myshopify.com", is_online=False, access_token="other_tok"))

    resolver = OfflineSessionResolver(storage)
    assert resolver.requires_shop is True
    assert await resolver.resolve("demo.myshopify.com") == "offline_tok"


@pytest.mark.asyncio
async def test_offline_resolver_returns_none_when_absent():
    storage = InMemorySessionStorage()
    storage.store_session(OfflineSession(id="online", shop="demo.myshopify.com", is_online=True, access_token="tok"))
    resolver = OfflineSessionResolver(storage)
    assert await resolver.resolve("demo.myshopify.com") is None
    assert await resolver.resolve(None) is None


@pytest.mark.asyncio
async def test_build_token_resolver_selects_strategy():
    storage = InMemorySessionStorage()
    async with httpx.AsyncClient() as client:
        static = build_token_resolver(
            AppConfig(token={"strategy": "static", "admin_token": "shpat"}), client, storage
        )
        exchange = build_token_resolver(
            AppConfig(
                shopify={"shop_domain": "demo.myshopify.com"},
                token={"strategy": "client_credentials", "client_id": "a", "client_secret": "b"},
            ),
            client,
            storage,
        )
        offline = build_token_resolver(AppConfig(token={"strategy": "offline_session"}), client, storage)

    assert isinstance(static, StaticTokenResolver)
    assert isinstance(exchange, ClientCredentialsResolver)
    assert exchange.cache.refresh_margin_ms == 60_000
    assert isinstance(offline, OfflineSessionResolver)


@pytest.mark.asyncio
async def test_build_client_credentials_requires_settings():
    async with httpx.AsyncClient() as client:
        with pytest.raises(ConfigurationError):
            build_token_resolver(
                AppConfig(token={"strategy": "client_credentials"}), client, InMemorySessionStorage()
            )


@pytest.mark.asyncio
async def test_infinite_expires_in_defaults_to_twenty_minutes():
    clock = FakeClock()
    endpoint = TokenEndpoint(text='{"access_token": "tok_1", "expires_in": Infinity}')
    resolver = make_resolver(endpoint, clock)
    assert await resolver.resolve() == "tok_1"
    assert resolver.cache.entry.expires_at_ms == clock.now + DEFAULT_TTL_MS


@pytest.mark.asyncio
async def test_exchange_transport_failure_raises_exchange_error():
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    resolver = make_resolver(unreachable, FakeClock())
    with pytest.raises(ExchangeError) as exc_info:
        await resolver.resolve()
    assert "connection refused" in exc_info.value.details
    assert exc_info.value.status is None
    assert resolver.cache.entry is None
