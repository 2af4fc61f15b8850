import json

import httpx
import pytest

from shopify_location_stock.errors import UpstreamError
from shopify_location_stock.inventory import (
    AdminAPIClient,
    available_quantity,
    location_gid,
    variant_gid,
)


def graphql_data(available):
    return {"productVariant": {"inventoryItem": {"inventoryLevel": {"available": available}}}}


def make_client(handler):
    return AdminAPIClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)), "2026-01")


def test_global_ids():
    assert variant_gid("123") == "gid://shopify/ProductVariant/123"
    assert location_gid("456") == "gid://shopify/Location/456"


def test_available_quantity_defaults_to_zero():
    assert available_quantity(graphql_data(7)) == 7
    assert available_quantity(graphql_data(None)) == 0
    assert available_quantity(graphql_data("7")) == 0
    assert available_quantity(graphql_data(True)) == 0
    assert available_quantity({"productVariant": {"inventoryItem": {"inventoryLevel": None}}}) == 0
    assert available_quantity({"productVariant": None}) == 0
    assert available_quantity({}) == 0
    assert available_quantity(graphql_data(float("inf"))) == 0
    assert available_quantity({"productVariant": {"inventoryItem": {"inventoryLevel": "oops"}}}) == 0
    assert available_quantity({"productVariant": {"inventoryItem": ["x"]}}) == 0
    assert available_quantity(["x"]) == 0
    assert available_quantity("x") == 0


@pytest.mark.asyncio
async def test_fetch_available_sends_query_with_token_and_gids():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": graphql_data(12)})

    client = make_client(handler)
    qty = await client.fetch_available("demo.myshopify.com", "shpat_x", "111", "222")

    assert qty == 12
    request = seen[0]
    assert str(request.url) == "https://demo.myshopify.com/admin/api/2026-01/graphql.json"
    assert request.headers["X-Shopify-Access-Token"] == "shpat_x"
    payload = json.loads(request.content)
    assert "inventoryLevel(locationId: $locationGid)" in payload["query"]
    assert payload["variables"] == {
        "variantGid": "gid://shopify/ProductVariant/111",
        "locationGid": "gid://shopify/Location/222",
    }


@pytest.mark.asyncio
async def test_graphql_errors_raise_upstream_error():
    def handler(request):
        return httpx.Response(200, json={"errors": [{"message": "Access denied"}]})

    with pytest.raises(UpstreamError) as exc_info:
        await make_client(handler).fetch_available("demo.myshopify.com", "t", "1", "2")
    assert "Access denied" in exc_info.value.details
    assert exc_info.value.status == 200


@pytest.mark.asyncio
async def test_non_2xx_with_unparsable_body_raises_with_text():
    def handler(request):
        return httpx.Response(503, text="Service Unavailable")

    with pytest.raises(UpstreamError) as exc_info:
        await make_client(handler).fetch_available("demo.myshopify.com", "t", "1", "2")
    assert exc_info.value.status == 503
    assert exc_info.value.body == "Service Unavailable"


@pytest.mark.asyncio
async def test_transport_timeout_raises_upstream_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        await make_client(handler).fetch_available("demo.myshopify.com", "t", "1", "2")
    assert "timed out" in exc_info.value.details


@pytest.mark.asyncio
async def test_malformed_inventory_nodes_count_as_zero():
    def handler(request):
        return httpx.Response(
            200, json={"data": {"productVariant": {"inventoryItem": {"inventoryLevel": "oops"}}}}
        )

    assert await make_client(handler).fetch_available("demo.myshopify.com", "t", "1", "2") == 0


@pytest.mark.asyncio
async def test_non_object_data_raises_upstream_error():
    def handler(request):
        return httpx.Response(200, json={"data": ["x"]})

    with pytest.raises(UpstreamError) as exc_info:
        await make_client(handler).fetch_available("demo.myshopify.com", "t", "1", "2")
    assert exc_info.value.status == 200
    assert "Unexpected data" in exc_info.value.details
