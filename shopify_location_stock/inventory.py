"""Admin GraphQL API access for inventory lookups."""

import json
import logging
import math
from typing import Any, Dict, Optional

import httpx
import pydantic

from .errors import UpstreamError
from .models.shopify_models import ProductVariantInventory

logger = logging.getLogger("shopify_location_stock.inventory")

VARIANT_INVENTORY_AT_LOCATION = """
query VariantInventoryAtLocation($variantGid: ID!, $locationGid: ID!) {
  productVariant(id: $variantGid) {
    inventoryItem {
      inventoryLevel(locationId: $locationGid) {
        available
      }
    }
  }
}
"""


def variant_gid(variant_id: str) -> str:
    return f"gid://shopify/ProductVariant/{variant_id}"


def location_gid(location_id: str) -> str:
    return f"gid://shopify/Location/{location_id}"


def available_quantity(data: Optional[Dict[str, Any]]) -> int:
    """Extract ``available`` from a query result; anything non-numeric counts as 0."""
    if not isinstance(data, dict):
        return 0
    variant = data.get("productVariant")
    if not isinstance(variant, dict):
        return 0
    try:
        parsed = ProductVariantInventory(**variant)
    except pydantic.ValidationError:
        return 0
    level = parsed.inventory_item.inventory_level if parsed.inventory_item else None
    qty = level.available if level else None
    if isinstance(qty, bool) or not isinstance(qty, (int, float)) or not math.isfinite(qty):
        return 0
    return int(qty)


class AdminAPIClient:
    """Thin client for the Shopify Admin GraphQL endpoint."""

    def __init__(self, client: httpx.AsyncClient, api_version: str):
        self.client = client
        self.api_version = api_version

    def graphql_url(self, shop: str) -> str:
        return f"https://{shop}/admin/api/{self.api_version}/graphql.json"

    async def graphql(
        self,
        shop: str,
        access_token: str,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Execute a GraphQL query.

        Args:
            shop: Shop domain
            access_token: Admin API access token
            query: GraphQL document
            variables: Query variables

        Returns:
            The ``data`` member of the response

        Raises:
            UpstreamError: on transport failure, non-2xx status or GraphQL errors
        """
        try:
            response = await self.client.post(
                self.graphql_url(shop),
                json={"query": query, "variables": variables or {}},
                headers={
                    "X-Shopify-Access-Token": access_token,
                    "Content-Type": "application/json",
                },
            )
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Admin API request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Admin API request failed: {exc}") from exc

        try:
            body: Any = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = response.text

        errors = body.get("errors") if isinstance(body, dict) else None
        if not response.is_success or errors or not isinstance(body, dict):
            details = json.dumps(errors) if errors else (body if isinstance(body, str) else json.dumps(body))
            logger.warning("Admin API error for %s: HTTP %s %s", shop, response.status_code, details)
            raise UpstreamError(details, status=response.status_code, body=body)

        data = body.get("data")
        if data is None:
            return {}
        if not isinstance(data, dict):
            details = f"Unexpected data in Admin API response: {json.dumps(data)}"
            logger.warning("Admin API error for %s: %s", shop, details)
            raise UpstreamError(details, status=response.status_code, body=body)
        return data

    async def fetch_available(self, shop: str, access_token: str, variant_id: str, location_id: str) -> int:
        """Return the quantity of a variant available at a location."""
        data = await self.graphql(
            shop,
            access_token,
            VARIANT_INVENTORY_AT_LOCATION,
            {
                "variantGid": variant_gid(variant_id),
                "locationGid": location_gid(location_id),
            },
        )
        return available_quantity(data)
