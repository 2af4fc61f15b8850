"""FastAPI router for the App Proxy and internal endpoints."""

import hmac
import logging
from time import perf_counter
from typing import Optional

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse

from .errors import (
    ConfigurationError,
    LocationStockError,
    TokenResolutionError,
    ValidationError,
)
from .models.proxy_models import ErrorBody, LocationStock, SessionTokenDump
from .service import REINSTALL_HINT, SHOP_RE, LocationStockService
from .signature import query_params_to_dict
from .telemetry import get_request_duration_histogram

logger = logging.getLogger("shopify_location_stock.router")

ERROR_RESPONSES = {
    400: {"model": ErrorBody},
    401: {"model": ErrorBody},
    500: {"model": ErrorBody},
    502: {"model": ErrorBody},
}


def error_response(exc: Exception) -> JSONResponse:
    """Render any exception as a JSON error response."""
    if isinstance(exc, LocationStockError):
        if isinstance(exc, ConfigurationError):
            logger.error("Configuration error: %s", exc.message)
        elif exc.status_code >= 500:
            logger.warning("%s: %s", exc.message, exc.details)
        return JSONResponse(exc.to_body(), status_code=exc.status_code)
    logger.exception("Unhandled error", exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def get_proxy_router(service: LocationStockService) -> APIRouter:
    """
    Create a FastAPI router for the App Proxy stock endpoint and the token dump.

    Args:
        service: Location stock service instance

    Returns:
        APIRouter with async endpoints
    """
    router = APIRouter()
    duration_histogram = get_request_duration_histogram()

    @router.get("/apps/location-stock", response_model=LocationStock, responses=ERROR_RESPONSES)
    async def location_stock(request: Request):
        """Stock of a variant at the warehouse serving the shopper's country."""
        start = perf_counter()
        params = query_params_to_dict(request.query_params.multi_items())
        try:
            stock = await service.lookup(params)
            response = JSONResponse(
                stock.model_dump(mode="json", by_alias=True),
                headers={"Cache-Control": f"public, max-age={service.config.cache_max_age_seconds}"},
            )
        except Exception as exc:
            response = error_response(exc)

        duration_ms = (perf_counter() - start) * 1000
        duration_histogram.record(duration_ms, attributes={"status": response.status_code})
        logger.info(
            "location_stock",
            extra={"variant": params.get("variant"), "status": response.status_code, "duration_ms": duration_ms},
        )
        return response

    @router.get("/internal/dump-token", response_model=SessionTokenDump, responses=ERROR_RESPONSES)
    async def dump_token(
        shop: str = "",
        x_internal_api_key: Optional[str] = Header(None),
    ):
        """Return the stored offline session token of a shop (debugging aid)."""
        expected = service.config.internal_api_key
        if not expected:
            return JSONResponse({"error": "Not found"}, status_code=404)
        try:
            if not x_internal_api_key or not hmac.compare_digest(
                x_internal_api_key.encode("utf-8"), expected.encode("utf-8")
            ):
                return JSONResponse({"error": "Unauthorized"}, status_code=401)

            shop = shop or service.config.require_shop_domain()
            if not SHOP_RE.fullmatch(shop):
                raise ValidationError("Missing/invalid shop")

            session = service.storage.find_offline_session(shop)
            if session is None:
                raise TokenResolutionError(f"No offline session for {shop}", details=REINSTALL_HINT)

            dump = SessionTokenDump(shop=session.shop, is_online=session.is_online, access_token=session.access_token)
            return JSONResponse(dump.model_dump(mode="json", by_alias=True), headers={"Cache-Control": "no-store"})
        except Exception as exc:
            return error_response(exc)

    return router
