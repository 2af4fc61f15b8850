"""
Shopify App Proxy location stock service

Reports inventory for a product variant at the UK or US warehouse, behind a
signed Shopify App Proxy request.
"""

__version__ = "0.1.0"

from .app import create_app
from .config import AppConfig, TokenStrategy
from .service import LocationStockService
from .signature import compute_proxy_signature, verify_proxy_signature
from .tokens import TokenCache, build_token_resolver

__all__ = [
    "create_app",
    "AppConfig",
    "TokenStrategy",
    "LocationStockService",
    "compute_proxy_signature",
    "verify_proxy_signature",
    "TokenCache",
    "build_token_resolver",
]
