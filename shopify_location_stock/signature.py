"""HMAC verification for Shopify App Proxy requests and webhooks."""

import base64
import hashlib
import hmac
from typing import Iterable, Mapping, Optional, Tuple


SIGNATURE_PARAM = "signature"


def query_params_to_dict(items: Iterable[Tuple[str, str]]) -> dict:
    """Collapse multi-valued query items into a ``str -> str`` mapping.

    Shopify signs repeated keys with their values joined by commas.
    """
    grouped: dict = {}
    for key, value in items:
        grouped.setdefault(key, []).append(value)
    return {key: ",".join(values) for key, values in grouped.items()}


def proxy_message(params: Mapping[str, str]) -> str:
    """Build the signed message: sorted ``key=value`` pairs with no separator."""
    pairs = sorted(
        (key, value) for key, value in params.items() if key != SIGNATURE_PARAM
    )
    return "".join(f"{key}={value}" for key, value in pairs)


def compute_proxy_signature(params: Mapping[str, str], secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 Shopify attaches to proxied requests."""
    return hmac.new(
        secret.encode("utf-8"),
        proxy_message(params).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_proxy_signature(params: Mapping[str, str], secret: Optional[str]) -> bool:
    """
    Verify an App Proxy request signature.

    Args:
        params: Query parameters including ``signature``
        secret: App secret shared with Shopify

    Returns:
        True only if the supplied signature matches. Never raises.
    """
    signature = params.get(SIGNATURE_PARAM)
    if not signature or not secret:
        return False

    try:
        computed = compute_proxy_signature(params, secret)
        return hmac.compare_digest(computed.encode("utf-8"), signature.encode("utf-8"))
    except (TypeError, ValueError, AttributeError):
        return False


def verify_webhook_hmac(body: bytes, hmac_header: Optional[str], secret: Optional[str]) -> bool:
    """
    Verify a Shopify webhook signature.

    Args:
        body: Raw request body
        hmac_header: ``X-Shopify-Hmac-Sha256`` header (base64)
        secret: App secret

    Returns:
        True if the signature is valid
    """
    if not secret or not hmac_header:
        return False

    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    computed = base64.b64encode(digest)
    try:
        return hmac.compare_digest(computed, hmac_header.encode("utf-8"))
    except (TypeError, ValueError, AttributeError):
        return False
