"""Error taxonomy for the location stock service.

Every error knows the HTTP status it maps to and how to render itself as a
JSON error body, so route handlers can translate any of them uniformly.
"""

from typing import Any, Dict, Optional


class LocationStockError(Exception):
    """Base class for errors surfaced to HTTP clients."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ConfigurationError(LocationStockError):
    """A required setting is missing or malformed.

    The message names the setting and is meant for the logs only; clients get
    a generic body.
    """

    status_code = 500
    public_message = "Server misconfigured"

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.public_message}


class AuthenticationError(LocationStockError):
    """Bad or missing request signature."""

    status_code = 401
    public_message = "Invalid signature"

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(LocationStockError):
    """Malformed request input."""

    status_code = 400
    public_message = "Invalid request"


class TokenResolutionError(LocationStockError):
    """No usable Admin API access token could be resolved."""

    status_code = 401
    public_message = "No access token available"


class UpstreamError(LocationStockError):
    """The Admin API answered with a non-2xx status or GraphQL errors."""

    status_code = 502
    public_message = "Admin API error"

    def __init__(
        self,
        details: Optional[str] = None,
        status: Optional[int] = None,
        body: Any = None,
        message: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.status = status
        self.body = body


class ExchangeError(UpstreamError):
    """The OAuth client-credentials exchange failed."""

    public_message = "Token exchange failed"

    def __init__(
        self,
        details: str,
        status: Optional[int] = None,
        status_text: Optional[str] = None,
        body: Any = None,
    ):
        super().__init__(details=details, status=status, body=body)
        self.status_text = status_text
