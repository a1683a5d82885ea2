"""
Shared error handling for the Bicycle Gateway.

Gateway errors form a closed vocabulary. Each kind owns the HTTP status it is
rendered with, so the endpoint layer never has to classify failures itself.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class GatewayError(Exception):
    """Base exception for gateway failures."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class NotFoundError(GatewayError):
    """The requested key does not exist upstream."""

    status_code = 404

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class BadRequestError(GatewayError):
    """The key or request shape was rejected as malformed."""

    status_code = 400

    def __init__(self, message: str = "Bad request", details: Optional[Dict[str, Any]] = None):
        super().__init__("BAD_REQUEST", message, details)


class UpstreamError(GatewayError):
    """Any other upstream or transport failure."""

    status_code = 500

    def __init__(self, upstream: str, message: str = "Upstream service failure", details: Optional[Dict[str, Any]] = None):
        self.upstream = upstream
        super().__init__("UPSTREAM_ERROR", message, details)
