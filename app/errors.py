"""Domain exceptions for the COD order service.

Every error carries a machine-readable ``kind`` so the API layer can render
``{"detail": ..., "kind": ...}`` without inspecting the message.
"""

from typing import Optional


class OrderServiceError(Exception):
    """Base exception for all order service errors."""

    kind = "order_service_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(OrderServiceError):
    """Raised when caller input is missing or malformed."""

    kind = "validation_error"


class NotFoundError(OrderServiceError):
    """Raised when a referenced order, product or user does not exist."""

    kind = "not_found"

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")


class ForbiddenError(OrderServiceError):
    """Raised when the caller lacks authority for the action."""

    kind = "forbidden"


class InvalidTransitionError(OrderServiceError):
    """Raised when the requested status is not reachable from the current one."""

    kind = "invalid_transition"

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(message or f"Invalid status change from {current} to {requested}")


class RefundWindowExpiredError(OrderServiceError):
    """Raised when a refund is requested outside the post-delivery window."""

    kind = "refund_window_expired"


class ConflictError(OrderServiceError):
    """Raised when a record changed between read and write."""

    kind = "conflict"


class UpstreamUnavailableError(OrderServiceError):
    """Raised when the record store or identity provider cannot be reached."""

    kind = "upstream_unavailable"


ERROR_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    ForbiddenError: 403,
    InvalidTransitionError: 400,
    RefundWindowExpiredError: 400,
    ConflictError: 409,
    UpstreamUnavailableError: 503,
}
