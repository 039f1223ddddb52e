"""Exceptions raised by the ordering services.

Every failure carries the human-readable text that is shown to the user as-is.
They subclass ``ValueError`` so routers translate them the same way as any other
service validation error.
"""


class OrderingError(ValueError):
    """Base exception for ordering failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BackendError(OrderingError):
    """Raised when the order backend is unreachable, misbehaves, or refuses an action."""

    def __init__(self, message: str, *, action: str | None = None):
        self.action = action
        super().__init__(message)


class CheckoutError(OrderingError):
    """Raised when an order could not be submitted."""


class ApprovalError(OrderingError):
    """Raised when a pending order could not be approved or rejected."""

    def __init__(self, message: str, *, pending_order_id: str | None = None):
        self.pending_order_id = pending_order_id
        super().__init__(message)


class NotificationError(OrderingError):
    """Raised when notifications could not be delivered or fetched."""


class ReportError(OrderingError):
    """Raised when sales data for a report could not be loaded."""
