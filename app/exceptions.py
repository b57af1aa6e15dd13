"""
Service Exceptions

Errors raised by the user registry, order store and query service.
Each carries the HTTP status the API layer answers with, so routes
never translate errors one by one.
"""

from typing import Optional


class OrderServiceError(Exception):
    """Base class for all order-intake failures."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.public_message
        super().__init__(self.message)


class ValidationError(OrderServiceError):
    """Missing or empty required input."""

    status_code = 400
    public_message = "Missing required fields"


class NotFoundError(OrderServiceError):
    """Referenced order does not exist."""

    status_code = 404
    public_message = "Order not found"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order #{order_id} not found")


class InvalidStateError(OrderServiceError):
    """Operation not permitted for the order's current status."""

    status_code = 400
    public_message = "Order is not in a valid state for this operation"

    def __init__(self, order_id: int, status: str, operation: str):
        self.order_id = order_id
        self.status = status
        self.operation = operation
        super().__init__(f"Cannot {operation} order #{order_id} with status '{status}'")


class StoreError(OrderServiceError):
    """Underlying persistence failure (constraint violation, lost connection, ...)."""

    status_code = 500
