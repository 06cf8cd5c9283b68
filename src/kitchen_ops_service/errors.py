"""Exceptions raised by the scoring and order generation services.

Expected outcomes (a full kitchen slot, a dish owned by another seller, an
undeliverable notification) are reported as values, not raised. Only conditions
that abort a single call are exceptions.
"""


class KitchenNotFoundError(Exception):
    """Raised when a referenced kitchen does not exist."""

    def __init__(self, kitchen_id: str) -> None:
        self.kitchen_id = kitchen_id
        super().__init__(f"Kitchen with ID {kitchen_id} not found")


class StorageError(Exception):
    """Raised when the backing store fails a read or write."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class DuplicateOrderError(StorageError):
    """Raised when a subscription order for the same date and slot already exists."""

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__("create_order", f"order {order_id} already exists")
