"""Domain errors raised by the service layer.

Every error carries a human readable ``message`` and a ``details`` dict that
identifies the offending entity. The API layer turns them into JSON
responses (see ``shop.main``).
"""
from typing import Any, Dict, Optional


class ShopError(Exception):
    """Base exception for business rule failures."""
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ShopError):
    """Referenced entity does not exist."""
    status_code = 404


class ValidationError(ShopError):
    """Malformed or out-of-range input, caught before any side effect."""
    status_code = 422


class InvalidStateError(ShopError):
    """Entity exists but cannot be used, or the transition is not allowed."""
    status_code = 409


class AlreadyExistsError(ShopError):
    """Duplicate record (commission, distributor account, unique field)."""
    status_code = 409


class InsufficientInventoryError(ShopError):
    """Stock shortfall for a physical product."""
    status_code = 409

    def __init__(self, product_id: Any, product_name: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product '{product_name}': "
            f"available {available}, requested {requested}",
            details={
                "product_id": str(product_id),
                "available": available,
                "requested": requested,
            },
        )
