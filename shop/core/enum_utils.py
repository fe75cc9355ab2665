"""
Enum Utilities for VARCHAR-based Status Fields

CONVENTIONS:
━━━━━━━━━━━━
• Database: VARCHAR(20/30) - NOT a native ENUM type
• SQLAlchemy: String with Mapped[str]
• Pydantic: Python Enum for API validation
• Case: All enum values stored in UPPERCASE

DATA FLOW:
━━━━━━━━━━
INPUT (API Request):
    Pydantic Enum → .value → String → Database
    Example: OrderStatus.PENDING → "PENDING" → VARCHAR

OUTPUT (API Response):
    Database → String → Return directly

CASE NORMALIZATION:
━━━━━━━━━━━━━━━━━━━
Clients may send "pending" or "Pending"; create_uppercase_validator()
turns them into "PENDING" before Pydantic validates the enum.
"""

from enum import Enum
from typing import Any, Optional, Type, Set


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(OrderStatus.PENDING)  # Pydantic input
        'PENDING'
        >>> get_enum_value("PENDING")  # Database value
        'PENDING'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def enum_values(enum_class: Type[Enum]) -> list:
    """Get all values from an enum class."""
    return [e.value for e in enum_class]


def enum_comment(enum_class: Type[Enum]) -> str:
    """
    Generate a comment string for VARCHAR column.

    Examples:
        >>> enum_comment(CommissionStatus)
        'PENDING, PAID, CANCELLED'
    """
    return ", ".join(enum_values(enum_class))


# =============================================================================
# CASE NORMALIZATION FOR PYDANTIC SCHEMAS
# =============================================================================

def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Invalid values are returned unchanged so Pydantic reports them.
    """
    if value is None:
        return value
    if isinstance(value, Enum):
        return value
    if isinstance(value, str):
        upper_v = value.upper()
        if upper_v in valid_values:
            return upper_v
    return value


def create_uppercase_validator(field_name: str, valid_values: Set[str]) -> classmethod:
    """
    Create a Pydantic field_validator that normalizes values to UPPERCASE.

    Usage:
        class MySchema(BaseModel):
            status: OrderStatus

            normalize_status = create_uppercase_validator('status', VALID_ORDER_STATUSES)
    """
    from pydantic import field_validator

    @field_validator(field_name, mode='before')
    @classmethod
    def validate(cls, v):
        return normalize_to_uppercase(v, valid_values)

    return validate


# =============================================================================
# PRE-DEFINED VALID VALUE SETS
# =============================================================================

VALID_USER_ROLES = {"CONSUMER", "ADMIN", "DISTRIBUTOR"}

VALID_PRODUCT_TYPES = {"PHYSICAL", "VIRTUAL"}

VALID_ORDER_STATUSES = {
    "PENDING", "PAID", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED", "REFUNDED"
}

VALID_DISTRIBUTOR_STATUSES = {"ACTIVE", "INACTIVE", "SUSPENDED"}

VALID_COMMISSION_STATUSES = {"PENDING", "PAID", "CANCELLED"}
