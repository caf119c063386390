"""
Input Validation - checks shared by amounts, addresses and auction records.

Every validator returns an ``(is_valid, error_message)`` tuple so callers
can compose checks and decide themselves whether a failure is recoverable.
"""

import re
from datetime import datetime
from typing import Any, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

ADDRESS_SIZE = 20
MAX_STRING_LENGTH = 1024

MIN_AMOUNT = 0
MAX_AMOUNT = 2**128 - 1

MIN_AUCTION_ID = 1
MAX_AUCTION_ID = 2**64 - 1

DENOM_PATTERN = r"^[a-z][a-z0-9/:._-]{2,127}$"


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 20-byte account address."""
    valid, err = validate_bytes(address, name, expected_length=ADDRESS_SIZE)
    if not valid:
        return False, err
    if not any(address):
        return False, f"{name} cannot be empty"
    return True, ""


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass but never a valid quantity
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_auction_id(auction_id: Any) -> Tuple[bool, str]:
    """Validate a persisted auction ID (0 is reserved)."""
    return validate_integer(auction_id, "auction id", MIN_AUCTION_ID, MAX_AUCTION_ID)


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_STRING_LENGTH,
    pattern: Optional[str] = None,
) -> Tuple[bool, str]:
    """
    Validate string input.

    Args:
        value: Value to validate
        name: Field name for errors
        max_length: Maximum string length
        pattern: Optional regex pattern

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    if not value.strip():
        return False, f"{name} cannot be blank"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    if pattern and not re.match(pattern, value):
        return False, f"{name} does not match required pattern"

    return True, ""


def validate_denom(denom: Any) -> Tuple[bool, str]:
    """Validate a denomination tag."""
    if not isinstance(denom, str):
        return False, f"denom must be str, got {type(denom).__name__}"
    if not re.match(DENOM_PATTERN, denom):
        return False, f"invalid denom: {denom!r}"
    return True, ""


def validate_timestamp(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a timezone-aware block timestamp."""
    if not isinstance(value, datetime):
        return False, f"{name} must be datetime, got {type(value).__name__}"
    if value.tzinfo is None:
        return False, f"{name} must be timezone-aware"
    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_address",
    "validate_integer",
    "validate_auction_id",
    "validate_string",
    "validate_denom",
    "validate_timestamp",
    "ADDRESS_SIZE",
    "DENOM_PATTERN",
]
