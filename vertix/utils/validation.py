"""
Input Validation - Sanitization of engine inputs.

Provides validation for all caller-supplied values to prevent:
- Malformed identities (wrong length, zero address)
- Integer overflows and negative amounts
- Out-of-range basis points and durations
- Oversized metadata strings

Every validator returns an (is_valid, error_message) tuple.
"""

import re
from typing import Any, Optional, Tuple

from vertix.crypto import ADDRESS_SIZE, ZERO_ADDRESS

# =============================================================================
# Constants
# =============================================================================

MAX_HASH_SIZE = 32
MAX_URI_LENGTH = 2048

# Field bounds
MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1
MAX_BPS = 10_000
MAX_TIMESTAMP = 2**64 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a participant address (20 bytes, not the zero address)."""
    valid, err = validate_bytes(address, name, expected_length=ADDRESS_SIZE)
    if not valid:
        return False, err
    if bytes(address) == ZERO_ADDRESS:
        return False, f"{name} must not be the zero address"
    return True, ""


def validate_hash(hash_value: Any, name: str = "hash") -> Tuple[bool, str]:
    """Validate a 32-byte hash that is not all zeros."""
    valid, err = validate_bytes(hash_value, name, expected_length=MAX_HASH_SIZE)
    if not valid:
        return False, err
    if not any(hash_value):
        return False, f"{name} must not be empty"
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
    # bool is an int subclass; never a valid amount
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a currency amount."""
    return validate_integer(amount, name, MIN_AMOUNT, MAX_AMOUNT)


def validate_bps(value: Any, name: str = "bps", min_val: int = 0) -> Tuple[bool, str]:
    """Validate basis points (1/100 of a percent)."""
    return validate_integer(value, name, min_val, MAX_BPS)


def validate_duration(duration: Any, min_duration: int, max_duration: int) -> Tuple[bool, str]:
    """Validate an auction duration against the configured bounds."""
    return validate_integer(duration, "duration", min_duration, max_duration)


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_URI_LENGTH,
    pattern: Optional[str] = None,
) -> Tuple[bool, str]:
    """
    Validate non-empty string input.

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
        return False, f"{name} must not be empty"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    if pattern and not re.match(pattern, value):
        return False, f"{name} does not match required pattern"

    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_address",
    "validate_hash",
    "validate_integer",
    "validate_amount",
    "validate_bps",
    "validate_duration",
    "validate_string",
    "MAX_HASH_SIZE",
    "MAX_URI_LENGTH",
    "MAX_AMOUNT",
    "MAX_BPS",
]
