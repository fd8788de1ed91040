"""Shared type definitions for pairswap models.

Addresses are 20-byte identifiers written as lowercase ``0x``-prefixed hex.
Accounts, tokens, pairs and the coordinator all share this namespace.
"""

from typing import Annotated, Any

from eth_utils import keccak
from pydantic import BeforeValidator, Field

UINT256_MAX = 2**256 - 1

ZERO_ADDRESS = "0x" + "0" * 40


def validate_uint256(value: Any) -> int:
    """Validate that a value is a non-negative integer within uint256 range.

    Raises:
        ValueError: If value is not a valid non-negative integer within uint256 range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Uint256 must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")
    return value


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an address to lowercase with 0x prefix.

    Args:
        address: An address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.

    Raises:
        ValueError: If validate=True and address is not a valid address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid 0x-prefixed 20-byte hex address."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def _validate_address(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Address must be str, got {type(value).__name__}")
    return normalize_address(value, validate=True)


# Address, normalized to lowercase on validation
Address = Annotated[str, BeforeValidator(_validate_address)]

# 256-bit unsigned integer amount
Uint256 = Annotated[
    int,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer"),
]


def derive_address(*parts: str) -> str:
    """Derive a deterministic address from labels (last 20 bytes of keccak)."""
    digest = keccak(text="/".join(parts))
    return "0x" + digest[-20:].hex()


def address_from_public_key(public_key: bytes) -> str:
    """Map a raw public key to the address that owns it."""
    return "0x" + keccak(public_key)[-20:].hex()


def to_hex_id(address: str) -> str:
    """Address as bare hex digits, the form carried in legacy payloads."""
    return normalize_address(address, validate=True)[2:]


def from_hex_id(hex_id: str) -> str:
    """Inverse of to_hex_id.

    Raises:
        ValueError: If hex_id is not 40 hex digits
    """
    return normalize_address("0x" + hex_id, validate=True)
