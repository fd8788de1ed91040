"""Address types and event records."""

from pairswap.models.events import (
    Approval,
    Burn,
    Deposit,
    Event,
    Mint,
    Swap,
    Sync,
    Transfer,
    Withdrawal,
    event_adapter,
)
from pairswap.models.types import (
    ZERO_ADDRESS,
    Address,
    Uint256,
    derive_address,
    from_hex_id,
    is_valid_address,
    normalize_address,
    to_hex_id,
)

__all__ = [
    # Types
    "Address",
    "Uint256",
    "ZERO_ADDRESS",
    "derive_address",
    "from_hex_id",
    "is_valid_address",
    "normalize_address",
    "to_hex_id",
    # Events
    "Approval",
    "Burn",
    "Deposit",
    "Event",
    "Mint",
    "Swap",
    "Sync",
    "Transfer",
    "Withdrawal",
    "event_adapter",
]
