"""Flash swaps: coordinator, callback payload codec and session tracking."""

from pairswap.flashswap.codec import (
    CallbackPayload,
    SwapType,
    decode_payload,
    encode_legacy,
    encode_payload,
)
from pairswap.flashswap.coordinator import FlashSwapCoordinator
from pairswap.flashswap.session import FlashSession, SessionStack

__all__ = [
    "CallbackPayload",
    "FlashSession",
    "FlashSwapCoordinator",
    "SessionStack",
    "SwapType",
    "decode_payload",
    "encode_legacy",
    "encode_payload",
]
