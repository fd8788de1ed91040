"""Callback payload threaded through ``PairEngine.swap`` to the coordinator.

Two wire formats are understood:

Version 1 (default): a 0x01 version byte followed by the ABI encoding of

    (uint8 swap_type, uint64 session_id, address token_borrow, uint256 amount,
     address token_pay, bool is_borrowing_native, bool is_paying_native,
     address borrow_pair, uint256 wrapped_amount, bytes user_data)

Every field is typed and length-prefixed, so user data can hold any bytes.

Legacy text: eight comma-separated fields

    swapType,tokenBorrowHex,amount,tokenPayHex,isBorrowingNative,
    isPayingNative,triangleContext,userData

where hex ids are bare 40-digit addresses and ``triangleContext`` is
``borrowPairHex.wrappedAmount`` for triangular swaps and empty otherwise.
Legacy payloads carry no session id.

Any payload that fails to decode raises MalformedPayload. The coordinator
produces every payload itself, so a malformed one is a protocol bug.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from eth_abi import decode, encode  # type: ignore[attr-defined]
from eth_abi.exceptions import DecodingError

from pairswap.constants import ZERO
from pairswap.errors import MalformedPayload
from pairswap.models.types import UINT256_MAX, from_hex_id, normalize_address, to_hex_id

VERSION_1 = 0x01

V1_TYPES = [
    "uint8",
    "uint64",
    "address",
    "uint256",
    "address",
    "bool",
    "bool",
    "address",
    "uint256",
    "bytes",
]

LEGACY_FIELD_COUNT = 8

_DECIMAL = re.compile(r"[0-9]+")


class SwapType(str, Enum):
    """Flash-swap strategy, also the legacy payload tag."""

    SIMPLE_LOAN = "simple_loan"
    SIMPLE_SWAP = "simple_swap"
    TRIANGULAR_SWAP = "triangular_swap"

    @property
    def tag(self) -> int:
        """Numeric tag used in version 1 payloads."""
        return _TAGS[self]


_TAGS = {
    SwapType.SIMPLE_LOAN: 1,
    SwapType.SIMPLE_SWAP: 2,
    SwapType.TRIANGULAR_SWAP: 3,
}
_BY_TAG = {tag: swap_type for swap_type, tag in _TAGS.items()}


@dataclass(frozen=True)
class CallbackPayload:
    """Context a coordinator needs to finish a flash swap in its callback.

    Attributes:
        swap_type: Strategy that initiated the swap
        token_borrow: Asset lent by the pair (wrapped native if native)
        amount: Amount borrowed
        token_pay: Asset repaid (wrapped native if native)
        is_borrowing_native: Unwrap the borrowed amount before the hook
        is_paying_native: Wrap the repayment after the hook
        borrow_pair: Second pair of a triangular swap, else None
        wrapped_amount: Wrapped-native leg of a triangular swap, else 0
        user_data: Opaque bytes handed to the execute hook
        session_id: Session that produced the payload, None for legacy text
    """

    swap_type: SwapType
    token_borrow: str
    amount: int
    token_pay: str
    is_borrowing_native: bool = False
    is_paying_native: bool = False
    borrow_pair: str | None = None
    wrapped_amount: int = 0
    user_data: bytes = b""
    session_id: int | None = None


# =============================================================================
# Encoding
# =============================================================================


def encode_payload(payload: CallbackPayload) -> bytes:
    """Encode a payload in the version 1 binary format."""
    body = encode(
        V1_TYPES,
        [
            payload.swap_type.tag,
            payload.session_id or 0,
            payload.token_borrow,
            payload.amount,
            payload.token_pay,
            payload.is_borrowing_native,
            payload.is_paying_native,
            payload.borrow_pair or ZERO,
            payload.wrapped_amount,
            payload.user_data,
        ],
    )
    return bytes([VERSION_1]) + body


def encode_legacy(payload: CallbackPayload) -> str:
    """Encode a payload in the legacy comma-delimited text format.

    Raises:
        ValueError: If user_data is not UTF-8 text
    """
    triangle = ""
    if payload.borrow_pair is not None:
        triangle = f"{to_hex_id(payload.borrow_pair)}.{payload.wrapped_amount}"
    fields = [
        payload.swap_type.value,
        to_hex_id(payload.token_borrow),
        str(payload.amount),
        to_hex_id(payload.token_pay),
        _format_bool(payload.is_borrowing_native),
        _format_bool(payload.is_paying_native),
        triangle,
        payload.user_data.decode("utf-8"),
    ]
    return ",".join(fields)


# =============================================================================
# Decoding
# =============================================================================


def decode_payload(data: bytes | str) -> CallbackPayload:
    """Decode either wire format.

    Raises:
        MalformedPayload: If data is not a valid payload
    """
    if isinstance(data, str):
        return _decode_legacy(data)
    if not data:
        raise MalformedPayload("Empty payload")
    if data[0] == VERSION_1:
        return _decode_v1(bytes(data[1:]))
    try:
        text = bytes(data).decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedPayload(f"Unknown payload version: {data[0]:#04x}") from e
    return _decode_legacy(text)


def _decode_v1(body: bytes) -> CallbackPayload:
    try:
        (
            tag,
            session_id,
            token_borrow,
            amount,
            token_pay,
            is_borrowing_native,
            is_paying_native,
            borrow_pair,
            wrapped_amount,
            user_data,
        ) = decode(V1_TYPES, body)
    except (DecodingError, ValueError, TypeError) as e:
        raise MalformedPayload(f"Undecodable version 1 payload: {e}") from e

    swap_type = _BY_TAG.get(tag)
    if swap_type is None:
        raise MalformedPayload(f"Unknown swap type tag: {tag}")
    borrow_pair = normalize_address(borrow_pair)
    return _validated(
        CallbackPayload(
            swap_type=swap_type,
            token_borrow=normalize_address(token_borrow),
            amount=amount,
            token_pay=normalize_address(token_pay),
            is_borrowing_native=is_borrowing_native,
            is_paying_native=is_paying_native,
            borrow_pair=None if borrow_pair == ZERO else borrow_pair,
            wrapped_amount=wrapped_amount,
            user_data=bytes(user_data),
            session_id=session_id,
        )
    )


def _decode_legacy(text: str) -> CallbackPayload:
    # userData is last, so commas inside it survive
    fields = text.split(",", LEGACY_FIELD_COUNT - 1)
    if len(fields) != LEGACY_FIELD_COUNT:
        raise MalformedPayload(
            f"Expected {LEGACY_FIELD_COUNT} fields, got {len(fields)}: {text[:64]!r}"
        )
    tag, borrow_hex, amount, pay_hex, borrowing_native, paying_native, triangle, user = fields

    try:
        swap_type = SwapType(tag)
        token_borrow = from_hex_id(borrow_hex)
        token_pay = from_hex_id(pay_hex)
    except ValueError as e:
        raise MalformedPayload(f"Bad legacy field: {e}") from e

    borrow_pair = None
    wrapped_amount = 0
    if triangle:
        pair_hex, _, wrapped = triangle.partition(".")
        try:
            borrow_pair = from_hex_id(pair_hex)
        except ValueError as e:
            raise MalformedPayload(f"Bad triangle context: {triangle!r}") from e
        wrapped_amount = _parse_amount(wrapped)

    return _validated(
        CallbackPayload(
            swap_type=swap_type,
            token_borrow=token_borrow,
            amount=_parse_amount(amount),
            token_pay=token_pay,
            is_borrowing_native=_parse_bool(borrowing_native),
            is_paying_native=_parse_bool(paying_native),
            borrow_pair=borrow_pair,
            wrapped_amount=wrapped_amount,
            user_data=user.encode("utf-8"),
        )
    )


def _validated(payload: CallbackPayload) -> CallbackPayload:
    triangular = payload.swap_type is SwapType.TRIANGULAR_SWAP
    if triangular != (payload.borrow_pair is not None):
        raise MalformedPayload(
            f"{payload.swap_type.value} payload with borrow_pair={payload.borrow_pair}"
        )
    if triangular and payload.wrapped_amount == 0:
        raise MalformedPayload("Triangular payload without wrapped amount")
    return payload


def _parse_amount(value: str) -> int:
    if not _DECIMAL.fullmatch(value):
        raise MalformedPayload(f"Not a decimal amount: {value!r}")
    amount = int(value)
    if amount > UINT256_MAX:
        raise MalformedPayload(f"Amount exceeds uint256: {value}")
    return amount


def _parse_bool(value: str) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise MalformedPayload(f"Not a boolean: {value!r}")


def _format_bool(value: bool) -> str:
    return "true" if value else "false"
