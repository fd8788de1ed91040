"""Integer square root and UQ128 price encoding for pair accounting.

Prices are stored as unsigned fixed-point numbers with 128 fractional bits:
``encode(y) = y << 128`` and ``uqdiv(x, y) = x // y``. Accumulators are 256-bit
counters that wrap on overflow, so ``accumulate`` reduces modulo 2^256.
"""

from __future__ import annotations

from pairswap.constants import ACCUMULATOR_BITS, PRICE_SHIFT
from pairswap.safe_int import DivisionByZero, S, SafeInt, Underflow

__all__ = [
    "isqrt",
    "encode",
    "uqdiv",
    "accumulate",
    "Q128",
]

Q128 = 1 << PRICE_SHIFT


def isqrt(y: int | SafeInt) -> int:
    """Floor square root via the Babylonian method.

    Starts from ``y // 2 + 1`` and iterates ``x = (y // x + x) // 2`` while the
    estimate keeps decreasing. Returns 0 for 0 and 1 for 1..3.

    Raises:
        Underflow: If y is negative
    """
    y = int(y)
    if y < 0:
        raise Underflow(f"Square root of negative value: {y}", op="isqrt", operands=(y,))
    if y > 3:
        z = y
        x = y // 2 + 1
        while x < z:
            z = x
            x = (y // x + x) // 2
        return z
    if y != 0:
        return 1
    return 0


def encode(y: int) -> int:
    """Encode a 128-bit reserve as a UQ128.128 value."""
    return (S(y) << PRICE_SHIFT).value


def uqdiv(x: int, y: int) -> int:
    """Divide a UQ128.128 value by a raw reserve.

    Raises:
        DivisionByZero: If y is zero
    """
    if y == 0:
        raise DivisionByZero(f"Price of empty reserve: {x} // 0", op="uqdiv", operands=(x, 0))
    return x // y


def accumulate(
    cumulative: int, reserve_numerator: int, reserve_denominator: int, elapsed: int
) -> int:
    """Add ``price * elapsed`` to a wrapping 256-bit price accumulator.

    ``price`` is ``encode(reserve_numerator) // reserve_denominator``; the
    product and the sum both wrap modulo 2^256.
    """
    price = uqdiv(encode(reserve_numerator), reserve_denominator)
    return S(cumulative).wrapping_add((price * elapsed) % (1 << ACCUMULATOR_BITS)).value
