"""Safe integer wrapper for arithmetic on token amounts and reserves.

This module provides SafeInt, a lightweight wrapper that makes arithmetic
operations safe by default:
- Division by zero raises DivisionByZero
- Subtraction underflow raises Underflow
- Results above the uint256 ceiling raise Uint256Overflow

Every error carries the operation, its operands and the call site
(``module:function:line``) of the arithmetic that failed, so one error type
per failure kind is enough to locate the fault.

Usage pattern:
    from pairswap.safe_int import S

    def liquidity_for(amount: int, total_supply: int, reserve: int) -> int:
        # Wrap at entry
        sa, st, sr = S(amount), S(total_supply), S(reserve)

        # Natural arithmetic - automatically safe
        return ((sa * st) // sr).value
"""

from __future__ import annotations

import sys

UINT256_MAX = 2**256 - 1


def _call_site() -> str:
    """Return ``module:function:line`` of the first frame outside this module."""
    frame = sys._getframe(1)
    while frame is not None and frame.f_globals.get("__name__") == __name__:
        frame = frame.f_back  # type: ignore[assignment]
    if frame is None:
        return "<unknown>"
    module = frame.f_globals.get("__name__", "<unknown>")
    return f"{module}:{frame.f_code.co_name}:{frame.f_lineno}"


class SafeIntError(ArithmeticError):
    """Base class for SafeInt arithmetic errors.

    Attributes:
        op: Operation tag ("add", "sub", "mul", "floordiv", ...)
        operands: The operand values that produced the fault
        site: Source location of the failing arithmetic
    """

    code = "arithmetic"

    def __init__(self, message: str, *, op: str, operands: tuple[int, ...]) -> None:
        self.op = op
        self.operands = operands
        self.site = _call_site()
        super().__init__(f"{message} (op={op}, at {self.site})")


class DivisionByZero(SafeIntError):
    """Division or modulo by zero."""

    code = "division_by_zero"


class Underflow(SafeIntError):
    """Subtraction would produce negative result."""

    code = "underflow"


class Uint256Overflow(SafeIntError):
    """Value exceeds the uint256 (or narrower) maximum."""

    code = "overflow"


class SafeInt:
    """Integer with safe arithmetic operations.

    Wraps an integer and provides arithmetic operators that raise
    descriptive errors instead of producing invalid results:
    - Division by zero raises DivisionByZero
    - Negative results from subtraction raise Underflow
    - Sums and products above 2^256-1 raise Uint256Overflow

    The ceiling mirrors the on-chain width of balances and accumulators, so
    anything a 256-bit checked_add/checked_mul would reject is rejected here.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        """Create a SafeInt from an integer or another SafeInt.

        Raises:
            TypeError: If value is not an int or SafeInt
        """
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        """Add two values.

        Raises:
            Uint256Overflow: If the sum exceeds 2^256-1
        """
        other_val = _extract_value(other)
        return _bounded(self._value + other_val, "add", self._value, other_val)

    def __radd__(self, other: int) -> SafeInt:
        return _bounded(other + self._value, "add", other, self._value)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(
                f"Underflow: {self._value} - {other_val} = {result}",
                op="sub",
                operands=(self._value, other_val),
            )
        return SafeInt(result)

    def __rsub__(self, other: int) -> SafeInt:
        result = other - self._value
        if result < 0:
            raise Underflow(
                f"Underflow: {other} - {self._value} = {result}",
                op="sub",
                operands=(other, self._value),
            )
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        """Multiply two values.

        Raises:
            Uint256Overflow: If the product exceeds 2^256-1
        """
        other_val = _extract_value(other)
        return _bounded(self._value * other_val, "mul", self._value, other_val)

    def __rmul__(self, other: int) -> SafeInt:
        return _bounded(other * self._value, "mul", other, self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(
                f"Division by zero: {self._value} // 0",
                op="floordiv",
                operands=(self._value, 0),
            )
        return SafeInt(self._value // other_val)

    def __rfloordiv__(self, other: int) -> SafeInt:
        if self._value == 0:
            raise DivisionByZero(
                f"Division by zero: {other} // 0", op="floordiv", operands=(other, 0)
            )
        return SafeInt(other // self._value)

    def __lshift__(self, bits: int) -> SafeInt:
        """Left shift, checked against the uint256 ceiling."""
        return _bounded(self._value << bits, "shl", self._value, bits)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return NotImplemented
        return not result

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        """True if non-zero."""
        return self._value != 0

    def __index__(self) -> int:
        return self._value

    # --- Named operations ---

    def wrapping_add(self, other: SafeInt | int, bits: int = 256) -> SafeInt:
        """Add modulo 2^bits. Used for counters whose overflow is intended."""
        return SafeInt((self._value + _extract_value(other)) % (1 << bits))

    def wrapping_sub(self, other: SafeInt | int, bits: int = 64) -> SafeInt:
        """Subtract modulo 2^bits. Used for wrapping timestamps."""
        return SafeInt((self._value - _extract_value(other)) % (1 << bits))


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


def _bounded(result: int, op: str, left: int, right: int) -> SafeInt:
    if result > UINT256_MAX:
        raise Uint256Overflow(
            f"Overflow: {op}({left}, {right}) exceeds uint256",
            op=op,
            operands=(left, right),
        )
    return SafeInt(result)


# Convenience alias for concise code
S = SafeInt
