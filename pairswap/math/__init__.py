"""Mathematical utilities for pair accounting.

- isqrt: Babylonian floor square root
- encode/uqdiv/accumulate: UQ128.128 price accumulators
"""

from pairswap.math.fixed_point import Q128, accumulate, encode, isqrt, uqdiv

__all__ = ["Q128", "accumulate", "encode", "isqrt", "uqdiv"]
