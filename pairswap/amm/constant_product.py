"""Constant-product pricing with the 0.3% input fee.

Pairs use the formula x * y = k, adjusted so that 0.3% of every input is
left in the pool:

    (balance0 * 1000 - amount0_in * 3) * (balance1 * 1000 - amount1_in * 3)
        >= reserve0 * reserve1 * 1000^2

Repayment formulas for flash swaps are derived from the same equation.
"""

from __future__ import annotations

from pairswap.constants import FEE_DENOMINATOR, FEE_INPUT_MULTIPLIER, FEE_NUMERATOR
from pairswap.models.types import normalize_address
from pairswap.safe_int import S


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Order two token addresses canonically (lower address bytes first).

    Raises:
        ValueError: If the tokens are identical
    """
    token_a = normalize_address(token_a, validate=True)
    token_b = normalize_address(token_b, validate=True)
    if token_a == token_b:
        raise ValueError(f"Identical tokens: {token_a}")
    if bytes.fromhex(token_a[2:]) > bytes.fromhex(token_b[2:]):
        return token_b, token_a
    return token_a, token_b


class ConstantProduct:
    """Constant-product math shared by the pair engine and the coordinator.

    Formula: amount_out = (amount_in * 997 * reserve_out) / (reserve_in * 1000 + amount_in * 997)
    """

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate output amount for an exact input.

        Args:
            amount_in: Input token amount
            reserve_in: Reserve of input token in pool
            reserve_out: Reserve of output token in pool

        Returns:
            Output token amount, 0 for empty input or reserves
        """
        if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
            return 0

        amount_in_with_fee = S(amount_in) * S(FEE_NUMERATOR)
        numerator = amount_in_with_fee * S(reserve_out)
        denominator = S(reserve_in) * S(FEE_DENOMINATOR) + amount_in_with_fee

        return (numerator // denominator).value

    def get_amount_in(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate the input needed to extract amount_out, rounded up by one.

        Formula: amount_in = (res_in * out * 1000) / ((res_out - out) * 997) + 1

        Raises:
            Underflow: If amount_out exceeds reserve_out
            DivisionByZero: If amount_out equals reserve_out
        """
        numerator = S(FEE_DENOMINATOR) * S(reserve_in) * S(amount_out)
        denominator = S(FEE_NUMERATOR) * (S(reserve_out) - S(amount_out))

        return ((numerator // denominator) + S(1)).value

    def flash_loan_fee(self, amount: int) -> int:
        """Fee on a same-asset flash loan: ``amount * 3 // 997 + 1``."""
        return ((S(amount) * S(FEE_INPUT_MULTIPLIER)) // S(FEE_NUMERATOR) + S(1)).value

    def flash_loan_repayment(self, amount: int) -> int:
        """Principal plus fee. A loan of 1000 repays 1004."""
        return (S(amount) + S(self.flash_loan_fee(amount))).value

    def flash_swap_repayment(self, amount: int, balance_pay: int, balance_borrow: int) -> int:
        """Pay-asset amount owed after borrowing ``amount`` of the other asset.

        Balances are the pair's, read after the optimistic transfer:
        ``1000 * balance_pay * amount // (997 * balance_borrow) + 1``.

        Raises:
            DivisionByZero: If balance_borrow is zero
        """
        numerator = S(FEE_DENOMINATOR) * S(balance_pay) * S(amount)
        denominator = S(FEE_NUMERATOR) * S(balance_borrow)

        return ((numerator // denominator) + S(1)).value

    def invariant_holds(
        self,
        balance0: int,
        balance1: int,
        amount0_in: int,
        amount1_in: int,
        reserve0: int,
        reserve1: int,
    ) -> bool:
        """Check the fee-adjusted constant product did not decrease.

        Raises:
            Underflow: If an input exceeds its balance (cannot happen for
                inputs derived from balances)
        """
        adjusted0 = S(balance0) * S(FEE_DENOMINATOR) - S(amount0_in) * S(FEE_INPUT_MULTIPLIER)
        adjusted1 = S(balance1) * S(FEE_DENOMINATOR) - S(amount1_in) * S(FEE_INPUT_MULTIPLIER)
        k_before = S(reserve0) * S(reserve1) * S(FEE_DENOMINATOR**2)

        return adjusted0 * adjusted1 >= k_before


# Singleton instance
constant_product = ConstantProduct()


__all__ = [
    "ConstantProduct",
    "constant_product",
    "sort_tokens",
]
