"""Wrapped native currency."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pairswap.errors import ZeroAmount
from pairswap.models.events import Deposit, Withdrawal
from pairswap.tokens.fungible import FungibleToken

if TYPE_CHECKING:
    from pairswap.runtime.chain import Runtime

logger = structlog.get_logger()


class WrappedNative(FungibleToken):
    """Token backed 1:1 by native currency held in this contract's purse."""

    ENTRYPOINTS = FungibleToken.ENTRYPOINTS | {"deposit", "withdraw"}

    def __init__(
        self,
        runtime: Runtime,
        address: str,
        name: str = "Wrapped Native",
        symbol: str = "WNATIVE",
        decimals: int = 9,
    ) -> None:
        super().__init__(runtime, address, name, symbol, decimals)

    def deposit(self, amount: int) -> None:
        """Wrap amount of the caller's native currency.

        Raises:
            ZeroAmount: If amount is zero
            InsufficientBalance: If the caller's purse is short
        """
        if amount == 0:
            raise ZeroAmount("Deposit amount is zero")
        owner = self.caller
        self.runtime.move_native(owner, self.address, amount)
        self._issue(owner, amount)
        self.emit(Deposit(contract=self.address, owner=owner, value=amount))
        logger.debug("native_wrapped", owner=owner[-8:], amount=amount)

    def withdraw(self, amount: int) -> None:
        """Unwrap amount back into the caller's purse.

        Raises:
            ZeroAmount: If amount is zero
            InsufficientBalance: If the caller holds less than amount
        """
        if amount == 0:
            raise ZeroAmount("Withdrawal amount is zero")
        owner = self.caller
        self._redeem(owner, amount)
        self.runtime.move_native(self.address, owner, amount)
        self.emit(Withdrawal(contract=self.address, owner=owner, value=amount))
        logger.debug("native_unwrapped", owner=owner[-8:], amount=amount)
