"""Fungible balance and allowance ledger shared by tokens and pairs."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from pairswap.constants import ZERO
from pairswap.errors import InsufficientAllowance, InsufficientBalance, InvalidApproval
from pairswap.models.events import Approval, Transfer
from pairswap.models.types import normalize_address, validate_uint256
from pairswap.runtime.contract import Contract
from pairswap.safe_int import S

if TYPE_CHECKING:
    from pairswap.runtime.chain import Runtime


class FungibleToken(Contract):
    """ERC20-style ledger: balances, allowances and total supply.

    Invariant: the sum of ``balances`` equals ``total_supply``. Issuance and
    redemption are recorded as transfers from/to the zero address.
    """

    ENTRYPOINTS: ClassVar[frozenset[str]] = frozenset(
        {
            "balance_of",
            "allowance",
            "transfer",
            "approve",
            "increase_allowance",
            "decrease_allowance",
            "transfer_from",
        }
    )

    def __init__(
        self, runtime: Runtime, address: str, name: str, symbol: str, decimals: int
    ) -> None:
        super().__init__(runtime, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}

    # --- Views ---

    def balance_of(self, owner: str) -> int:
        return self.balances.get(normalize_address(owner), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    # --- Entrypoints ---

    def transfer(self, recipient: str, amount: int) -> None:
        self._move(self.caller, recipient, amount)

    def approve(self, spender: str, amount: int) -> None:
        self._approve(self.caller, spender, amount)

    def increase_allowance(self, spender: str, amount: int) -> None:
        """Raise the caller's allowance for spender by amount.

        Raises:
            InvalidApproval: If spender is the caller
        """
        owner = self.caller
        spender = normalize_address(spender)
        if owner == spender:
            raise InvalidApproval("Cannot approve yourself")
        self._approve(owner, spender, (S(self.allowance(owner, spender)) + S(amount)).value)

    def decrease_allowance(self, spender: str, amount: int) -> None:
        """Lower the caller's allowance for spender by a positive amount.

        Raises:
            InsufficientAllowance: If amount exceeds the current allowance
            InvalidApproval: If spender is the caller or amount is zero
        """
        owner = self.caller
        spender = normalize_address(spender)
        current = self.allowance(owner, spender)
        if amount > current:
            raise InsufficientAllowance(f"Allowance {current} < {amount}")
        if owner == spender or amount == 0:
            raise InvalidApproval("Allowance decrease must be positive and not to yourself")
        self._approve(owner, spender, current - amount)

    def transfer_from(self, owner: str, recipient: str, amount: int) -> None:
        """Move amount from owner to recipient against the caller's allowance.

        A transfer to oneself or of zero is a no-op and spends nothing.

        Raises:
            InsufficientBalance: If owner holds less than amount
            InsufficientAllowance: If the caller's allowance is short
            InvalidApproval: If the caller is the owner
        """
        owner = normalize_address(owner)
        recipient = normalize_address(recipient)
        if owner == recipient or amount == 0:
            return
        spender = self.caller
        if owner == spender:
            raise InvalidApproval("Use transfer to move your own balance")
        current = self.allowance(owner, spender)
        if current < amount:
            raise InsufficientAllowance(f"Allowance {current} < {amount} for {spender[-8:]}")
        self._move(owner, recipient, amount)
        self._approve(owner, spender, current - amount)

    # --- Ledger primitives ---

    def _issue(self, to: str, amount: int) -> None:
        to = normalize_address(to)
        self.total_supply = (S(self.total_supply) + S(amount)).value
        self.balances[to] = (S(self.balance_of(to)) + S(amount)).value
        self.emit(Transfer(contract=self.address, sender=ZERO, to=to, value=amount))

    def _redeem(self, owner: str, amount: int) -> None:
        owner = normalize_address(owner)
        balance = self.balance_of(owner)
        if balance < amount:
            raise InsufficientBalance(f"Balance {balance} < {amount} for {owner[-8:]}")
        self.balances[owner] = balance - amount
        self.total_supply = (S(self.total_supply) - S(amount)).value
        self.emit(Transfer(contract=self.address, sender=owner, to=ZERO, value=amount))

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)
        validate_uint256(amount)
        if sender == recipient or amount == 0:
            return
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(f"Balance {balance} < {amount} for {sender[-8:]}")
        self.balances[sender] = balance - amount
        self.balances[recipient] = (S(self.balance_of(recipient)) + S(amount)).value
        self.emit(Transfer(contract=self.address, sender=sender, to=recipient, value=amount))

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        owner = normalize_address(owner)
        spender = normalize_address(spender)
        self.allowances[(owner, spender)] = validate_uint256(amount)
        self.emit(Approval(contract=self.address, owner=owner, spender=spender, value=amount))
