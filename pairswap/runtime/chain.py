"""In-process execution environment for pairs, tokens and the coordinator.

The runtime provides what the host chain would: a registry of deployed
contracts, caller identity for nested synchronous calls, a millisecond block
clock, native-currency balances, an event log and atomic transactions.

Atomicity: the outermost ``call`` snapshots every contract, the native
balances and the event log. If any exception escapes, all of it is restored
before the exception propagates, so the optimistic transfer in
``PairEngine.swap`` can never leak out of a failed transaction.
"""

from __future__ import annotations

from contextlib import contextmanager
from copy import deepcopy
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from pairswap.errors import (
    InsufficientBalance,
    NoActiveCall,
    UnknownContract,
    UnknownEntrypoint,
)
from pairswap.models.types import normalize_address
from pairswap.safe_int import S

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pairswap.models.events import EventBase
    from pairswap.runtime.contract import Contract

logger = structlog.get_logger()

C = TypeVar("C", bound="Contract")


class Runtime:
    """Registry, clock, caller stack and journal for one simulated chain."""

    def __init__(self, block_time: int = 0) -> None:
        """Initialize an empty runtime.

        Args:
            block_time: Initial block time in milliseconds
        """
        self.block_time = block_time
        self._contracts: dict[str, Contract] = {}
        self._callers: list[str] = []
        self.native_balances: dict[str, int] = {}
        self.events: list[EventBase] = []

    # --- Registry ---

    def deploy(self, contract: C) -> C:
        """Register a contract at its address and return it."""
        if contract.address in self._contracts:
            raise ValueError(f"Address already in use: {contract.address}")
        self._contracts[contract.address] = contract
        logger.debug(
            "contract_deployed", kind=type(contract).__name__, address=contract.address[-8:]
        )
        return contract

    def contract(self, address: str) -> Contract:
        """Look up a deployed contract.

        Raises:
            UnknownContract: If nothing is deployed at address
        """
        try:
            return self._contracts[normalize_address(address)]
        except KeyError:
            raise UnknownContract(f"No contract at {address}") from None

    def is_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    # --- Clock ---

    def advance(self, millis: int) -> int:
        """Move the block clock forward and return the new time."""
        if millis < 0:
            raise ValueError(f"Cannot move the clock backwards: {millis}")
        self.block_time += millis
        return self.block_time

    # --- Calls ---

    @property
    def caller(self) -> str:
        """Address that invoked the currently executing method.

        Raises:
            NoActiveCall: If no call is in progress
        """
        if not self._callers:
            raise NoActiveCall("No call in progress")
        return self._callers[-1]

    @property
    def depth(self) -> int:
        return len(self._callers)

    def call(
        self, sender: str, target: str | Contract, method: str, *args: Any, **kwargs: Any
    ) -> Any:
        """Invoke ``method`` on ``target`` with ``sender`` as caller.

        The outermost call is a transaction: on any exception every journaled
        piece of state is rolled back and the exception re-raised.
        """
        address = target if isinstance(target, str) else target.address
        contract = self.contract(address)
        if method not in type(contract).ENTRYPOINTS:
            raise UnknownEntrypoint(f"{type(contract).__name__} has no entrypoint {method!r}")
        handler = getattr(contract, method)

        if self._callers:
            return self._dispatch(normalize_address(sender), handler, args, kwargs)
        with self.transaction():
            return self._dispatch(normalize_address(sender), handler, args, kwargs)

    def _dispatch(
        self, sender: str, handler: Any, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> Any:
        self._callers.append(sender)
        try:
            return handler(*args, **kwargs)
        finally:
            self._callers.pop()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Snapshot all state, restoring it if the block raises."""
        contracts = dict(self._contracts)
        snapshots = {address: c.snapshot() for address, c in contracts.items()}
        native = deepcopy(self.native_balances)
        event_count = len(self.events)
        try:
            yield
        except BaseException as exc:
            # contracts deployed inside the transaction are dropped
            self._contracts = contracts
            for address, snapshot in snapshots.items():
                contracts[address].restore(snapshot)
            self.native_balances = native
            del self.events[event_count:]
            logger.debug("transaction_reverted", error=type(exc).__name__)
            raise

    # --- Native currency ---

    def native_balance(self, owner: str) -> int:
        return self.native_balances.get(normalize_address(owner), 0)

    def fund(self, owner: str, amount: int) -> None:
        """Credit native currency out of thin air (genesis allocation)."""
        owner = normalize_address(owner)
        self.native_balances[owner] = (S(self.native_balance(owner)) + S(amount)).value

    def move_native(self, sender: str, recipient: str, amount: int) -> None:
        """Transfer native currency between purses.

        Raises:
            InsufficientBalance: If sender holds less than amount
        """
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)
        balance = self.native_balance(sender)
        if balance < amount:
            raise InsufficientBalance(f"Native balance {balance} < {amount} for {sender}")
        self.native_balances[sender] = (S(balance) - S(amount)).value
        self.native_balances[recipient] = (S(self.native_balance(recipient)) + S(amount)).value

    # --- Events ---

    def emit(self, event: EventBase) -> None:
        self.events.append(event)

    def events_of(self, event_type: str, contract: str | None = None) -> list[EventBase]:
        """Events of one type, optionally filtered by emitting contract."""
        wanted = normalize_address(contract) if contract else None
        return [
            e
            for e in self.events
            if getattr(e, "event_type", None) == event_type
            and (wanted is None or e.contract == wanted)
        ]
