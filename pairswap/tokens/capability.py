"""Token capability consumed by the pair engine and the coordinator."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenCapability(Protocol):
    """Any fungible token a pair can hold.

    ``transfer`` moves from the caller; ``transfer_from`` moves from ``owner``
    against the caller's allowance. Both raise on failure.
    """

    address: str

    def balance_of(self, owner: str) -> int: ...

    def transfer(self, recipient: str, amount: int) -> None: ...

    def transfer_from(self, owner: str, recipient: str, amount: int) -> None: ...
