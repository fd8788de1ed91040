"""Base class for contracts hosted by a Runtime."""

from __future__ import annotations

from copy import deepcopy
from typing import TYPE_CHECKING, Any, ClassVar

from pairswap.models.types import normalize_address

if TYPE_CHECKING:
    from pairswap.models.events import EventBase
    from pairswap.runtime.chain import Runtime


class Contract:
    """A stateful participant with an address, reachable through the runtime.

    Subclasses keep all mutable state in instance attributes; the runtime
    journals them with ``snapshot``/``restore`` around every outermost call.
    Calls to other contracts go through ``call`` so the callee sees this
    contract as its caller. Only methods named in ``ENTRYPOINTS`` are
    reachable through the runtime.
    """

    ENTRYPOINTS: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, runtime: Runtime, address: str) -> None:
        self.runtime = runtime
        self.address = normalize_address(address, validate=True)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"

    @property
    def caller(self) -> str:
        """Address of whoever invoked the method currently executing."""
        return self.runtime.caller

    def call(self, target: str | Contract, method: str, *args: Any, **kwargs: Any) -> Any:
        """Invoke ``method`` on another contract with this contract as caller."""
        return self.runtime.call(self.address, target, method, *args, **kwargs)

    def emit(self, event: EventBase) -> None:
        self.runtime.emit(event)

    def snapshot(self) -> dict[str, Any]:
        # the runtime is shared, never copied
        return deepcopy(self.__dict__, {id(self.runtime): self.runtime})

    def restore(self, snapshot: dict[str, Any]) -> None:
        runtime = self.runtime
        state = deepcopy(snapshot, {id(runtime): runtime})
        self.__dict__.clear()
        self.__dict__.update(state)
