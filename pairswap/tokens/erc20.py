"""Reference fungible token with a single minter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pairswap.errors import Forbidden
from pairswap.models.types import normalize_address
from pairswap.tokens.fungible import FungibleToken

if TYPE_CHECKING:
    from pairswap.runtime.chain import Runtime


class Token(FungibleToken):
    """ERC20-like token. Only ``minter`` may issue new supply."""

    ENTRYPOINTS = FungibleToken.ENTRYPOINTS | {"mint"}

    def __init__(
        self,
        runtime: Runtime,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 9,
        minter: str | None = None,
    ) -> None:
        super().__init__(runtime, address, name, symbol, decimals)
        self.minter = normalize_address(minter) if minter else None

    def mint(self, to: str, amount: int) -> None:
        """Issue amount to ``to``.

        Raises:
            Forbidden: If a minter is set and the caller is not it
        """
        if self.minter is not None and self.caller != self.minter:
            raise Forbidden(f"{self.caller[-8:]} is not the minter of {self.symbol}")
        self._issue(to, amount)
