"""Pair factory: creates pairs and maps unordered token pairs to them."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import structlog

from pairswap.amm.constant_product import sort_tokens
from pairswap.config import DEFAULT_PAIR_CONFIG, PairConfig
from pairswap.constants import ZERO
from pairswap.errors import Forbidden, IdenticalAddresses, PairExists
from pairswap.models.types import derive_address, normalize_address
from pairswap.pair.engine import PairEngine
from pairswap.runtime.contract import Contract

if TYPE_CHECKING:
    from pairswap.runtime.chain import Runtime

logger = structlog.get_logger()


class PairFactory(Contract):
    """Registry of pairs keyed by their unordered token pair.

    Also holds the protocol fee recipient. Pair fee accrual is on whenever
    ``fee_to`` is not the zero address.
    """

    ENTRYPOINTS: ClassVar[frozenset[str]] = frozenset(
        {"create_pair", "get_pair", "fee_to", "fee_to_setter", "set_fee_to", "all_pairs"}
    )

    def __init__(
        self,
        runtime: Runtime,
        address: str,
        fee_to_setter: str,
        pair_config: PairConfig = DEFAULT_PAIR_CONFIG,
    ) -> None:
        super().__init__(runtime, address)
        self.setter = normalize_address(fee_to_setter, validate=True)
        self.fee_recipient = ZERO
        self.pair_config = pair_config
        self._pairs: dict[frozenset[str], str] = {}
        self._all_pairs: list[str] = []

    def create_pair(self, token_a: str, token_b: str) -> str:
        """Deploy and initialize the pair for two tokens.

        Raises:
            IdenticalAddresses: If both tokens are the same
            PairExists: If the pair was already created
        """
        if normalize_address(token_a) == normalize_address(token_b):
            raise IdenticalAddresses(f"Identical tokens: {token_a}")
        token0, token1 = sort_tokens(token_a, token_b)
        key = frozenset((token0, token1))
        if key in self._pairs:
            raise PairExists(f"Pair exists: {self._pairs[key]}")

        pair = self.runtime.deploy(
            PairEngine(
                self.runtime,
                derive_address("pair", self.address, token0, token1),
                factory=self.address,
                config=self.pair_config,
            )
        )
        self.call(pair, "initialize", token0, token1)
        self._pairs[key] = pair.address
        self._all_pairs.append(pair.address)

        logger.info(
            "pair_created",
            pair=pair.address[-8:],
            token0=token0[-8:],
            token1=token1[-8:],
            total_pairs=len(self._all_pairs),
        )
        return pair.address

    def get_pair(self, token_a: str, token_b: str) -> str:
        """Pair address for two tokens in either order, or the zero address."""
        key = frozenset((normalize_address(token_a), normalize_address(token_b)))
        return self._pairs.get(key, ZERO)

    def all_pairs(self) -> list[str]:
        return list(self._all_pairs)

    def fee_to(self) -> str:
        return self.fee_recipient

    def fee_to_setter(self) -> str:
        return self.setter

    def set_fee_to(self, fee_to: str) -> None:
        """Set the protocol fee recipient (zero address turns the fee off).

        Raises:
            Forbidden: If the caller is not fee_to_setter
        """
        self._require_setter()
        self.fee_recipient = normalize_address(fee_to, validate=True)
        logger.info("fee_to_updated", fee_to=self.fee_recipient[-8:])

    def _require_setter(self) -> None:
        if self.caller != self.setter:
            raise Forbidden(f"{self.caller[-8:]} is not the fee setter")
