"""Configuration for pairs and the flash-swap coordinator."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pairswap.constants import (
    MINIMUM_LIQUIDITY,
    NATIVE_PLACEHOLDER,
    TREASURY_FEE_MAX,
    TREASURY_FEE_MIN,
    ZERO,
)
from pairswap.models.types import normalize_address


def clamp_treasury_fee(treasury_fee: int) -> int:
    """Clamp a treasury fee into [TREASURY_FEE_MIN, TREASURY_FEE_MAX]."""
    return max(TREASURY_FEE_MIN, min(treasury_fee, TREASURY_FEE_MAX))


@dataclass(frozen=True)
class PairConfig:
    """Construction parameters shared by every pair a factory creates.

    Attributes:
        name: Liquidity-share token name (also part of the permit domain)
        symbol: Liquidity-share token symbol
        decimals: Liquidity-share token decimals
        treasury_fee: Protocol fee divisor weighting, clamped to [3, 30].
            Lower values give the protocol a larger cut of sqrt(k) growth.
        minimum_liquidity: Shares locked at the zero address on bootstrap
        chain_id: Chain id bound into the permit domain separator
        bind_permit_signer: If True, permit requires the owner to be the
            address derived from the signing public key. If False, any valid
            signature over the digest is accepted.
    """

    name: str = "Pairswap V2"
    symbol: str = "PSWAP-V2"
    decimals: int = 9
    treasury_fee: int = TREASURY_FEE_MIN
    minimum_liquidity: int = MINIMUM_LIQUIDITY
    chain_id: int = 1
    bind_permit_signer: bool = True

    def __post_init__(self) -> None:
        if self.minimum_liquidity <= 0:
            raise ValueError(f"minimum_liquidity must be positive: {self.minimum_liquidity}")
        if self.decimals < 0:
            raise ValueError(f"decimals must be non-negative: {self.decimals}")
        # frozen: bypass __setattr__ to store the clamped value
        object.__setattr__(self, "treasury_fee", clamp_treasury_fee(self.treasury_fee))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PairConfig":
        """Build a config from PAIRSWAP_* environment variables.

        - PAIRSWAP_TREASURY_FEE: treasury fee (default: 3)
        - PAIRSWAP_MINIMUM_LIQUIDITY: bootstrap lock (default: 1000)
        - PAIRSWAP_CHAIN_ID: permit domain chain id (default: 1)
        - PAIRSWAP_BIND_PERMIT_SIGNER: "true"/"false" (default: true)
        """
        env = os.environ if environ is None else environ
        default = cls()
        return cls(
            name=env.get("PAIRSWAP_NAME", default.name),
            symbol=env.get("PAIRSWAP_SYMBOL", default.symbol),
            treasury_fee=int(env.get("PAIRSWAP_TREASURY_FEE", default.treasury_fee)),
            minimum_liquidity=int(
                env.get("PAIRSWAP_MINIMUM_LIQUIDITY", default.minimum_liquidity)
            ),
            chain_id=int(env.get("PAIRSWAP_CHAIN_ID", default.chain_id)),
            bind_permit_signer=env.get("PAIRSWAP_BIND_PERMIT_SIGNER", "true").lower()
            in ("true", "1", "yes"),
        )


@dataclass(frozen=True)
class CoordinatorConfig:
    """Addresses the flash-swap coordinator is wired to.

    All addresses are validated and normalized at construction, so the
    coordinator never has to check for a zero or malformed configuration.

    Attributes:
        wrapped_native: Wrapped-native token (intermediate leg for triangular swaps)
        settlement_asset: Asset paired against for simple flash loans
        factory: Pair factory used to look up pairs
        native_placeholder: Sentinel address meaning "the native currency"
        legacy_payload: Send callback payloads in the legacy comma-delimited
            text format instead of version 1 binary
    """

    wrapped_native: str
    settlement_asset: str
    factory: str
    native_placeholder: str = NATIVE_PLACEHOLDER
    legacy_payload: bool = False

    def __post_init__(self) -> None:
        for field_name in ("wrapped_native", "settlement_asset", "factory", "native_placeholder"):
            value = normalize_address(getattr(self, field_name), validate=True)
            if value == ZERO:
                raise ValueError(f"{field_name} cannot be the zero address")
            object.__setattr__(self, field_name, value)
        if self.wrapped_native == self.settlement_asset:
            raise ValueError("wrapped_native and settlement_asset must differ")
        if self.native_placeholder in (self.wrapped_native, self.settlement_asset):
            raise ValueError("native_placeholder must not alias a real token")


# Default configuration instance
DEFAULT_PAIR_CONFIG = PairConfig()
