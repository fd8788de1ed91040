"""Constant-product pair engine.

One PairEngine holds the reserves of two tokens and issues fungible
liquidity shares against them. Swaps follow the optimistic protocol: the
requested outputs are transferred first, the recipient may run arbitrary
logic in ``uniswap_v2_call``, and only then is the fee-adjusted invariant
checked against the balances the pair actually holds. The runtime journal
reverts the optimistic transfers if the check fails.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pairswap.amm.constant_product import constant_product
from pairswap.config import DEFAULT_PAIR_CONFIG, PairConfig, clamp_treasury_fee
from pairswap.constants import MAX_RESERVE, MILLIS_PER_SECOND, TIMESTAMP_BITS, ZERO
from pairswap.errors import (
    FailedVerification,
    Forbidden,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidTo,
    InvariantViolation,
    Locked,
    PermitExpired,
    ReserveOverflow,
    ZeroDenominator,
)
from pairswap.math.fixed_point import accumulate, isqrt
from pairswap.models.events import Burn, Mint, Swap, Sync
from pairswap.models.types import (
    address_from_public_key,
    normalize_address,
    validate_uint256,
)
from pairswap.pair.permit import (
    PERMIT_TYPEHASH,
    domain_separator,
    permit_digest,
    verify_signature,
)
from pairswap.safe_int import S
from pairswap.tokens.fungible import FungibleToken

if TYPE_CHECKING:
    from pairswap.runtime.chain import Runtime

logger = structlog.get_logger()


class PairEngine(FungibleToken):
    """Reserves, liquidity shares, fee accrual and price oracle for one pair.

    Invariants at the end of every successful call:
    - reserve0/reserve1 equal the pair's token balances (unless tokens were
      donated since, which skim/sync reconcile)
    - both reserves are at most 2^128 - 2
    - sum of share balances equals total_supply
    - lock is 0
    """

    ENTRYPOINTS = FungibleToken.ENTRYPOINTS | {
        "initialize",
        "get_reserves",
        "swap",
        "mint",
        "burn",
        "mint_helper",
        "burn_helper",
        "skim",
        "sync",
        "permit",
        "nonce",
        "set_treasury_fee_percent",
    }

    def __init__(
        self,
        runtime: Runtime,
        address: str,
        factory: str,
        config: PairConfig = DEFAULT_PAIR_CONFIG,
    ) -> None:
        super().__init__(runtime, address, config.name, config.symbol, config.decimals)
        self.factory = normalize_address(factory, validate=True)
        self.token0 = ZERO
        self.token1 = ZERO
        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0
        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0
        self.k_last = 0
        self.treasury_fee = config.treasury_fee
        self.minimum_liquidity = config.minimum_liquidity
        self.bind_permit_signer = config.bind_permit_signer
        self.lock = 0
        self.nonces: dict[str, int] = {}
        self.domain_separator = domain_separator(config.name, config.chain_id, self.address)
        self.permit_type_hash = PERMIT_TYPEHASH

    # =========================================================================
    # Setup and views
    # =========================================================================

    def initialize(self, token0: str, token1: str) -> None:
        """Bind the pair to its tokens. Factory only, once.

        Raises:
            Forbidden: If the caller is not the factory or tokens are already set
        """
        if self.caller != self.factory:
            raise Forbidden(f"Only the factory may initialize {self.address[-8:]}")
        if self.token0 != ZERO:
            raise Forbidden(f"Pair {self.address[-8:]} is already initialized")
        self.token0 = normalize_address(token0, validate=True)
        self.token1 = normalize_address(token1, validate=True)

    def get_reserves(self) -> tuple[int, int, int]:
        """Return (reserve0, reserve1, block_timestamp_last)."""
        return self.reserve0, self.reserve1, self.block_timestamp_last

    def nonce(self, owner: str) -> int:
        return self.nonces.get(normalize_address(owner), 0)

    def set_treasury_fee_percent(self, treasury_fee: int) -> None:
        """Set the protocol fee weighting, clamped to [3, 30].

        Raises:
            Forbidden: If the caller is not the factory's fee setter
        """
        if self.caller != self.call(self.factory, "fee_to_setter"):
            raise Forbidden(f"{self.caller[-8:]} cannot set the treasury fee")
        self.treasury_fee = clamp_treasury_fee(treasury_fee)
        logger.info(
            "treasury_fee_updated", pair=self.address[-8:], treasury_fee=self.treasury_fee
        )

    # =========================================================================
    # Swap
    # =========================================================================

    def swap(self, amount0_out: int, amount1_out: int, to: str, data: bytes | str = b"") -> None:
        """Send outputs to ``to``, optionally call it back, then verify input.

        When ``data`` is non-empty, ``to.uniswap_v2_call(caller, amount0_out,
        amount1_out, data)`` runs after the outputs are sent and before the
        invariant check, which is how flash swaps repay.

        Raises:
            InsufficientOutputAmount: If both outputs are zero or either is not a uint256
            InsufficientLiquidity: If an output is not below its reserve
            InvalidTo: If ``to`` is one of the pair's tokens
            InsufficientInputAmount: If nothing was paid in
            InvariantViolation: If the fee-adjusted product decreased
        """
        for amount in (amount0_out, amount1_out):
            try:
                validate_uint256(amount)
            except ValueError as exc:
                raise InsufficientOutputAmount(f"Invalid output amount: {exc}") from exc
        if amount0_out == 0 and amount1_out == 0:
            raise InsufficientOutputAmount("Swap must request some output")
        reserve0, reserve1, _ = self.get_reserves()
        if amount0_out >= reserve0 or amount1_out >= reserve1:
            raise InsufficientLiquidity(
                f"Outputs ({amount0_out}, {amount1_out}) exceed reserves ({reserve0}, {reserve1})"
            )
        to = normalize_address(to)
        if to in (self.token0, self.token1):
            raise InvalidTo(f"Recipient {to[-8:]} is a pair token")

        # optimistic transfer
        if amount0_out > 0:
            self._send(self.token0, to, amount0_out)
        if amount1_out > 0:
            self._send(self.token1, to, amount1_out)
        if data:
            self.call(to, "uniswap_v2_call", self.caller, amount0_out, amount1_out, data)

        balance0, balance1 = self._balances()
        amount0_in = max(balance0 - (reserve0 - amount0_out), 0)
        amount1_in = max(balance1 - (reserve1 - amount1_out), 0)
        if amount0_in == 0 and amount1_in == 0:
            raise InsufficientInputAmount("No input received")

        if not constant_product.invariant_holds(
            balance0, balance1, amount0_in, amount1_in, reserve0, reserve1
        ):
            raise InvariantViolation(
                f"K decreased: balances ({balance0}, {balance1}), "
                f"inputs ({amount0_in}, {amount1_in}), reserves ({reserve0}, {reserve1})"
            )

        self.update(balance0, balance1, reserve0, reserve1)
        self.emit(
            Swap(
                contract=self.address,
                sender=self.caller,
                amount0_in=amount0_in,
                amount1_in=amount1_in,
                amount0_out=amount0_out,
                amount1_out=amount1_out,
                to=to,
            )
        )
        logger.info(
            "swap_settled",
            pair=self.address[-8:],
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
            flash=bool(data),
        )

    # =========================================================================
    # Liquidity
    # =========================================================================

    def mint(self, to: str) -> int:
        """Mint shares to ``to`` for the tokens deposited since the last update."""
        return self.mint_helper(to)

    def burn(self, to: str) -> tuple[int, int]:
        """Redeem the shares sent to the pair, paying both tokens to ``to``."""
        return self.burn_helper(to)

    def mint_helper(self, to: str) -> int:
        """Mint shares for tokens sent to the pair since the last update.

        The first deposit mints ``isqrt(amount0 * amount1) - minimum_liquidity``
        and locks ``minimum_liquidity`` at the zero address. Later deposits
        mint proportionally to the smaller side.

        Raises:
            InsufficientLiquidityMinted: If the deposit earns no shares
        """
        reserve0, reserve1, _ = self.get_reserves()
        balance0, balance1 = self._balances()
        amount0 = (S(balance0) - S(reserve0)).value
        amount1 = (S(balance1) - S(reserve1)).value

        fee_on = self.mint_fee(reserve0, reserve1)
        # read after mint_fee, which can change it
        total_supply = self.total_supply
        if total_supply == 0:
            root = isqrt(S(amount0) * S(amount1))
            if root <= self.minimum_liquidity:
                raise InsufficientLiquidityMinted(
                    f"Initial deposit too small: sqrt={root} <= {self.minimum_liquidity}"
                )
            liquidity = root - self.minimum_liquidity
            self._issue(ZERO, self.minimum_liquidity)
        else:
            liquidity = min(
                (S(amount0) * S(total_supply) // S(reserve0)).value,
                (S(amount1) * S(total_supply) // S(reserve1)).value,
            )
        if liquidity <= 0:
            raise InsufficientLiquidityMinted(f"Deposit ({amount0}, {amount1}) mints nothing")

        self._issue(to, liquidity)
        self.update(balance0, balance1, reserve0, reserve1)
        if fee_on:
            self.k_last = (S(self.reserve0) * S(self.reserve1)).value
        self.emit(
            Mint(contract=self.address, sender=self.caller, amount0=amount0, amount1=amount1)
        )

        logger.info(
            "liquidity_added",
            pair=self.address[-8:],
            to=normalize_address(to)[-8:],
            amount0=amount0,
            amount1=amount1,
            liquidity=liquidity,
        )
        return liquidity

    def burn_helper(self, to: str) -> tuple[int, int]:
        """Redeem the shares held by the pair itself for both tokens.

        Raises:
            InsufficientLiquidityBurned: If either redeemed amount is zero
        """
        reserve0, reserve1, _ = self.get_reserves()
        balance0, balance1 = self._balances()
        liquidity = self.balance_of(self.address)

        fee_on = self.mint_fee(reserve0, reserve1)
        total_supply = self.total_supply
        amount0 = (S(liquidity) * S(balance0) // S(total_supply)).value
        amount1 = (S(liquidity) * S(balance1) // S(total_supply)).value
        if amount0 == 0 or amount1 == 0:
            raise InsufficientLiquidityBurned(
                f"Burning {liquidity} shares redeems ({amount0}, {amount1})"
            )

        self._redeem(self.address, liquidity)
        self._send(self.token0, to, amount0)
        self._send(self.token1, to, amount1)
        balance0, balance1 = self._balances()
        self.update(balance0, balance1, reserve0, reserve1)
        if fee_on:
            self.k_last = (S(self.reserve0) * S(self.reserve1)).value
        self.emit(
            Burn(
                contract=self.address,
                sender=self.caller,
                amount0=amount0,
                amount1=amount1,
                to=to,
            )
        )

        logger.info(
            "liquidity_removed",
            pair=self.address[-8:],
            to=normalize_address(to)[-8:],
            amount0=amount0,
            amount1=amount1,
            liquidity=liquidity,
        )
        return amount0, amount1

    def mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """Mint the protocol's share of sqrt(k) growth to the factory's fee_to.

        Returns:
            True if the protocol fee is on

        Raises:
            ZeroDenominator: If the fee denominator evaluates to zero
        """
        fee_to = self.call(self.factory, "fee_to")
        fee_on = fee_to != ZERO
        k_last = self.k_last
        if fee_on:
            if k_last != 0:
                root_k = isqrt(S(reserve0) * S(reserve1))
                root_k_last = isqrt(k_last)
                if root_k > root_k_last:
                    numerator = S(self.total_supply) * (S(root_k) - S(root_k_last))
                    denominator = S(root_k) * S(self.treasury_fee) + S(root_k_last)
                    if denominator == 0:
                        raise ZeroDenominator("Protocol fee denominator is zero")
                    liquidity = (numerator // denominator).value
                    if liquidity > 0:
                        self._issue(fee_to, liquidity)
                        logger.debug(
                            "protocol_fee_minted",
                            pair=self.address[-8:],
                            fee_to=fee_to[-8:],
                            liquidity=liquidity,
                        )
        elif k_last != 0:
            self.k_last = 0
        return fee_on

    # =========================================================================
    # Reserves and oracle
    # =========================================================================

    def update(self, balance0: int, balance1: int, reserve0: int, reserve1: int) -> None:
        """Store balances as reserves and accumulate prices over elapsed time.

        Elapsed time and the accumulators wrap (64-bit and 256-bit).

        Raises:
            ReserveOverflow: If a balance exceeds 2^128 - 2
        """
        if balance0 > MAX_RESERVE or balance1 > MAX_RESERVE:
            raise ReserveOverflow(f"Balances ({balance0}, {balance1}) exceed 2^128 - 2")

        block_timestamp = self.runtime.block_time % (1 << TIMESTAMP_BITS)
        elapsed = S(block_timestamp).wrapping_sub(self.block_timestamp_last, TIMESTAMP_BITS).value
        if elapsed > 0 and reserve0 != 0 and reserve1 != 0:
            self.price0_cumulative_last = accumulate(
                self.price0_cumulative_last, reserve1, reserve0, elapsed
            )
            self.price1_cumulative_last = accumulate(
                self.price1_cumulative_last, reserve0, reserve1, elapsed
            )

        self.reserve0 = balance0
        self.reserve1 = balance1
        self.block_timestamp_last = block_timestamp
        self.emit(Sync(contract=self.address, reserve0=balance0, reserve1=balance1))

    def skim(self, to: str) -> None:
        """Send balances in excess of the reserves to ``to``.

        Raises:
            Locked: If skim or sync is already running on this pair
        """
        self._acquire_lock()
        try:
            balance0, balance1 = self._balances()
            self._send(self.token0, to, (S(balance0) - S(self.reserve0)).value)
            self._send(self.token1, to, (S(balance1) - S(self.reserve1)).value)
        finally:
            self.lock = 0

    def sync(self) -> None:
        """Force reserves to match balances.

        Raises:
            Locked: If skim or sync is already running on this pair
        """
        self._acquire_lock()
        try:
            balance0, balance1 = self._balances()
            self.update(balance0, balance1, self.reserve0, self.reserve1)
        finally:
            self.lock = 0

    # =========================================================================
    # Permit
    # =========================================================================

    def permit(
        self,
        public_key: bytes,
        signature: bytes,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
    ) -> None:
        """Approve ``spender`` on behalf of ``owner`` with a signed message.

        ``deadline`` is in seconds. The owner's nonce is consumed before the
        signature is checked; a failed check reverts the whole call, nonce
        included.

        Raises:
            PermitExpired: If the deadline has passed
            FailedVerification: If the signature or signer does not match
        """
        if (S(deadline) * S(MILLIS_PER_SECOND)).value < self.runtime.block_time:
            raise PermitExpired(f"Deadline {deadline}s is before {self.runtime.block_time}ms")
        owner = normalize_address(owner, validate=True)
        spender = normalize_address(spender, validate=True)

        nonce = self.nonce(owner)
        digest = permit_digest(
            self.domain_separator,
            owner,
            spender,
            value,
            nonce,
            deadline,
            type_hash=self.permit_type_hash,
        )
        self.nonces[owner] = (S(nonce) + S(1)).value

        if self.bind_permit_signer and address_from_public_key(public_key) != owner:
            raise FailedVerification(f"Public key does not belong to {owner[-8:]}")
        if not verify_signature(public_key, signature, digest):
            raise FailedVerification(f"Bad permit signature for {owner[-8:]}")

        self._approve(owner, spender, value)
        logger.debug("permit_accepted", owner=owner[-8:], spender=spender[-8:], nonce=nonce)

    # =========================================================================
    # Internals
    # =========================================================================

    def _balances(self) -> tuple[int, int]:
        return (
            self.call(self.token0, "balance_of", self.address),
            self.call(self.token1, "balance_of", self.address),
        )

    def _send(self, token: str, to: str, amount: int) -> None:
        self.call(token, "transfer", to, amount)

    def _acquire_lock(self) -> None:
        if self.lock != 0:
            raise Locked(f"Pair {self.address[-8:]} is locked")
        self.lock = 1
