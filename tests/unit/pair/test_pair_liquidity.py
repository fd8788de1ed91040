"""Tests for PairEngine liquidity: bootstrap, mint, burn and protocol fee."""

import pytest

from pairswap.constants import MINIMUM_LIQUIDITY, ZERO
from pairswap.errors import (
    Forbidden,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    UnknownEntrypoint,
)
from pairswap.math import isqrt
from pairswap.models.events import Mint
from tests.helpers import FACTORY, FEE_SETTER, LP, POOL_RESERVE, TREASURY, USER, add_liquidity


class TestInitialize:
    """Tests for factory-only initialization."""

    def test_tokens_bound_in_order(self, empty_pair, token_a, token_b):
        assert empty_pair.token0 == token_a.address
        assert empty_pair.token1 == token_b.address
        assert empty_pair.get_reserves() == (0, 0, 0)

    def test_only_factory_initializes(self, runtime, empty_pair, token_a, token_b):
        with pytest.raises(Forbidden):
            runtime.call(USER, empty_pair, "initialize", token_a.address, token_b.address)

    def test_initialize_once(self, runtime, empty_pair, token_a, token_b):
        with pytest.raises(Forbidden, match="already initialized"):
            runtime.call(FACTORY, empty_pair, "initialize", token_a.address, token_b.address)

    def test_ledger_ops_are_not_entrypoints(self, runtime, pair):
        """Share issuance, fee minting and reserve updates are internal to the pair."""
        internal = (("_issue", (USER, 10)), ("mint_fee", (1, 1)), ("update", (1, 1, 1, 1)))
        for method, args in internal:
            with pytest.raises(UnknownEntrypoint):
                runtime.call(USER, pair, method, *args)


class TestMint:
    """Tests for mint and mint_helper."""

    def test_bootstrap_locks_minimum_liquidity(self, pair):
        assert pair.total_supply == POOL_RESERVE
        assert pair.balance_of(ZERO) == MINIMUM_LIQUIDITY
        assert pair.balance_of(LP) == POOL_RESERVE - MINIMUM_LIQUIDITY
        assert pair.get_reserves()[:2] == (POOL_RESERVE, POOL_RESERVE)

    def test_bootstrap_emits_mint(self, runtime, pair):
        mints = runtime.events_of("mint", contract=pair.address)
        assert len(mints) == 1
        assert isinstance(mints[0], Mint)
        assert (mints[0].amount0, mints[0].amount1) == (POOL_RESERVE, POOL_RESERVE)

    def test_bootstrap_too_small_raises(self, runtime, empty_pair, token_a, token_b):
        """sqrt(1000 * 1000) does not exceed the locked minimum."""
        with pytest.raises(InsufficientLiquidityMinted):
            add_liquidity(runtime, empty_pair.address, token_a, token_b, 1_000, 1_000)
        assert empty_pair.total_supply == 0

    def test_bootstrap_uneven(self, runtime, empty_pair, token_a, token_b):
        minted = add_liquidity(runtime, empty_pair.address, token_a, token_b, 4_000, 9_000)
        assert minted == isqrt(4_000 * 9_000) - MINIMUM_LIQUIDITY

    def test_proportional_mint_takes_smaller_side(self, runtime, pair, token_a, token_b):
        minted = add_liquidity(runtime, pair.address, token_a, token_b, 10**5, 2 * 10**5, USER)
        assert minted == 10**5
        assert pair.balance_of(USER) == 10**5

    def test_mint_entrypoint_matches_helper(self, runtime, pair, token_a, token_b):
        """mint(to) and mint_helper(to) issue the same shares for the same deposit."""
        for method in ("mint", "mint_helper"):
            for token in (token_a, token_b):
                runtime.call(USER, token, "mint", USER, 5_000)
                runtime.call(USER, token, "transfer", pair.address, 5_000)
            assert runtime.call(USER, pair, method, USER) == 5_000
        assert pair.balance_of(USER) == 10_000

    def test_mint_with_nothing_deposited_raises(self, runtime, pair):
        with pytest.raises(InsufficientLiquidityMinted):
            runtime.call(USER, pair, "mint_helper", USER)


class TestBurn:
    """Tests for burn and burn_helper."""

    def test_burn_redeems_pro_rata(self, runtime, pair, token_a, token_b):
        shares = 10**5
        runtime.call(LP, pair, "transfer", pair.address, shares)
        amount0, amount1 = runtime.call(LP, pair, "burn_helper", USER)

        assert (amount0, amount1) == (shares, shares)
        assert token_a.balance_of(USER) == shares
        assert token_b.balance_of(USER) == shares
        assert pair.total_supply == POOL_RESERVE - shares
        assert pair.get_reserves()[:2] == (POOL_RESERVE - shares, POOL_RESERVE - shares)

    @pytest.mark.parametrize(
        "deposit0,deposit1", [(10**5, 10**5), (12_345, 54_321), (7_777, 1_001)]
    )
    def test_mint_then_burn_returns_at_most_deposit(
        self, runtime, pair, token_a, token_b, deposit0, deposit1
    ):
        shares = add_liquidity(runtime, pair.address, token_a, token_b, deposit0, deposit1, USER)
        runtime.call(USER, pair, "transfer", pair.address, shares)
        amount0, amount1 = runtime.call(USER, pair, "burn", USER)

        assert amount0 <= deposit0
        assert amount1 <= deposit1
        assert pair.balance_of(USER) == 0

    def test_bootstrap_round_trip_loses_locked_liquidity(
        self, runtime, empty_pair, token_a, token_b
    ):
        shares = add_liquidity(runtime, empty_pair.address, token_a, token_b, 10**6, 10**6, USER)
        runtime.call(USER, empty_pair, "transfer", empty_pair.address, shares)
        amounts = runtime.call(USER, empty_pair, "burn", USER)
        assert amounts == (10**6 - MINIMUM_LIQUIDITY, 10**6 - MINIMUM_LIQUIDITY)

    def test_burn_nothing_raises(self, runtime, pair):
        with pytest.raises(InsufficientLiquidityBurned):
            runtime.call(LP, pair, "burn_helper", USER)


class TestProtocolFee:
    """Tests for fee_to share minting on sqrt(k) growth."""

    def _grow_k(self, runtime, pair, token_a):
        runtime.call(USER, token_a, "mint", USER, 10**5)
        runtime.call(USER, token_a, "transfer", pair.address, 10**5)
        runtime.call(USER, pair, "swap", 0, 90_661, USER, b"")

    def test_fee_off_by_default(self, runtime, pair, token_a, token_b):
        self._grow_k(runtime, pair, token_a)
        add_liquidity(runtime, pair.address, token_a, token_b, 1_000, 1_000)
        assert pair.k_last == 0
        assert pair.balance_of(TREASURY) == 0

    def test_fee_minted_after_growth(self, runtime, factory, pair, token_a, token_b):
        runtime.call(FEE_SETTER, factory, "set_fee_to", TREASURY)
        add_liquidity(runtime, pair.address, token_a, token_b, 1_000, 1_000)
        reserve0, reserve1, _ = pair.get_reserves()
        assert pair.k_last == reserve0 * reserve1

        self._grow_k(runtime, pair, token_a)
        reserve0, reserve1, _ = pair.get_reserves()
        root_k, root_k_last = isqrt(reserve0 * reserve1), isqrt(pair.k_last)
        expected = (pair.total_supply * (root_k - root_k_last)) // (
            root_k * pair.treasury_fee + root_k_last
        )

        add_liquidity(runtime, pair.address, token_a, token_b, 1_000, 1_000)
        assert pair.balance_of(TREASURY) == expected == 34

    def test_fee_off_clears_k_last(self, runtime, factory, pair, token_a, token_b):
        runtime.call(FEE_SETTER, factory, "set_fee_to", TREASURY)
        add_liquidity(runtime, pair.address, token_a, token_b, 1_000, 1_000)
        runtime.call(FEE_SETTER, factory, "set_fee_to", ZERO)
        add_liquidity(runtime, pair.address, token_a, token_b, 1_000, 1_000)
        assert pair.k_last == 0

    @pytest.mark.parametrize("requested,stored", [(1, 3), (10, 10), (50, 30)])
    def test_set_treasury_fee_clamps(self, runtime, pair, requested, stored):
        runtime.call(FEE_SETTER, pair, "set_treasury_fee_percent", requested)
        assert pair.treasury_fee == stored

    def test_set_treasury_fee_requires_setter(self, runtime, pair):
        with pytest.raises(Forbidden):
            runtime.call(USER, pair, "set_treasury_fee_percent", 10)
