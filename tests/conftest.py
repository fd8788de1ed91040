"""Pytest configuration and fixtures."""

import pytest
import structlog
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from pairswap.factory import PairFactory
from pairswap.pair import PairEngine
from pairswap.runtime import Runtime
from pairswap.tokens import Token
from tests.helpers import (
    OTHER,
    POOL_RESERVE,
    SETTLEMENT,
    Market,
    make_factory,
    make_market,
    make_pair,
    make_runtime,
    make_token,
)


@pytest.fixture(autouse=True)
def _quiet_logs():
    """Drop log output below warning while tests run."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(30))
    yield
    structlog.reset_defaults()


# =============================================================================
# Runtime and contracts
# =============================================================================


@pytest.fixture
def runtime() -> Runtime:
    return make_runtime()


@pytest.fixture
def token_a(runtime: Runtime) -> Token:
    """Lower-addressed token (token0 of the pair fixture)."""
    return make_token(runtime, SETTLEMENT, "USD")


@pytest.fixture
def token_b(runtime: Runtime) -> Token:
    """Higher-addressed token (token1 of the pair fixture)."""
    return make_token(runtime, OTHER, "OTH")


@pytest.fixture
def factory(runtime: Runtime) -> PairFactory:
    return make_factory(runtime)


@pytest.fixture
def empty_pair(runtime: Runtime, factory: PairFactory, token_a: Token, token_b: Token):
    """Initialized pair with no liquidity."""
    return make_pair(runtime, factory, token_a, token_b, 0, 0)


@pytest.fixture
def pair(runtime: Runtime, factory: PairFactory, token_a: Token, token_b: Token) -> PairEngine:
    """Pair seeded with POOL_RESERVE of both tokens."""
    return make_pair(runtime, factory, token_a, token_b, POOL_RESERVE, POOL_RESERVE)


@pytest.fixture
def market() -> Market:
    """Seeded three-pair market with a recording coordinator."""
    return make_market()


# =============================================================================
# Permit keys
# =============================================================================


@pytest.fixture
def signing_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


@pytest.fixture
def other_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()
