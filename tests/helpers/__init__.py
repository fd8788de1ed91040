"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Account and contract addresses, common amounts
- factories: Runtime, token, pair and coordinator builders
"""

from tests.helpers.constants import (
    ATTACKER,
    COORDINATOR,
    FACTORY,
    FEE_SETTER,
    GENESIS_TIME,
    LIQUIDITY,
    LONE,
    LP,
    POOL_RESERVE,
    OTHER,
    SETTLEMENT,
    TREASURY,
    USER,
    WRAPPED,
)
from tests.helpers.factories import (
    Execution,
    Market,
    RecordingCoordinator,
    add_liquidity,
    fund_token,
    make_factory,
    make_market,
    make_pair,
    make_runtime,
    make_token,
    make_wrapped,
    raw_public_key,
)

__all__ = [
    # Constants
    "ATTACKER",
    "COORDINATOR",
    "FACTORY",
    "FEE_SETTER",
    "GENESIS_TIME",
    "LIQUIDITY",
    "LONE",
    "LP",
    "POOL_RESERVE",
    "OTHER",
    "SETTLEMENT",
    "TREASURY",
    "USER",
    "WRAPPED",
    # Factories
    "Execution",
    "Market",
    "RecordingCoordinator",
    "add_liquidity",
    "fund_token",
    "make_factory",
    "make_market",
    "make_pair",
    "make_runtime",
    "make_token",
    "make_wrapped",
    "raw_public_key",
]
