#!/usr/bin/env python3
"""Run one flash swap against a freshly seeded in-process market.

Deploys a settlement asset, a wrapped-native token, one extra token and the
three pairs between them, then runs the requested strategy through the
coordinator and prints the resulting balances.

Usage:
    # Flash loan of 1000 settlement-asset units
    python scripts/simulate_flash_swap.py --strategy loan --amount 1000

    # Triangular swap with debug logging
    python scripts/simulate_flash_swap.py --strategy triangular --log-level debug
"""

import argparse
import logging
import sys
from pathlib import Path

import structlog

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pairswap.config import CoordinatorConfig, PairConfig  # noqa: E402
from pairswap.factory import PairFactory  # noqa: E402
from pairswap.flashswap import FlashSwapCoordinator  # noqa: E402
from pairswap.models.types import derive_address  # noqa: E402
from pairswap.runtime import Runtime  # noqa: E402
from pairswap.tokens import Token, WrappedNative  # noqa: E402

logger = structlog.get_logger()

LIQUIDITY = 10**12


class FundedCoordinator(FlashSwapCoordinator):
    """Coordinator whose hook mints whatever the repayment needs."""

    def execute(self, token_borrow, amount, token_pay, amount_to_repay, user_data):
        logger.info(
            "hook_executed",
            token_borrow=token_borrow[-8:],
            amount=amount,
            token_pay=token_pay[-8:],
            amount_to_repay=amount_to_repay,
        )
        shortfall = amount_to_repay - self.call(token_pay, "balance_of", self.address)
        if shortfall > 0:
            self.call(token_pay, "mint", self.address, shortfall)


def seed_pair(runtime: Runtime, factory: PairFactory, lp: str, token_a, token_b) -> str:
    pair = runtime.call(lp, factory, "create_pair", token_a.address, token_b.address)
    for token in (token_a, token_b):
        if isinstance(token, WrappedNative):
            runtime.fund(lp, LIQUIDITY)
            runtime.call(lp, token, "deposit", LIQUIDITY)
        else:
            runtime.call(lp, token, "mint", lp, LIQUIDITY)
        runtime.call(lp, token, "transfer", pair, LIQUIDITY)
    runtime.call(lp, pair, "mint", lp)
    return pair


def build_market(pair_config: PairConfig, legacy_payload: bool):
    runtime = Runtime(block_time=1_000)
    lp = derive_address("account", "lp")
    settlement = runtime.deploy(Token(runtime, derive_address("token", "USD"), "Dollar", "USD"))
    wrapped = runtime.deploy(WrappedNative(runtime, derive_address("token", "WNATIVE")))
    other = runtime.deploy(Token(runtime, derive_address("token", "OTH"), "Other", "OTH"))
    factory = runtime.deploy(
        PairFactory(runtime, derive_address("factory"), fee_to_setter=lp, pair_config=pair_config)
    )
    for token_a, token_b in ((settlement, wrapped), (other, wrapped), (other, settlement)):
        seed_pair(runtime, factory, lp, token_a, token_b)

    coordinator = runtime.deploy(
        FundedCoordinator(
            runtime,
            derive_address("coordinator"),
            CoordinatorConfig(
                wrapped_native=wrapped.address,
                settlement_asset=settlement.address,
                factory=factory.address,
                legacy_payload=legacy_payload,
            ),
        )
    )
    return runtime, settlement, wrapped, other, coordinator


def main():
    parser = argparse.ArgumentParser(description="Simulate a flash swap")
    parser.add_argument(
        "--strategy",
        choices=["loan", "swap", "triangular"],
        default="loan",
        help="Flash-swap strategy to run",
    )
    parser.add_argument("--amount", type=int, default=1000, help="Amount to borrow")
    parser.add_argument("--legacy-payload", action="store_true", help="Use text payloads")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning"],
        default="info",
        help="Minimum log level",
    )
    args = parser.parse_args()

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, args.log_level.upper())
        ),
    )

    runtime, settlement, wrapped, other, coordinator = build_market(
        PairConfig.from_env(), args.legacy_payload
    )
    token_borrow, token_pay = {
        "loan": (settlement, settlement),
        "swap": (wrapped, settlement),
        "triangular": (other, settlement),
    }[args.strategy]

    user = derive_address("account", "user")
    runtime.call(
        user, coordinator, "start_swap", token_borrow.address, args.amount, token_pay.address
    )

    print()
    print("=" * 60)
    print(f"Flash swap ({args.strategy}) settled")
    print("=" * 60)
    for token in (settlement, wrapped, other):
        print(f"  coordinator {token.symbol:>8}: {token.balance_of(coordinator.address)}")
    print(f"  events emitted: {len(runtime.events)}")


if __name__ == "__main__":
    main()
