"""Pairswap - constant-product pairs and flash-swap coordination."""

from pairswap.factory import PairFactory
from pairswap.flashswap import FlashSwapCoordinator
from pairswap.pair import PairEngine
from pairswap.runtime import Runtime

__version__ = "0.1.0"
__all__ = ["FlashSwapCoordinator", "PairEngine", "PairFactory", "Runtime", "__version__"]
