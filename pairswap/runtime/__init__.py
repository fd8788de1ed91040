"""Execution environment: contracts, caller identity and transactions."""

from pairswap.runtime.chain import Runtime
from pairswap.runtime.contract import Contract

__all__ = ["Contract", "Runtime"]
