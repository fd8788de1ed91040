"""Fungible tokens: capability protocol and reference implementations."""

from pairswap.tokens.capability import TokenCapability
from pairswap.tokens.erc20 import Token
from pairswap.tokens.fungible import FungibleToken
from pairswap.tokens.wrapped import WrappedNative

__all__ = ["FungibleToken", "Token", "TokenCapability", "WrappedNative"]
