"""Constant-product pair engine and permit helpers."""

from pairswap.pair.engine import PairEngine
from pairswap.pair.permit import domain_separator, permit_digest, verify_signature

__all__ = ["PairEngine", "domain_separator", "permit_digest", "verify_signature"]
