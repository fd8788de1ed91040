"""Constant-product AMM math."""

from pairswap.amm.constant_product import ConstantProduct, constant_product, sort_tokens

__all__ = ["ConstantProduct", "constant_product", "sort_tokens"]
