"""Typed-data digests and signature checks for liquidity-share permits.

The signing digest follows the EIP-712 layout:

    keccak256(0x1901 || domain_separator || keccak256(abi.encode(
        PERMIT_TYPEHASH, owner, spender, value, nonce, deadline)))

and is verified as an Ed25519 signature over those 32 bytes.
"""

from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from eth_abi import encode  # type: ignore[attr-defined]
from eth_utils import keccak

from pairswap.constants import DOMAIN_TYPE, PERMIT_TYPE

PERMIT_TYPEHASH = keccak(text=PERMIT_TYPE)
DOMAIN_TYPEHASH = keccak(text=DOMAIN_TYPE)
DOMAIN_VERSION = "1"


def domain_separator(name: str, chain_id: int, verifying_contract: str) -> bytes:
    """Hash of the signing domain a pair's permits are bound to."""
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                DOMAIN_TYPEHASH,
                keccak(text=name),
                keccak(text=DOMAIN_VERSION),
                chain_id,
                verifying_contract,
            ],
        )
    )


def permit_digest(
    separator: bytes,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
    type_hash: bytes = PERMIT_TYPEHASH,
) -> bytes:
    """Digest a permit signer signs."""
    struct_hash = keccak(
        encode(
            ["bytes32", "address", "address", "uint256", "uint256", "uint256"],
            [type_hash, owner, spender, value, nonce, deadline],
        )
    )
    return keccak(b"\x19\x01" + separator + struct_hash)


def verify_signature(public_key: bytes, signature: bytes, digest: bytes) -> bool:
    """Check an Ed25519 signature over digest. Malformed keys verify as False."""
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, digest)
    except (InvalidSignature, ValueError):
        return False
    return True
