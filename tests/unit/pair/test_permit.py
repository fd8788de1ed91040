"""Tests for signed liquidity-share approvals (permit)."""

import pytest

from pairswap.config import PairConfig
from pairswap.errors import FailedVerification, PermitExpired
from pairswap.models.types import address_from_public_key
from pairswap.pair import domain_separator, permit_digest, verify_signature
from tests.helpers import USER, make_factory, make_pair, raw_public_key

SPENDER = "0x5000000000000000000000000000000000000001"
DEADLINE = 3_600  # seconds; the runtime clock starts at 1 second


def sign_permit(pair, key, owner, spender=SPENDER, value=500, deadline=DEADLINE, nonce=None):
    if nonce is None:
        nonce = pair.nonce(owner)
    digest = permit_digest(pair.domain_separator, owner, spender, value, nonce, deadline)
    return key.sign(digest)


class TestDigest:
    """Tests for the typed-data digest helpers."""

    def test_domain_binds_contract_and_chain(self):
        base = domain_separator("Pairswap V2", 1, "0x" + "1" * 40)
        assert base != domain_separator("Pairswap V2", 2, "0x" + "1" * 40)
        assert base != domain_separator("Pairswap V2", 1, "0x" + "2" * 40)
        assert len(base) == 32

    def test_digest_depends_on_nonce(self):
        sep = domain_separator("Pairswap V2", 1, "0x" + "1" * 40)
        owner = "0x" + "a" * 40
        assert permit_digest(sep, owner, SPENDER, 1, 0, 10) != permit_digest(
            sep, owner, SPENDER, 1, 1, 10
        )

    def test_verify_signature(self, signing_key):
        digest = b"\x01" * 32
        public_key = raw_public_key(signing_key)
        assert verify_signature(public_key, signing_key.sign(digest), digest)
        assert not verify_signature(public_key, signing_key.sign(digest), b"\x02" * 32)
        assert not verify_signature(b"short", b"sig", digest)


class TestPermit:
    """Tests for PairEngine.permit."""

    def test_valid_permit_sets_allowance(self, runtime, pair, signing_key):
        public_key = raw_public_key(signing_key)
        owner = address_from_public_key(public_key)
        signature = sign_permit(pair, signing_key, owner)

        runtime.call(USER, pair, "permit", public_key, signature, owner, SPENDER, 500, DEADLINE)

        assert pair.allowance(owner, SPENDER) == 500
        assert pair.nonce(owner) == 1

    def test_replay_rejected(self, runtime, pair, signing_key):
        public_key = raw_public_key(signing_key)
        owner = address_from_public_key(public_key)
        signature = sign_permit(pair, signing_key, owner)
        args = (public_key, signature, owner, SPENDER, 500, DEADLINE)

        runtime.call(USER, pair, "permit", *args)
        with pytest.raises(FailedVerification):
            runtime.call(USER, pair, "permit", *args)
        assert pair.nonce(owner) == 1

    def test_expired_deadline_raises(self, runtime, pair, signing_key):
        public_key = raw_public_key(signing_key)
        owner = address_from_public_key(public_key)
        signature = sign_permit(pair, signing_key, owner, deadline=0)

        with pytest.raises(PermitExpired):
            runtime.call(USER, pair, "permit", public_key, signature, owner, SPENDER, 500, 0)

    def test_wrong_signer_rejected(self, runtime, pair, signing_key, other_key):
        """A valid signature from a key that does not own the address fails."""
        owner = address_from_public_key(raw_public_key(signing_key))
        signature = sign_permit(pair, other_key, owner)

        with pytest.raises(FailedVerification):
            runtime.call(
                USER,
                pair,
                "permit",
                raw_public_key(other_key),
                signature,
                owner,
                SPENDER,
                500,
                DEADLINE,
            )
        assert pair.allowance(owner, SPENDER) == 0
        assert pair.nonce(owner) == 0

    def test_tampered_value_rejected(self, runtime, pair, signing_key):
        public_key = raw_public_key(signing_key)
        owner = address_from_public_key(public_key)
        signature = sign_permit(pair, signing_key, owner, value=500)

        with pytest.raises(FailedVerification):
            runtime.call(USER, pair, "permit", public_key, signature, owner, SPENDER, 501, DEADLINE)
        assert pair.nonce(owner) == 0

    def test_unbound_signer_accepts_any_valid_key(
        self, runtime, token_a, token_b, signing_key, other_key
    ):
        factory = make_factory(runtime, PairConfig(bind_permit_signer=False))
        pair = make_pair(runtime, factory, token_a, token_b, 10**6, 10**6)
        owner = address_from_public_key(raw_public_key(signing_key))
        signature = sign_permit(pair, other_key, owner)

        public_key = raw_public_key(other_key)

        runtime.call(USER, pair, "permit", public_key, signature, owner, SPENDER, 500, DEADLINE)
        assert pair.allowance(owner, SPENDER) == 500
