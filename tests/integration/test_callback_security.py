"""Callback authorization: only the pair of an in-flight session may call back.

The hook scripts below run inside the coordinator's execute hook and try to
smuggle extra callbacks in while a session is open.
"""

import pytest
from structlog.testing import capture_logs

from pairswap.errors import (
    InvalidContractAddress,
    MalformedPayload,
    PermissionedPairAccess,
)
from pairswap.flashswap import CallbackPayload, SwapType, encode_payload
from pairswap.runtime import Contract
from tests.helpers import ATTACKER, LIQUIDITY, USER, RecordingCoordinator, make_market

GRIEFER = "0x7000000000000000000000000000000000000001"


class Griefer(Contract):
    """Third-party contract that swaps into the coordinator."""

    ENTRYPOINTS = frozenset({"swap_into"})

    def swap_into(self, pair, amount0_out, amount1_out, to, data):
        self.call(pair, "swap", amount0_out, amount1_out, to, data)


class ScriptedCoordinator(RecordingCoordinator):
    """Runs the next queued script at the start of each hook invocation."""

    def __init__(self, runtime, address, config):
        super().__init__(runtime, address, config)
        self.scripts = []

    def execute(self, token_borrow, amount, token_pay, amount_to_repay, user_data):
        if self.scripts:
            self.scripts.pop(0)(self)
        super().execute(token_borrow, amount, token_pay, amount_to_repay, user_data)


@pytest.fixture
def scripted():
    market = make_market(coordinator_cls=ScriptedCoordinator)
    market.runtime.deploy(Griefer(market.runtime, GRIEFER))
    return market


def loan_payload(market, session_id, swap_type=SwapType.SIMPLE_LOAN):
    token = market.settlement.address
    return encode_payload(
        CallbackPayload(
            swap_type=swap_type,
            token_borrow=token,
            amount=1,
            token_pay=token,
            session_id=session_id,
        )
    )


def current_session(coordinator):
    return coordinator.sessions.innermost.session_id


def borrow_settlement(market, amount=1_000):
    token = market.settlement.address
    market.runtime.call(USER, market.coordinator, "start_swap", token, amount, token, b"")


class TestIdleCoordinator:
    """No session is open, so every callback is rejected."""

    def test_direct_callback_rejected(self, market):
        payload = loan_payload(market, 1)
        with pytest.raises(PermissionedPairAccess):
            market.runtime.call(
                ATTACKER,
                market.coordinator,
                "uniswap_v2_call",
                market.coordinator.address,
                1_000,
                0,
                payload,
            )
        assert market.coordinator.executions == []

    def test_pair_initiated_callback_rejected(self, market):
        """A genuine pair calling back outside a session is still refused."""
        pair = market.settlement_wrapped
        payload = loan_payload(market, 1)
        with capture_logs() as logs:
            with pytest.raises(PermissionedPairAccess):
                market.runtime.call(
                    ATTACKER, pair, "swap", 1_000, 0, market.coordinator.address, payload
                )

        assert market.coordinator.executions == []
        assert market.balance(market.settlement, market.coordinator) == 0
        assert pair.get_reserves()[:2] == (LIQUIDITY, LIQUIDITY)
        rejected = [e for e in logs if e["event"] == "callback_rejected"]
        assert rejected[0]["reason"] == "unauthorized_pair"
        assert rejected[0]["log_level"] == "warning"


class TestInFlightSession:
    """Callbacks smuggled in while a session is open."""

    def test_unrelated_pair_rejected(self, scripted):
        other_pair = scripted.other_settlement.address
        payload = loan_payload(scripted, 1)
        scripted.coordinator.scripts.append(
            lambda c: c.call(GRIEFER, "swap_into", other_pair, 1, 0, c.address, payload)
        )
        with pytest.raises(PermissionedPairAccess):
            borrow_settlement(scripted)
        assert scripted.coordinator.executions == []

    def test_foreign_initiator_rejected(self, scripted):
        """The session's own pair, but the swap was started by someone else."""
        pair = scripted.settlement_wrapped.address

        def script(c):
            payload = loan_payload(scripted, current_session(c))
            c.call(GRIEFER, "swap_into", pair, 1, 0, c.address, payload)

        scripted.coordinator.scripts.append(script)
        with pytest.raises(InvalidContractAddress):
            borrow_settlement(scripted)

    def test_session_pair_mismatch_rejected(self, scripted):
        """An outer session's pair cannot answer for the inner session."""
        outer_pair = scripted.settlement_wrapped.address
        other = scripted.other.address

        def inner(c):
            payload = loan_payload(scripted, current_session(c))
            c.call(outer_pair, "swap", 1, 0, c.address, payload)

        scripted.coordinator.scripts.extend([lambda c: c.start_swap(other, 500, other), inner])
        with pytest.raises(PermissionedPairAccess, match="session"):
            borrow_settlement(scripted)

    def test_strategy_mismatch_rejected(self, scripted):
        pair = scripted.settlement_wrapped.address

        def script(c):
            payload = loan_payload(scripted, current_session(c), SwapType.SIMPLE_SWAP)
            c.call(pair, "swap", 1, 0, c.address, payload)

        scripted.coordinator.scripts.append(script)
        with pytest.raises(MalformedPayload, match="does not match"):
            borrow_settlement(scripted)

    def test_garbage_payload_rejected(self, scripted):
        pair = scripted.settlement_wrapped.address
        scripted.coordinator.scripts.append(
            lambda c: c.call(pair, "swap", 1, 0, c.address, b"\x01garbage")
        )
        with pytest.raises(MalformedPayload):
            borrow_settlement(scripted)

    def test_tampered_borrow_pair_rejected(self, scripted):
        """A triangular payload must name the factory's borrow pair."""
        pay_pair = scripted.settlement_wrapped.address

        def script(c):
            payload = CallbackPayload(
                swap_type=SwapType.TRIANGULAR_SWAP,
                token_borrow=scripted.other.address,
                amount=1,
                token_pay=scripted.settlement.address,
                borrow_pair=scripted.other_settlement.address,
                wrapped_amount=5,
                session_id=current_session(c),
            )
            c.call(pay_pair, "swap", 0, 1, c.address, encode_payload(payload))

        scripted.coordinator.scripts.append(script)
        with pytest.raises(MalformedPayload, match="Borrow pair"):
            scripted.runtime.call(
                USER,
                scripted.coordinator,
                "start_swap",
                scripted.other.address,
                1_000,
                scripted.settlement.address,
            )


class TestNestedFlashSwaps:
    """A hook may start another flash swap; each settles on its own session."""

    def test_nested_loan_settles(self, scripted):
        other = scripted.other.address
        scripted.coordinator.scripts.append(lambda c: c.start_swap(other, 500, other))

        borrow_settlement(scripted)

        inner, outer = scripted.coordinator.executions
        assert (inner.token_borrow, inner.amount, inner.amount_to_repay) == (other, 500, 502)
        assert (outer.amount, outer.amount_to_repay) == (1_000, 1_004)
        assert scripted.settlement_wrapped.get_reserves()[0] == LIQUIDITY + 4
        assert scripted.balance(scripted.other, scripted.other_settlement) == LIQUIDITY + 2
        assert len(scripted.coordinator.sessions) == 0

    def test_session_ids_are_fresh(self, scripted):
        seen = []
        scripted.coordinator.scripts.append(lambda c: seen.append(current_session(c)))
        borrow_settlement(scripted)
        scripted.coordinator.scripts.append(lambda c: seen.append(current_session(c)))
        borrow_settlement(scripted)
        assert seen[1] > seen[0]
