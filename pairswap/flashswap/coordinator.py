"""Flash-swap coordinator.

Lets a caller borrow from a pair with no collateral, run arbitrary logic in
``execute`` and repay before the outermost runtime call returns. Three
strategies are chosen from the requested assets:

- simple loan: borrow and repay the same asset from one pair
- simple swap: borrow one asset, repay the other, one pair, one side wrapped native
- triangular swap: neither side is wrapped native, so route through two
  pairs via the wrapped-native asset

Flow: ``start_swap`` -> ``PairEngine.swap(..., data=payload)`` -> optimistic
transfer -> ``uniswap_v2_call`` -> ``*_execute`` -> ``execute`` -> repayment ->
the pair re-checks its invariant.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, ClassVar

import structlog

from pairswap.amm.constant_product import constant_product, sort_tokens
from pairswap.constants import ZERO
from pairswap.errors import (
    AmountTooBig,
    BorrowTokenNotAvailable,
    InvalidContractAddress,
    MalformedPayload,
    PairNotAvailable,
    PayTokenNotAvailable,
    PermissionedPairAccess,
    ZeroAddress,
)
from pairswap.flashswap.codec import (
    CallbackPayload,
    SwapType,
    decode_payload,
    encode_legacy,
    encode_payload,
)
from pairswap.flashswap.session import FlashSession, SessionStack
from pairswap.models.types import normalize_address
from pairswap.runtime.contract import Contract

if TYPE_CHECKING:
    from pairswap.config import CoordinatorConfig
    from pairswap.runtime.chain import Runtime

logger = structlog.get_logger()


class FlashSwapCoordinator(Contract):
    """Initiates flash swaps and settles them from the pair's callback.

    Subclass and override ``execute`` to do something with the borrowed
    funds. The base hook does nothing, so the coordinator must already hold
    the repayment.
    """

    ENTRYPOINTS: ClassVar[frozenset[str]] = frozenset({"start_swap", "uniswap_v2_call"})

    def __init__(self, runtime: Runtime, address: str, config: CoordinatorConfig) -> None:
        super().__init__(runtime, address)
        self.config = config
        self.native_placeholder = config.native_placeholder
        self.wrapped_native = config.wrapped_native
        self.settlement_asset = config.settlement_asset
        self.factory = config.factory
        self.sessions = SessionStack()

    @property
    def permissioned_pair(self) -> str:
        """Pair authorized for the innermost in-flight swap, or the zero address."""
        return self.sessions.permissioned_pair

    # =========================================================================
    # Initiation
    # =========================================================================

    def start_swap(
        self, token_borrow: str, amount: int, token_pay: str, user_data: bytes | str = b""
    ) -> None:
        """Borrow ``amount`` of token_borrow and repay in token_pay.

        Either token may be the native placeholder; it is swapped for the
        wrapped-native token and wrapped/unwrapped around ``execute``.
        """
        token_borrow = normalize_address(token_borrow, validate=True)
        token_pay = normalize_address(token_pay, validate=True)
        if isinstance(user_data, str):
            user_data = user_data.encode("utf-8")

        is_borrowing_native = token_borrow == self.native_placeholder
        is_paying_native = token_pay == self.native_placeholder
        if is_borrowing_native:
            token_borrow = self.wrapped_native
        if is_paying_native:
            token_pay = self.wrapped_native

        logger.debug(
            "flash_swap_requested",
            token_borrow=token_borrow[-8:],
            token_pay=token_pay[-8:],
            amount=amount,
            is_borrowing_native=is_borrowing_native,
            is_paying_native=is_paying_native,
        )

        if token_borrow == token_pay:
            self.simple_flash_loan(
                token_borrow, amount, is_borrowing_native, is_paying_native, user_data
            )
        elif self.wrapped_native in (token_borrow, token_pay):
            self.simple_flash_swap(
                token_borrow, amount, token_pay, is_borrowing_native, is_paying_native, user_data
            )
        else:
            self.triangular_flash_swap(token_borrow, amount, token_pay, user_data)

    def simple_flash_loan(
        self,
        token_borrow: str,
        amount: int,
        is_borrowing_native: bool,
        is_paying_native: bool,
        user_data: bytes,
    ) -> None:
        """Borrow and repay the same asset from its settlement-asset pair.

        The borrowed asset is paired with the settlement asset, or with
        wrapped native when it is the settlement asset itself.

        Raises:
            ZeroAddress: If no such pair exists
        """
        if token_borrow == self.settlement_asset:
            other = self.wrapped_native
        else:
            other = self.settlement_asset
        pair = self.call(self.factory, "get_pair", token_borrow, other)
        if pair == ZERO:
            raise ZeroAddress(f"No pair for {token_borrow[-8:]}/{other[-8:]}")

        payload = CallbackPayload(
            swap_type=SwapType.SIMPLE_LOAN,
            token_borrow=token_borrow,
            amount=amount,
            token_pay=token_borrow,
            is_borrowing_native=is_borrowing_native,
            is_paying_native=is_paying_native,
            user_data=user_data,
        )
        self._initiate(payload, pair, token_borrow, other, amount)

    def simple_flash_swap(
        self,
        token_borrow: str,
        amount: int,
        token_pay: str,
        is_borrowing_native: bool,
        is_paying_native: bool,
        user_data: bytes,
    ) -> None:
        """Borrow one asset of a pair and repay in the other.

        Raises:
            PairNotAvailable: If the two assets have no pair
        """
        pair = self.call(self.factory, "get_pair", token_borrow, token_pay)
        if pair == ZERO:
            raise PairNotAvailable(f"No pair for {token_borrow[-8:]}/{token_pay[-8:]}")

        payload = CallbackPayload(
            swap_type=SwapType.SIMPLE_SWAP,
            token_borrow=token_borrow,
            amount=amount,
            token_pay=token_pay,
            is_borrowing_native=is_borrowing_native,
            is_paying_native=is_paying_native,
            user_data=user_data,
        )
        self._initiate(payload, pair, token_borrow, token_pay, amount)

    def triangular_flash_swap(
        self, token_borrow: str, amount: int, token_pay: str, user_data: bytes
    ) -> None:
        """Borrow via the borrow/wrapped pair, repay via the pay/wrapped pair.

        Wrapped native is flash-borrowed from the pay pair, sold into the
        borrow pair for exactly ``amount`` of the borrow asset, and the pay
        pair is repaid in the pay asset.

        Raises:
            BorrowTokenNotAvailable: If the borrow asset has no wrapped pair
            PayTokenNotAvailable: If the pay asset has no wrapped pair
            AmountTooBig: If amount would drain the borrow pair
        """
        borrow_pair = self.call(self.factory, "get_pair", token_borrow, self.wrapped_native)
        if borrow_pair == ZERO:
            raise BorrowTokenNotAvailable(f"No wrapped-native pair for {token_borrow[-8:]}")
        pay_pair = self.call(self.factory, "get_pair", token_pay, self.wrapped_native)
        if pay_pair == ZERO:
            raise PayTokenNotAvailable(f"No wrapped-native pair for {token_pay[-8:]}")

        borrow_balance = self.call(token_borrow, "balance_of", borrow_pair)
        if amount >= borrow_balance:
            raise AmountTooBig(f"Borrow pair holds {borrow_balance}, requested {amount}")
        wrapped_balance = self.call(self.wrapped_native, "balance_of", borrow_pair)
        wrapped_amount = constant_product.get_amount_in(amount, wrapped_balance, borrow_balance)

        self.triangular_flash_swap_helper(
            token_borrow, amount, token_pay, borrow_pair, pay_pair, wrapped_amount, user_data
        )

    def triangular_flash_swap_helper(
        self,
        token_borrow: str,
        amount: int,
        token_pay: str,
        borrow_pair: str,
        pay_pair: str,
        wrapped_amount: int,
        user_data: bytes,
    ) -> None:
        """Flash-borrow the wrapped-native leg from the pay pair."""
        payload = CallbackPayload(
            swap_type=SwapType.TRIANGULAR_SWAP,
            token_borrow=token_borrow,
            amount=amount,
            token_pay=token_pay,
            borrow_pair=borrow_pair,
            wrapped_amount=wrapped_amount,
            user_data=user_data,
        )
        self._initiate(payload, pay_pair, self.wrapped_native, token_pay, wrapped_amount)

    def _initiate(
        self,
        payload: CallbackPayload,
        pair: str,
        token_out: str,
        token_other: str,
        amount_out: int,
    ) -> None:
        """Open a session and call ``swap`` on the pair; close it on return."""
        token0, _ = sort_tokens(token_out, token_other)
        amount0_out, amount1_out = (amount_out, 0) if token_out == token0 else (0, amount_out)

        session = self.sessions.open(payload.swap_type, pair)
        try:
            if self.config.legacy_payload:
                data: bytes | str = encode_legacy(payload)
            else:
                data = encode_payload(replace(payload, session_id=session.session_id))
            logger.debug(
                "flash_swap_initiated",
                session=session.session_id,
                strategy=payload.swap_type.value,
                pair=pair[-8:],
                amount_out=amount_out,
            )
            self.call(pair, "swap", amount0_out, amount1_out, self.address, data)
        finally:
            self.sessions.close(session)

        logger.info(
            "flash_swap_settled",
            session=session.session_id,
            strategy=payload.swap_type.value,
            pair=pair[-8:],
            amount=payload.amount,
        )

    # =========================================================================
    # Callback
    # =========================================================================

    def uniswap_v2_call(self, sender: str, amount0: int, amount1: int, data: bytes | str) -> None:
        """Entry point pairs call mid-swap.

        Raises:
            PermissionedPairAccess: If the caller is not the pair authorized
                for the payload's session
            InvalidContractAddress: If sender is not this coordinator
            MalformedPayload: If data cannot be decoded
        """
        pair = self.caller
        if pair not in self.sessions.pairs:
            logger.warning("callback_rejected", reason="unauthorized_pair", caller=pair[-8:])
            raise PermissionedPairAccess(f"{pair[-8:]} is not an authorized pair")
        if normalize_address(sender) != self.address:
            logger.warning("callback_rejected", reason="foreign_sender", sender=sender[-8:])
            raise InvalidContractAddress(f"Swap was not initiated by {self.address[-8:]}")

        payload = decode_payload(data)
        session = self._session_for(payload)
        if session.pair != pair:
            logger.warning(
                "callback_rejected",
                reason="wrong_session_pair",
                caller=pair[-8:],
                session=session.session_id,
            )
            raise PermissionedPairAccess(
                f"{pair[-8:]} is not authorized for session {session.session_id}"
            )
        if session.strategy is not payload.swap_type:
            raise MalformedPayload(
                f"Payload {payload.swap_type.value} does not match session "
                f"{session.session_id} ({session.strategy.value})"
            )

        if payload.swap_type is SwapType.SIMPLE_LOAN:
            self.simple_flash_loan_execute(payload, pair)
        elif payload.swap_type is SwapType.SIMPLE_SWAP:
            self.simple_flash_swap_execute(payload, pair)
        else:
            self.triangular_flash_swap_execute(payload, pair)

    def _session_for(self, payload: CallbackPayload) -> FlashSession:
        if payload.session_id is None:
            session = self.sessions.innermost
        else:
            session = self.sessions.find(payload.session_id)
        if session is None:
            raise PermissionedPairAccess(f"No in-flight session {payload.session_id}")
        return session

    # =========================================================================
    # Settlement
    # =========================================================================

    def simple_flash_loan_execute(self, payload: CallbackPayload, pair: str) -> None:
        """Run the hook and repay principal plus ``amount * 3 // 997 + 1``."""
        if payload.is_borrowing_native:
            self.call(self.wrapped_native, "withdraw", payload.amount)
        amount_to_repay = constant_product.flash_loan_repayment(payload.amount)
        self._execute_and_repay(payload, pair, payload.token_borrow, amount_to_repay)

    def simple_flash_swap_execute(self, payload: CallbackPayload, pair: str) -> None:
        """Run the hook and repay the constant-product price of the borrow."""
        if payload.is_borrowing_native:
            self.call(self.wrapped_native, "withdraw", payload.amount)
        balance_borrow = self.call(payload.token_borrow, "balance_of", pair)
        balance_pay = self.call(payload.token_pay, "balance_of", pair)
        amount_to_repay = constant_product.flash_swap_repayment(
            payload.amount, balance_pay, balance_borrow
        )
        self._execute_and_repay(payload, pair, payload.token_pay, amount_to_repay)

    def triangular_flash_swap_execute(self, payload: CallbackPayload, pay_pair: str) -> None:
        """Convert the wrapped leg into the borrow asset, then repay the pay pair.

        Raises:
            MalformedPayload: If the payload's borrow pair is not the factory's
        """
        borrow_pair = payload.borrow_pair or ZERO
        expected = self.call(self.factory, "get_pair", payload.token_borrow, self.wrapped_native)
        if borrow_pair != expected:
            raise MalformedPayload(f"Borrow pair {borrow_pair[-8:]} is not the factory's pair")

        self.call(self.wrapped_native, "transfer", borrow_pair, payload.wrapped_amount)
        token0, _ = sort_tokens(payload.token_borrow, self.wrapped_native)
        if payload.token_borrow == token0:
            amount0_out, amount1_out = payload.amount, 0
        else:
            amount0_out, amount1_out = 0, payload.amount
        self.call(borrow_pair, "swap", amount0_out, amount1_out, self.address, b"")

        balance_wrapped = self.call(self.wrapped_native, "balance_of", pay_pair)
        balance_pay = self.call(payload.token_pay, "balance_of", pay_pair)
        amount_to_repay = constant_product.flash_swap_repayment(
            payload.wrapped_amount, balance_pay, balance_wrapped
        )
        self._execute_and_repay(payload, pay_pair, payload.token_pay, amount_to_repay)

    def _execute_and_repay(
        self, payload: CallbackPayload, pair: str, token_repay: str, amount_to_repay: int
    ) -> None:
        token_borrowed = (
            self.native_placeholder if payload.is_borrowing_native else payload.token_borrow
        )
        token_to_repay = self.native_placeholder if payload.is_paying_native else token_repay
        self.execute(
            token_borrowed, payload.amount, token_to_repay, amount_to_repay, payload.user_data
        )
        if payload.is_paying_native:
            self.call(self.wrapped_native, "deposit", amount_to_repay)
        self.call(token_repay, "transfer", pair, amount_to_repay)

        logger.debug(
            "flash_swap_repaid",
            pair=pair[-8:],
            token=token_repay[-8:],
            amount_to_repay=amount_to_repay,
        )

    # =========================================================================
    # Extension point
    # =========================================================================

    def execute(
        self,
        token_borrow: str,
        amount: int,
        token_pay: str,
        amount_to_repay: int,
        user_data: bytes,
    ) -> None:
        """User logic run while holding the borrowed funds.

        When this returns the coordinator must hold ``amount_to_repay`` of
        ``token_pay`` (native currency in its purse when ``token_pay`` is the
        native placeholder). Repayment is sent afterwards; do not repay here.

        Args:
            token_borrow: Asset received (native placeholder if unwrapped)
            amount: Amount received
            token_pay: Asset owed (native placeholder if it will be wrapped)
            amount_to_repay: Amount owed
            user_data: Bytes passed to start_swap
        """
