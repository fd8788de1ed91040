"""Pairswap error classes.

Every error carries a stable ``code`` string. Raising any of them inside a
runtime call aborts the whole outermost call and restores the journaled state.
Arithmetic faults live in ``pairswap.safe_int`` and derive from
ArithmeticError instead.
"""


class PairswapError(Exception):
    """Base error for pair, coordinator and runtime operations."""

    code = "pairswap"


# =============================================================================
# Pair engine
# =============================================================================


class PairError(PairswapError):
    """Base error for pair engine operations."""

    code = "pair"


class InsufficientOutputAmount(PairError):
    """Swap requested zero output on both sides."""

    code = "insufficient_output_amount"


class InsufficientLiquidity(PairError):
    """Requested output is not strictly below the reserve."""

    code = "insufficient_liquidity"


class InvalidTo(PairError):
    """Swap recipient is one of the pair's own tokens."""

    code = "invalid_to"


class InsufficientInputAmount(PairError):
    """No input arrived during the swap."""

    code = "insufficient_input_amount"


class InvariantViolation(PairError):
    """Fee-adjusted constant product decreased (UniswapV2: K)."""

    code = "k"


class InsufficientLiquidityMinted(PairError):
    """Deposit was too small to mint any liquidity."""

    code = "insufficient_liquidity_minted"


class InsufficientLiquidityBurned(PairError):
    """Burn would redeem zero of one of the tokens."""

    code = "insufficient_liquidity_burned"


class ZeroDenominator(PairError):
    """Protocol fee denominator evaluated to zero."""

    code = "denominator_is_zero"


class Locked(PairError):
    """Reentrant call into skim or sync."""

    code = "locked"


class ReserveOverflow(PairError):
    """Balance does not fit the 128-bit reserve slot."""

    code = "overflow"


class PermitExpired(PairError):
    """Permit deadline is in the past."""

    code = "expired"


class Forbidden(PairError):
    """Caller is not allowed to perform this operation."""

    code = "forbidden"


class FailedVerification(PairError):
    """Permit signature did not verify."""

    code = "failed_verification"


class IdenticalAddresses(PairError):
    """Pair requested for a token against itself."""

    code = "identical_addresses"


class PairExists(PairError):
    """Factory already holds a pair for the tokens."""

    code = "pair_exists"


# =============================================================================
# Fungible ledgers (liquidity shares and reference tokens)
# =============================================================================


class LedgerError(PairswapError):
    """Base error for balance and allowance bookkeeping."""

    code = "ledger"


class InsufficientBalance(LedgerError):
    """Holder balance is lower than the amount moved."""

    code = "insufficient_balance"


class InsufficientAllowance(LedgerError):
    """Spender allowance is lower than the amount moved."""

    code = "insufficient_allowance"


class InvalidApproval(LedgerError):
    """Allowance change rejected (self-approval or non-decreasing decrease)."""

    code = "invalid_approval"


class ZeroAmount(LedgerError):
    """Wrap or unwrap of a zero amount."""

    code = "zero_amount"


# =============================================================================
# Flash-swap coordinator
# =============================================================================


class FlashSwapError(PairswapError):
    """Base error for flash-swap coordination."""

    code = "flash_swap"


class PermissionedPairAccess(FlashSwapError):
    """Callback caller is not the pair authorized for the session."""

    code = "permissioned_pair_access"


class InvalidContractAddress(FlashSwapError):
    """Callback sender claim is not this coordinator."""

    code = "invalid_contract_address"


class ZeroAddress(FlashSwapError):
    """No pair exists for a simple flash loan."""

    code = "zero_address"


class PairNotAvailable(FlashSwapError):
    """No direct pair exists for a simple flash swap."""

    code = "requested_pair_is_not_available"


class BorrowTokenNotAvailable(FlashSwapError):
    """Borrow asset has no pair with the wrapped-native asset."""

    code = "requested_borrow_token_is_not_available"


class PayTokenNotAvailable(FlashSwapError):
    """Pay asset has no pair with the wrapped-native asset."""

    code = "requested_pay_token_is_not_available"


class AmountTooBig(FlashSwapError):
    """Borrow amount would drain the borrow pair."""

    code = "amount_too_big"


class MalformedPayload(FlashSwapError):
    """Callback payload could not be decoded.

    The payload is produced by the coordinator itself, so this always
    indicates a protocol bug and is never retried.
    """

    code = "malformed_payload"


# =============================================================================
# Runtime
# =============================================================================


class RuntimeFault(PairswapError):
    """Base error for the execution environment."""

    code = "runtime"


class UnknownContract(RuntimeFault):
    """No contract is deployed at the address."""

    code = "unknown_contract"


class NoActiveCall(RuntimeFault):
    """Caller identity requested outside of a runtime call."""

    code = "no_active_call"


class UnknownEntrypoint(RuntimeFault):
    """Contract does not expose the requested method."""

    code = "unknown_entrypoint"
