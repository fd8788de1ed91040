"""Protocol constants for the pair engine and flash-swap coordinator."""

from pairswap.models.types import ZERO_ADDRESS, is_valid_address


def _validate_address(name: str, address: str) -> str:
    """Validate and return a well-known address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Sentinel standing for the chain's native currency in start_swap.
# Aliased to the wrapped-native token before any pair is touched.
NATIVE_PLACEHOLDER = _validate_address("native", "0x" + "e" * 40)

# Issuance/redemption counterparty and "no pair" answer from the factory
ZERO = _validate_address("zero", ZERO_ADDRESS)

# Constant-product fee: 0.3% of input, expressed over 1000
FEE_DENOMINATOR = 1000
FEE_NUMERATOR = 997
FEE_INPUT_MULTIPLIER = FEE_DENOMINATOR - FEE_NUMERATOR  # = 3

# Liquidity shares permanently locked at the zero address on bootstrap
MINIMUM_LIQUIDITY = 1000

# Protocol fee divisor weighting, clamped to this range
TREASURY_FEE_MIN = 3
TREASURY_FEE_MAX = 30

# Reserves live in 128-bit slots; the top value is reserved
MAX_RESERVE = 2**128 - 2

# Price accumulators are 256-bit counters; timestamps are 64-bit
PRICE_SHIFT = 128
ACCUMULATOR_BITS = 256
TIMESTAMP_BITS = 64

# Permit deadlines are given in seconds, the runtime clock runs in milliseconds
MILLIS_PER_SECOND = 1000

PERMIT_TYPE = "Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)"
DOMAIN_TYPE = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
