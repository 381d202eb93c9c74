"""
Unsigned fixed-point helpers.

Rates are basis points (1/10000). Division truncates. Amounts and
intermediates are bounded to 128 bits; heights, durations and ids to 63
bits. Exceeding either raises instead of wrapping.
"""

from assetcover.errors import ArithmeticOverflowError

BPS = 10000
U128_MAX = 2 ** 128 - 1
MAX_AMOUNT = U128_MAX
MAX_INDEX = 2 ** 63 - 1


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > U128_MAX:
        raise ArithmeticOverflowError(f"{a} * {b} exceeds 128 bits")
    return result


def checked_add(a: int, b: int, limit: int = MAX_AMOUNT) -> int:
    result = a + b
    if result > limit:
        raise ArithmeticOverflowError(f"{a} + {b} exceeds {limit}")
    return result


def apply_bps(amount: int, bps: int) -> int:
    """amount * bps / 10000, truncated."""
    return checked_mul(amount, bps) // BPS


def ensure_amount(value: int) -> int:
    """Reject amounts that do not fit 128 bits."""
    if value > MAX_AMOUNT:
        raise ArithmeticOverflowError(f"{value} exceeds {MAX_AMOUNT}")
    return value


def ensure_index(value: int) -> int:
    """Reject heights, durations and ids that do not fit 63 bits."""
    if value > MAX_INDEX:
        raise ArithmeticOverflowError(f"{value} exceeds {MAX_INDEX}")
    return value
