"""Constant-product pricing for AMM swaps. Pure integer arithmetic.

    k         = R_in x R_out
    out       = R_out - k // (R_in + in)
    after_fee = out x (10000 - fee_bps) // 10000
    min_out   = after_fee x (10000 - slippage_bps) // 10000

Fee and slippage are rounded to basis points separately and applied in two
floor divisions, in that order.
"""

from src.px_common.errors import (
    InvalidQuantityError,
    InvalidSlippageError,
    InvalidTokenError,
    ReservesUnavailableError,
)
from src.px_common.quantities import to_bps
from src.px_directory.domain.models import Pool, PoolReserves, Token

BPS_DENOMINATOR = 10_000


def opposite_token(pool: Pool, token: Token) -> Token:
    """Return the other token of the pool."""
    if token.id == pool.token_base.id:
        return pool.token_quote
    if token.id == pool.token_quote.id:
        return pool.token_base
    raise InvalidTokenError(token.id, pool.id)


def apply_bps_discount(quantity: int, ratio: float) -> int:
    """quantity x (10000 - bps) // 10000, floor."""
    return quantity * (BPS_DENOMINATOR - to_bps(ratio)) // BPS_DENOMINATOR


def compute_swap_output(
    pool: Pool,
    reserves: PoolReserves | None,
    input_token: Token,
    input_quantity: int,
    slippage_tolerance: float,
) -> int:
    """Minimum output, in base units of the opposite token, for a swap input.

    Raises InvalidTokenError if input_token is not in the pool,
    InvalidSlippageError outside [0, 1], ReservesUnavailableError when
    reserves were never fetched or a side is empty.
    """
    if not pool.has_token(input_token.id):
        raise InvalidTokenError(input_token.id, pool.id)
    if not 0 <= slippage_tolerance <= 1:
        raise InvalidSlippageError(slippage_tolerance)
    if input_quantity < 0:
        raise InvalidQuantityError(f"input quantity must be non-negative, got {input_quantity}")
    if reserves is None:
        raise ReservesUnavailableError(pool.id)

    output_token = opposite_token(pool, input_token)
    reserve_in = reserves.of(input_token.id)
    reserve_out = reserves.of(output_token.id)
    if not reserve_in or not reserve_out:
        raise ReservesUnavailableError(pool.id, "Pool reserves are empty")

    k = reserve_in * reserve_out
    new_reserve_out = k // (reserve_in + input_quantity)
    output = reserve_out - new_reserve_out

    output_after_fees = apply_bps_discount(output, pool.fee_rate)
    return apply_bps_discount(output_after_fees, slippage_tolerance)
