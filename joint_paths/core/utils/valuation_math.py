"""Fixed-point valuation math for a two-provider joint position.

Pure functions only: proportional-return ratios and the post-liquidation
sell-amount solver that equalizes both providers' returns after a trade on a
constant-product pool. All quantities are non-negative integers in the token's
smallest unit and every division truncates.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from joint_paths.core.constants.base import (
    DEFAULT_AMM_FEE_BPS,
    MAX_BPS,
    MAX_UINT256,
    RATIO_PRECISION,
)
from joint_paths.core.errors import (
    ArithmeticOverflow,
    DivideByZero,
    InsufficientLiquidity,
)

QuoteOut = Callable[[int, int, int], int]


class Side(StrEnum):
    A = "A"
    B = "B"

    @property
    def other(self) -> Side:
        return Side.B if self is Side.A else Side.A


@dataclass(frozen=True)
class SellDecision:
    side: Side | None
    amount: int

    @property
    def is_noop(self) -> bool:
        return self.side is None or self.amount == 0


NO_SELL = SellDecision(None, 0)


# ── checked uint256 arithmetic ───────────────────────────────────────────────


def _check_uint(value: int, op: str) -> int:
    if value < 0 or value > MAX_UINT256:
        raise ArithmeticOverflow(f"{op} out of uint256 range")
    return value


def checked_add(a: int, b: int) -> int:
    return _check_uint(a + b, "addition")


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow(f"subtraction underflow ({a} - {b})")
    return a - b


def checked_mul(a: int, b: int) -> int:
    return _check_uint(a * b, "multiplication")


def checked_div(a: int, b: int) -> int:
    if b == 0:
        raise DivideByZero("division by zero")
    return a // b


def mul_div(a: int, b: int, denominator: int) -> int:
    return checked_div(checked_mul(a, b), denominator)


# ── AMM output formula ──────────────────────────────────────────────────────


def get_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int = DEFAULT_AMM_FEE_BPS,
) -> int:
    """Constant-product output for ``amount_in`` after the pool fee."""
    if amount_in <= 0:
        raise InsufficientLiquidity("insufficient input amount")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity("insufficient liquidity")
    amount_in_with_fee = checked_mul(amount_in, MAX_BPS - fee_bps)
    numerator = checked_mul(amount_in_with_fee, reserve_out)
    denominator = checked_add(checked_mul(reserve_in, MAX_BPS), amount_in_with_fee)
    return numerator // denominator


# ── ratios ──────────────────────────────────────────────────────────────────


def ratios(
    current_a: int,
    current_b: int,
    starting_a: int,
    starting_b: int,
    precision: int = RATIO_PRECISION,
) -> tuple[int, int]:
    """Return ``current / starting`` for both legs scaled by ``precision``.

    Raises ``DivideByZero`` when a starting amount is zero; callers guard.
    """
    ratio_a = mul_div(current_a, precision, starting_a)
    ratio_b = mul_div(current_b, precision, starting_b)
    return ratio_a, ratio_b


# ── sell-amount solver ──────────────────────────────────────────────────────


def _solve_sell_amount(
    current_sell: int,
    current_buy: int,
    starting_sell: int,
    starting_buy: int,
    reserve_sell: int,
    reserve_buy: int,
    precision: int,
    quote_out: QuoteOut,
) -> int:
    # Selling x of the sell leg for x * rate / precision of the buy leg
    # equalizes the ratios when
    #   (c_sell - s_sell * c_buy / s_buy) * P = x * (P + s_sell * rate / s_buy)
    numerator = checked_mul(
        checked_sub(current_sell, mul_div(starting_sell, current_buy, starting_buy)),
        precision,
    )

    # First pass at the marginal rate of one whole sell token.
    exchange_rate = quote_out(precision, reserve_sell, reserve_buy)
    sell_amount = checked_div(
        numerator,
        checked_add(precision, mul_div(starting_sell, exchange_rate, starting_buy)),
    )
    if sell_amount == 0:
        return 0

    # Second pass at the effective rate of the estimated trade size. One
    # refinement only; the result is not iterated to convergence.
    exchange_rate = mul_div(
        quote_out(sell_amount, reserve_sell, reserve_buy), precision, sell_amount
    )
    return checked_div(
        numerator,
        checked_add(precision, mul_div(starting_sell, exchange_rate, starting_buy)),
    )


def sell_amount_to_balance(
    current_a: int,
    current_b: int,
    starting_a: int,
    starting_b: int,
    reserve_a: int,
    reserve_b: int,
    *,
    precision_a: int = 10**18,
    precision_b: int = 10**18,
    quote_out: QuoteOut = get_amount_out,
    ratio_precision: int = RATIO_PRECISION,
) -> SellDecision:
    """Decide which leg to sell, and how much, so both providers end with the
    same proportional return once the trade executes against the given reserves.

    ``precision_a`` / ``precision_b`` are ``10**decimals`` of each leg's token:
    the reference trade size for the marginal-rate estimate.
    """
    if starting_a == 0 or starting_b == 0:
        return NO_SELL

    ratio_a, ratio_b = ratios(
        current_a, current_b, starting_a, starting_b, ratio_precision
    )
    if ratio_a == ratio_b:
        return NO_SELL

    if ratio_a > ratio_b:
        amount = _solve_sell_amount(
            current_a,
            current_b,
            starting_a,
            starting_b,
            reserve_a,
            reserve_b,
            precision_a,
            quote_out,
        )
        side = Side.A
    else:
        amount = _solve_sell_amount(
            current_b,
            current_a,
            starting_b,
            starting_a,
            reserve_b,
            reserve_a,
            precision_b,
            quote_out,
        )
        side = Side.B

    if amount == 0:
        return NO_SELL
    return SellDecision(side, amount)


def apply_sell(
    current_a: int, current_b: int, decision: SellDecision, bought: int
) -> tuple[int, int]:
    """Balances after selling ``decision.amount`` and receiving ``bought``."""
    if decision.is_noop:
        return current_a, current_b
    if decision.side is Side.A:
        return (
            checked_sub(current_a, decision.amount),
            checked_add(current_b, bought),
        )
    return (
        checked_add(current_a, bought),
        checked_sub(current_b, decision.amount),
    )
