import pytest

from joint_paths.core.constants.base import MAX_UINT256
from joint_paths.core.errors import (
    ArithmeticOverflow,
    DivideByZero,
    InsufficientLiquidity,
)
from joint_paths.core.utils.valuation_math import (
    NO_SELL,
    SellDecision,
    Side,
    apply_sell,
    checked_sub,
    get_amount_out,
    mul_div,
    ratios,
    sell_amount_to_balance,
)

E18 = 10**18


def test_ratios_scale_by_precision():
    assert ratios(150 * E18, 100 * E18, 100 * E18, 100 * E18) == (15_000, 10_000)


def test_ratios_truncate():
    # 2/3 * 10000 = 6666.66 -> 6666
    assert ratios(2, 1, 3, 1) == (6_666, 10_000)


def test_ratios_zero_starting_raises():
    with pytest.raises(DivideByZero):
        ratios(1, 1, 0, 1)
    with pytest.raises(ZeroDivisionError):
        ratios(1, 1, 1, 0)


def test_mul_div_overflow_is_rejected():
    with pytest.raises(ArithmeticOverflow):
        mul_div(MAX_UINT256, 2, 1)


def test_checked_sub_underflow():
    with pytest.raises(ArithmeticOverflow):
        checked_sub(1, 2)


def test_get_amount_out_matches_uniswap_formula():
    amount_in = 10 * E18
    reserve_in = 1_000 * E18
    reserve_out = 2_000 * E18
    expected = (amount_in * 997 * reserve_out) // (reserve_in * 1000 + amount_in * 997)
    assert get_amount_out(amount_in, reserve_in, reserve_out) == expected


def test_get_amount_out_requires_liquidity():
    with pytest.raises(InsufficientLiquidity):
        get_amount_out(0, 10, 10)
    with pytest.raises(InsufficientLiquidity):
        get_amount_out(10, 0, 10)


@pytest.mark.parametrize(
    "starting_a,starting_b,scale_num,scale_den",
    [
        (100 * E18, 100 * E18, 3, 2),
        (100 * E18, 200 * E18, 1, 1),
        (7 * E18, 3 * E18, 5, 4),
        (1_000, 1_000, 1, 2),
    ],
)
def test_proportional_balances_need_no_sell(starting_a, starting_b, scale_num, scale_den):
    current_a = starting_a * scale_num // scale_den
    current_b = starting_b * scale_num // scale_den
    decision = sell_amount_to_balance(
        current_a, current_b, starting_a, starting_b, 10**22, 10**22
    )
    assert decision == NO_SELL
    assert decision.is_noop


@pytest.mark.parametrize(
    "current_a,current_b,starting_a,starting_b",
    [
        (150 * E18, 100 * E18, 0, 100 * E18),
        (150 * E18, 100 * E18, 100 * E18, 0),
        (0, 0, 0, 0),
        (MAX_UINT256, 1, 0, 1),
    ],
)
def test_zero_starting_needs_no_sell(current_a, current_b, starting_a, starting_b):
    decision = sell_amount_to_balance(
        current_a, current_b, starting_a, starting_b, 10**22, 10**22
    )
    assert decision == NO_SELL


def test_overperforming_leg_a_is_sold_and_ratios_converge():
    starting_a = starting_b = 100 * E18
    current_a, current_b = 150 * E18, 100 * E18
    reserve_a = reserve_b = 10**22

    decision = sell_amount_to_balance(
        current_a, current_b, starting_a, starting_b, reserve_a, reserve_b
    )
    assert decision.side is Side.A
    assert 0 < decision.amount < 50 * E18

    bought = get_amount_out(decision.amount, reserve_a, reserve_b)
    after_a, after_b = apply_sell(current_a, current_b, decision, bought)
    ratio_a, ratio_b = ratios(after_a, after_b, starting_a, starting_b)
    assert abs(ratio_a - ratio_b) <= 1


def test_overperforming_leg_b_is_symmetric():
    starting = 100 * E18
    reserve = 10**22
    decision_a = sell_amount_to_balance(
        150 * E18, 100 * E18, starting, starting, reserve, reserve
    )
    decision_b = sell_amount_to_balance(
        100 * E18, 150 * E18, starting, starting, reserve, reserve
    )
    assert decision_b.side is Side.B
    assert decision_b.amount == decision_a.amount


def test_second_pass_accounts_for_price_impact():
    # In a shallow pool the trade moves the price, so the refined amount
    # differs from a marginal-rate-only estimate.
    starting = 100 * E18
    shallow = 500 * E18
    decision = sell_amount_to_balance(
        150 * E18, 100 * E18, starting, starting, shallow, shallow
    )
    numerator = (150 * E18 - 100 * E18) * E18
    marginal_rate = get_amount_out(E18, shallow, shallow)
    first_pass = numerator // (E18 + marginal_rate)
    assert decision.side is Side.A
    assert decision.amount > first_pass


def test_custom_quote_out_is_used():
    calls: list[tuple[int, int, int]] = []

    def one_to_one(amount_in: int, reserve_in: int, reserve_out: int) -> int:
        calls.append((amount_in, reserve_in, reserve_out))
        return amount_in

    decision = sell_amount_to_balance(
        150 * E18, 100 * E18, 100 * E18, 100 * E18, 1, 2, quote_out=one_to_one
    )
    # With a flat 1:1 rate the excess is split evenly.
    assert decision == SellDecision(Side.A, 25 * E18)
    assert calls[0] == (E18, 1, 2)
    assert len(calls) == 2


def test_apply_sell_noop():
    assert apply_sell(5, 7, NO_SELL, 100) == (5, 7)


def test_apply_sell_side_b():
    assert apply_sell(5, 7, SellDecision(Side.B, 3), 2) == (7, 4)


def test_side_other():
    assert Side.A.other is Side.B
    assert Side.B.other is Side.A
