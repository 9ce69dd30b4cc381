from decimal import Decimal

import pytest

from common.money import (
    to_money, to_quantity, money_sum, line_amount, percent_of, clamp_non_negative, format_money,
)


def test_to_money_rounds_half_up():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money("10.004") == Decimal("10.00")
    assert to_money(2.675) == Decimal("2.68")  # float goes through str, not binary expansion


def test_to_quantity_keeps_three_places():
    assert to_quantity("2.5") == Decimal("2.500")
    assert to_quantity("1.2345") == Decimal("1.235")


@pytest.mark.parametrize("bad", [None, "abc", "NaN", float("inf")])
def test_invalid_numbers_raise_value_error(bad):
    with pytest.raises(ValueError):
        to_money(bad)


def test_line_amount_rounds_once():
    # 333.33 x 3 = 999.99 exactly; 99.99 x 2.333 = 233.27667 -> 233.28
    assert line_amount("333.33", 3) == Decimal("999.99")
    assert line_amount("99.99", "2.333") == Decimal("233.28")


def test_percent_of_gst():
    assert percent_of(800, 18) == Decimal("144.00")


def test_money_sum_and_clamp():
    assert money_sum(["0.10", "0.20", 0.3]) == Decimal("0.60")
    assert clamp_non_negative(Decimal("-5.00")) == Decimal("0.00")
    assert clamp_non_negative(Decimal("5.00")) == Decimal("5.00")


def test_format_money():
    assert format_money("12345.5", "₹") == "₹12,345.50"
    assert format_money(None) == "0.00"


@pytest.mark.parametrize("convert", [to_money, to_quantity])
def test_too_many_digits_raise_value_error(convert):
    with pytest.raises(ValueError):
        convert("1e30")
