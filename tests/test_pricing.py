from decimal import Decimal

import pytest

from tutorslot.services.pricing import PricingCalculator, round_money, to_money


def test_total_for_one_hour_equals_rate():
    assert PricingCalculator().total_amount(Decimal("200000"), 60) == Decimal("200000.00")


def test_total_scales_with_duration():
    calc = PricingCalculator()
    assert calc.total_amount(Decimal("200000"), 90) == Decimal("300000.00")
    assert calc.total_amount(Decimal("200000"), 30) == Decimal("100000.00")


def test_total_rounds_half_up_to_cents():
    # 10.00 * 50 / 60 = 8.3333...
    assert PricingCalculator().total_amount(Decimal("10.00"), 50) == Decimal("8.33")
    # 0.03 * 30 / 60 = 0.015
    assert PricingCalculator().total_amount(Decimal("0.03"), 30) == Decimal("0.02")


def test_recomputing_is_stable():
    calc = PricingCalculator()
    first = calc.total_amount(Decimal("123.45"), 45)
    for _ in range(5):
        assert calc.total_amount(Decimal("123.45"), 45) == first


def test_negative_inputs_rejected():
    calc = PricingCalculator()
    with pytest.raises(ValueError):
        calc.total_amount(Decimal("-1"), 60)
    with pytest.raises(ValueError):
        calc.total_amount(Decimal("100"), -5)


def test_to_money_refuses_floats():
    with pytest.raises(TypeError):
        to_money(0.1)
    assert to_money("12.50") == Decimal("12.50")
    assert to_money(7) == Decimal(7)


def test_round_money():
    assert round_money(Decimal("2.005")) == Decimal("2.01")
    assert round_money(Decimal("2.004")) == Decimal("2.00")
