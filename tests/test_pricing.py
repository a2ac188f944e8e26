import pytest

from honey_order_service.pricing import JAR_PRICES, calculate_amount


@pytest.mark.parametrize("jar_size,unit_price", sorted(JAR_PRICES.items()))
def test_amount_is_unit_price_times_quantity(jar_size, unit_price):
    assert calculate_amount(jar_size, 1) == unit_price
    assert calculate_amount(jar_size, 3) == unit_price * 3
    assert calculate_amount(jar_size, "4") == unit_price * 4


def test_half_kilo_pair_costs_1100():
    amount = calculate_amount("500g", "2")
    assert amount == 1100
    assert isinstance(amount, int)


@pytest.mark.parametrize("jar_size", ["2kg", "", None, "500G", 500])
def test_unknown_size_is_invalid_for_any_quantity(jar_size):
    for quantity in (1, "2", 10):
        assert calculate_amount(jar_size, quantity) is None


@pytest.mark.parametrize("quantity", [0, "0", -1, "-3", "abc", "", None, float("nan"), float("inf"), "inf", True])
def test_non_positive_or_non_finite_quantity_is_invalid(quantity):
    assert calculate_amount("250g", quantity) is None


def test_fractional_quantity_keeps_fraction():
    assert calculate_amount("250g", "1.5") == 450
    assert calculate_amount("500g", 0.5) == 275
