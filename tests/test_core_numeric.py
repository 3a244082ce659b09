import pytest

from psychnorm.core.numeric import (
    non_negative_int,
    round_half_up,
    round_to_multiple,
    safe_div,
    to_float_safe,
    to_int_safe,
)


@pytest.mark.parametrize(
    "value,expected",
    [("42", 42), (" 7.9 ", 7), (3.99, 3), (None, 0), ("abc", 0), ("nan", 0), (float("inf"), 0), ("", 0)],
)
def test_to_int_safe_coerces_malformed_values_to_zero(value, expected):
    assert to_int_safe(value) == expected


def test_to_float_safe_rejects_non_finite():
    assert to_float_safe("2.5") == 2.5
    assert to_float_safe("nan") == 0.0
    assert to_float_safe(float("-inf"), default=-1.0) == -1.0
    assert to_float_safe(object()) == 0.0


def test_non_negative_int_clamps_at_zero():
    assert non_negative_int(-3) == 0
    assert non_negative_int("5") == 5


def test_round_half_up_differs_from_bankers_rounding():
    assert round_half_up(2.5) == 3.0
    assert round_half_up(0.5) == 1.0
    assert round_half_up(2.345, 2) == 2.35
    assert round_half_up(-1.25, 1) == -1.3


def test_round_to_multiple_of_five():
    assert round_to_multiple(52.5, 5) == 55
    assert round_to_multiple(52.4, 5) == 50
    assert round_to_multiple(3.0, 5) == 5
    with pytest.raises(ValueError):
        round_to_multiple(1.0, 0)


def test_safe_div_zero_denominator():
    assert safe_div(10, 4) == 2.5
    assert safe_div(10, 0) == 0.0
