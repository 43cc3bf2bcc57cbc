"""
Unit tests for the numeric coercion helpers.
"""

from decimal import Decimal

import pytest

from portal_metrics.utils.numeric import round_to, to_fixed_text, to_int, to_number


class _Wrapped:
    """Driver-style wrapper carrying the number on ``.value``."""

    def __init__(self, value):
        self.value = value


class _BigNumber:
    """Arbitrary-precision object that only knows how to print itself."""

    def __init__(self, text):
        self._text = text

    def __str__(self):
        return self._text


class _Unprintable:
    def __str__(self):
        raise RuntimeError("cannot render")


class _ExplodingValue:
    @property
    def value(self):
        raise RuntimeError("driver gone")

    def __str__(self):
        return "17"


# =============================================================================
# to_number
# =============================================================================


@pytest.mark.parametrize(
    "value,expected",
    [
        (5, 5.0),
        (2.5, 2.5),
        (-3, -3.0),
        ("42.5", 42.5),
        ("  7 ", 7.0),
        ("1e3", 1000.0),
        (Decimal("12.34"), 12.34),
        (True, 1.0),
        (False, 0.0),
        (b"8.5", 8.5),
    ],
)
def test_to_number_numeric_inputs(value, expected):
    assert to_number(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", [None, "", "   ", "n/a", "12abc", float("nan"), float("inf"), float("-inf"), "nan", "inf"])
def test_to_number_non_numeric_returns_fallback(value):
    assert to_number(value, fallback=-1.0) == -1.0


def test_to_number_default_fallback_is_zero():
    assert to_number(None) == 0.0


def test_to_number_unwraps_value_attribute():
    assert to_number(_Wrapped("3.5")) == 3.5


def test_to_number_unwraps_nested_wrappers():
    assert to_number(_Wrapped(_Wrapped(Decimal("9")))) == 9.0


def test_to_number_wrapper_with_none_value_is_fallback():
    assert to_number(_Wrapped(None), fallback=4.0) == 4.0


def test_to_number_deep_wrapper_chain_does_not_recurse_forever():
    value = "1"
    for _ in range(50):
        value = _Wrapped(value)
    # Too deep to unwrap; str() of the wrapper is not numeric
    assert to_number(value, fallback=-2.0) == -2.0


def test_to_number_parses_string_form_of_object():
    assert to_number(_BigNumber("123456789012345678901234567890")) == pytest.approx(1.2345678901234568e29)


def test_to_number_never_raises_on_unprintable_object():
    assert to_number(_Unprintable(), fallback=6.0) == 6.0


def test_to_number_falls_back_to_str_when_value_property_raises():
    assert to_number(_ExplodingValue()) == 17.0


def test_to_number_huge_int_overflow_is_fallback():
    assert to_number(10**400, fallback=-5.0) == -5.0


# =============================================================================
# to_int
# =============================================================================


def test_to_int_rounds_to_nearest():
    assert to_int("41.6") == 42


def test_to_int_decimal_count():
    assert to_int(Decimal("120")) == 120


def test_to_int_missing_is_fallback():
    assert to_int(None) == 0
    assert to_int("x", fallback=3) == 3


# =============================================================================
# to_fixed_text / round_to
# =============================================================================


@pytest.mark.parametrize(
    "value,digits,expected",
    [
        (42, 2, "42.00"),
        (0.125, 2, "0.13"),
        (2.675, 2, "2.68"),
        (-0.125, 2, "-0.13"),
        (1.5, 0, "2"),
        (0.00004, 4, "0.0000"),
        ("85", 2, "85.00"),
        (Decimal("19.995"), 2, "20.00"),
    ],
)
def test_to_fixed_text_rounds_half_away_from_zero(value, digits, expected):
    assert to_fixed_text(value, digits) == expected


def test_to_fixed_text_negative_zero_is_zero():
    assert to_fixed_text(-0.001, 2) == "0.00"


def test_to_fixed_text_non_numeric_returns_fallback_text():
    assert to_fixed_text("abc") == "0.00"
    assert to_fixed_text(None, 2, fallback_text="-") == "-"


def test_to_fixed_text_large_value_keeps_all_digits():
    assert to_fixed_text(1e20, 2) == "100000000000000000000.00"


def test_round_to_returns_float():
    result = round_to(33.333333)
    assert isinstance(result, float)
    assert result == 33.33


def test_round_to_non_numeric_is_zero():
    assert round_to("n/a") == 0.0


def test_round_to_four_digits():
    assert round_to(0.0383333, 4) == 0.0383
