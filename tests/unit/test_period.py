"""
Unit tests for period resolution and reporting windows.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from portal_metrics.engine.period import resolve_window
from portal_metrics.models.enums import Period
from portal_metrics.models.metrics import MetricWindow
from tests.conftest import TODAY, make_test_settings


def test_resolve_window_week():
    period, window, _ = resolve_window("week", today=TODAY, settings=make_test_settings())

    assert period == Period.WEEK
    assert window.days == 7
    assert window.date_from == date(2026, 10, 13)
    assert window.date_to == date(2026, 10, 20)


def test_resolve_window_excludes_reference_day():
    _, window, prev = resolve_window("week", today=date(2026, 10, 19), settings=make_test_settings())

    assert window.date_from == date(2026, 10, 12)
    assert window.date_to == date(2026, 10, 19)
    assert prev.date_from == date(2026, 10, 5)
    assert prev.date_to == date(2026, 10, 12)


def test_resolve_window_month():
    period, window, _ = resolve_window("month", today=TODAY, settings=make_test_settings())

    assert period == Period.MONTH
    assert window.days == 30
    assert (window.date_to - window.date_from).days == 30


@pytest.mark.parametrize("selector", ["quarter", "", None, "WEEKLY", "🙂"])
def test_resolve_window_unknown_selector_is_week(selector):
    period, window, _ = resolve_window(selector, today=TODAY, settings=make_test_settings())

    assert period == Period.WEEK
    assert window.days == 7


def test_resolve_window_selector_is_case_insensitive():
    period, _, _ = resolve_window(" Month ", today=TODAY, settings=make_test_settings())
    assert period == Period.MONTH


def test_previous_window_is_adjacent_and_same_length():
    _, window, prev = resolve_window("month", today=TODAY, settings=make_test_settings())

    assert prev.days == window.days
    assert prev.date_to == window.date_from
    assert (prev.date_to - prev.date_from).days == 30


def test_window_lengths_come_from_settings():
    settings = make_test_settings(week_days=5, month_days=28)

    _, week, _ = resolve_window("week", today=TODAY, settings=settings)
    _, month, _ = resolve_window("month", today=TODAY, settings=settings)

    assert week.days == 5
    assert month.days == 28


def test_window_rejects_inconsistent_bounds():
    with pytest.raises(ValidationError):
        MetricWindow(date_from=date(2026, 10, 1), date_to=date(2026, 10, 5), days=7)


def test_window_rejects_non_positive_days():
    with pytest.raises(ValidationError):
        MetricWindow(date_from=date(2026, 10, 1), date_to=date(2026, 10, 1), days=0)
