"""
Tests for the trailing month window
"""

import datetime

import pandas as pd
import pytest

from date_window import build_month_window, current_month_window, to_timestamp
from errors import PreconditionViolation


NOW = pd.Timestamp("2024-01-20 15:30")


@pytest.mark.parametrize("window_size", [1, 3, 12, 24])
def test_window_length_and_order(window_size):
    months = build_month_window(NOW, window_size)

    assert len(months) == window_size
    assert months[-1].label == "January 2024"
    starts = [m.month_start for m in months]
    assert starts == sorted(starts)
    for earlier, later in zip(months, months[1:]):
        assert earlier.month_end == later.month_start


def test_default_window_is_twelve_months():
    months = build_month_window(NOW)

    assert len(months) == 12
    assert months[0].label == "February 2023"
    assert months[0].month_start == pd.Timestamp("2023-02-01")


def test_window_crosses_year_boundary():
    months = build_month_window(pd.Timestamp("2024-02-29"), 3)

    assert [m.label for m in months] == ["December 2023", "January 2024", "February 2024"]
    assert months[-1].month_end == pd.Timestamp("2024-03-01")


def test_month_window_is_half_open():
    month = current_month_window(NOW)

    assert month.contains(pd.Timestamp("2024-01-01"))
    assert month.contains(pd.Timestamp("2024-01-31 23:59:59"))
    assert not month.contains(pd.Timestamp("2024-02-01"))
    assert not month.contains(pd.Timestamp("2023-12-31 23:59:59"))


@pytest.mark.parametrize("window_size", [0, -1, 1.5, True, "12"])
def test_invalid_window_size_raises(window_size):
    with pytest.raises(PreconditionViolation):
        build_month_window(NOW, window_size)


def test_to_timestamp_accepts_dates_and_iso_strings():
    assert to_timestamp("2024-01-05") == pd.Timestamp("2024-01-05")
    assert to_timestamp("2024-01-05T10:00:00") == pd.Timestamp("2024-01-05 10:00")
    assert to_timestamp(datetime.date(2024, 1, 5)) == pd.Timestamp("2024-01-05")
    assert to_timestamp(datetime.datetime(2024, 1, 5, 8)) == pd.Timestamp("2024-01-05 08:00")


def test_to_timestamp_converts_aware_values_to_naive_utc():
    ts = to_timestamp(pd.Timestamp("2024-01-01T05:00:00+05:00"))

    assert ts.tzinfo is None
    assert ts == pd.Timestamp("2024-01-01 00:00")


@pytest.mark.parametrize("value", ["", "   ", "not-a-date", "2024-13-45", None, 20240101, pd.NaT])
def test_to_timestamp_rejects_unparseable_values(value):
    with pytest.raises(PreconditionViolation):
        to_timestamp(value)
