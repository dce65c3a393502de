import datetime
from dataclasses import dataclass
from typing import Any, List

import numpy as np
import pandas as pd

from config import Config
from errors import PreconditionViolation


@dataclass(frozen=True)
class MonthWindow:
    """Half-open calendar month [month_start, month_end)"""
    month_start: pd.Timestamp
    month_end: pd.Timestamp
    label: str

    def contains(self, moment: pd.Timestamp) -> bool:
        return self.month_start <= moment < self.month_end


def to_timestamp(value: Any, field: str = "date") -> pd.Timestamp:
    """
    Strictly convert a date-like value to a naive pandas Timestamp

    Accepts date/datetime/Timestamp/np.datetime64 values and ISO-8601 strings.
    Aware values are converted to UTC wall time. Anything else raises
    PreconditionViolation; nothing is coerced to NaT.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise PreconditionViolation(f"{field}: empty date string")
        try:
            ts = pd.to_datetime(text, format=Config.DATE_FORMAT)
        except (ValueError, TypeError) as e:
            raise PreconditionViolation(f"{field}: unparseable date {value!r}") from e
    elif isinstance(value, (datetime.date, np.datetime64)):
        ts = pd.Timestamp(value)
    else:
        raise PreconditionViolation(f"{field}: expected a date, got {type(value).__name__}")

    if pd.isna(ts):
        raise PreconditionViolation(f"{field}: missing date")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def build_month_window(now: Any, window_size: int = None) -> List[MonthWindow]:
    """
    Build the trailing month window ending at the month containing `now`

    Args:
        now: Reference instant; the last window entry is its calendar month
        window_size: Number of months, defaults to Config.DEFAULT_WINDOW_MONTHS

    Returns:
        List of MonthWindow, oldest first, exactly `window_size` long
    """
    if window_size is None:
        window_size = Config.DEFAULT_WINDOW_MONTHS
    if isinstance(window_size, bool) or not isinstance(window_size, (int, np.integer)):
        raise PreconditionViolation(f"window_size must be an integer, got {window_size!r}")
    if window_size < 1:
        raise PreconditionViolation(f"window_size must be >= 1, got {window_size}")

    current = to_timestamp(now, "now").to_period("M")
    months = pd.period_range(end=current, periods=int(window_size), freq="M")

    windows = []
    for month in months:
        month_start = month.start_time
        windows.append(MonthWindow(
            month_start=month_start,
            month_end=(month + 1).start_time,
            label=month_start.strftime(Config.MONTH_LABEL_FORMAT),
        ))
    return windows


def current_month_window(now: Any) -> MonthWindow:
    """Month boundary of the calendar month containing `now`"""
    return build_month_window(now, 1)[0]
