from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, NamedTuple

import numpy as np

MONTH_LENGTHS: List[int] = [31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
"""Number of days in each month (January through December), leap day excluded."""

HOURS_PER_YEAR: int = 24 * sum(MONTH_LENGTHS)


class HourlyCalendar(NamedTuple):
    month: np.ndarray
    day_of_month: np.ndarray
    hour: np.ndarray
    weekday: np.ndarray
    day_of_year: np.ndarray


def build_hourly_calendar(reference_year: int = 2023) -> HourlyCalendar:
    """
    Returns arrays describing a non-leap reference year at hourly resolution.

    Outputs (all of length 8760):
      - month: month number 1..12
      - day_of_month: day number within the month (1-based)
      - hour: hour of day 0..23
      - weekday: weekday index (0=Mon .. 6=Sun) of ``reference_year``
      - day_of_year: day index 0..364
    """
    start_weekday = date(reference_year, 1, 1).weekday()

    months = []
    days = []
    weekdays = []
    day_of_year = []

    doy = 0
    for m, n_days in enumerate(MONTH_LENGTHS):
        for day in range(n_days):
            months.append(m + 1)
            days.append(day + 1)
            weekdays.append((start_weekday + doy) % 7)
            day_of_year.append(doy)
            doy += 1

    return HourlyCalendar(
        month=np.repeat(np.array(months, dtype=int), 24),
        day_of_month=np.repeat(np.array(days, dtype=int), 24),
        hour=np.tile(np.arange(24, dtype=int), len(months)),
        weekday=np.repeat(np.array(weekdays, dtype=int), 24),
        day_of_year=np.repeat(np.array(day_of_year, dtype=int), 24),
    )


def hourly_timestamps(reference_year: int = 2023) -> List[datetime]:
    """Timestamps of every hour of ``reference_year`` with Feb 29 skipped."""
    start = datetime(reference_year, 1, 1)
    stamps: List[datetime] = []
    current = start
    while len(stamps) < HOURS_PER_YEAR:
        if not (current.month == 2 and current.day == 29):
            stamps.append(current)
        current += timedelta(hours=1)
    return stamps
