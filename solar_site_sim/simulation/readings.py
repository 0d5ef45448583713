"""
Raw meter readings to canonical hourly buckets.

Utility exports arrive at irregular granularity (15-minute, hourly, sometimes
overlapping files). The simulation needs one value per hour of a reference
year, so readings are:

1. deduplicated per timestamp (keep the highest demand and the non-null,
   highest energy figure),
2. rolled up per calendar hour (energy summed, demand maxed),
3. averaged per (month, hour of day) into 288 buckets,
4. gap-filled for months without data from the neighbouring months,
5. expanded to the 8,760 hours of a non-leap year.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Tuple

import numpy as np
import pandas as pd

from ..calendar_utils import build_hourly_calendar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HourlyBucket:
    """Average consumption and peak demand of one simulated hour."""

    hour: int
    month: int
    consumption_kwh: float
    peak_kw: float


def _readings_frame(readings: Iterable[Any] | pd.DataFrame) -> pd.DataFrame:
    if isinstance(readings, pd.DataFrame):
        frame = readings.copy()
    else:
        rows = []
        for reading in readings:
            if isinstance(reading, Mapping):
                rows.append(
                    {
                        "timestamp": reading.get("timestamp"),
                        "kwh": reading.get("kwh"),
                        "kw": reading.get("kw"),
                    }
                )
            else:
                rows.append(
                    {
                        "timestamp": getattr(reading, "timestamp"),
                        "kwh": getattr(reading, "kwh", None),
                        "kw": getattr(reading, "kw", None),
                    }
                )
        frame = pd.DataFrame(rows, columns=["timestamp", "kwh", "kw"])

    missing = {"timestamp", "kwh", "kw"} - set(frame.columns)
    if missing:
        raise ValueError(f"Readings are missing columns: {', '.join(sorted(missing))}")

    frame = frame[["timestamp", "kwh", "kw"]].copy()
    frame["timestamp"] = pd.to_datetime(frame["timestamp"])
    frame["kwh"] = pd.to_numeric(frame["kwh"], errors="coerce")
    frame["kw"] = pd.to_numeric(frame["kw"], errors="coerce")
    return frame


def aggregate_hourly_readings(readings: Iterable[Any] | pd.DataFrame) -> pd.DataFrame:
    """
    Collapse irregular readings into one row per calendar hour.

    Args:
        readings: Mappings/objects exposing ``timestamp``, ``kwh`` and ``kw``
            (either value may be ``None``), or an equivalent DataFrame.

    Returns:
        DataFrame with columns ``timestamp`` (hour start), ``kwh`` and ``kw``,
        sorted by timestamp. Rows without any value are dropped.
    """
    frame = _readings_frame(readings)
    frame = frame.dropna(subset=["kwh", "kw"], how="all")
    if frame.empty:
        return pd.DataFrame(columns=["timestamp", "kwh", "kw"])

    # duplicates of the same instant come from overlapping exports
    deduped = frame.groupby("timestamp", as_index=False).agg(kwh=("kwh", "max"), kw=("kw", "max"))

    deduped["timestamp"] = deduped["timestamp"].dt.floor("h")
    hourly = deduped.groupby("timestamp", as_index=False).agg(
        kwh=("kwh", lambda s: s.sum(min_count=1)),
        kw=("kw", "max"),
    )
    if len(hourly) < len(frame):
        logger.debug("Collapsed %d readings into %d hourly rows", len(frame), len(hourly))
    return hourly.sort_values("timestamp").reset_index(drop=True)


def _nearest_populated(month: int, populated: List[int], step: int) -> int:
    for k in range(1, 12):
        candidate = (month + step * k) % 12
        if candidate in populated:
            return candidate
    return month


def build_hourly_buckets(
    readings: Iterable[Any] | pd.DataFrame,
) -> Tuple[List[HourlyBucket], List[int]]:
    """
    Build the 8,760-hour bucket sequence used by the simulation.

    Readings are averaged per (month, hour of day). Leap-day readings fold into
    February. Months without any reading copy the per-hour mean of the nearest
    populated month before and after (wrapping around the year).

    Returns:
        Tuple ``(buckets, interpolated_months)``. ``buckets`` is empty when
        there are no usable readings.
    """
    hourly = aggregate_hourly_readings(readings)
    if hourly.empty:
        return [], []

    hourly = hourly.copy()
    hourly["energy"] = hourly["kwh"].fillna(hourly["kw"])
    hourly["kw"] = hourly["kw"].fillna(hourly["kwh"])
    hourly["month"] = hourly["timestamp"].dt.month
    hourly["hour"] = hourly["timestamp"].dt.hour

    grouped = hourly.groupby(["month", "hour"]).agg(
        total=("energy", "sum"),
        count=("energy", "count"),
        peak=("kw", "max"),
    )

    consumption = np.full((12, 24), np.nan)
    peak = np.zeros((12, 24))
    for (month, hour), row in grouped.iterrows():
        if row["count"] > 0:
            consumption[month - 1, hour] = row["total"] / row["count"]
        peak[month - 1, hour] = 0.0 if pd.isna(row["peak"]) else row["peak"]

    populated = [m for m in range(12) if not np.all(np.isnan(consumption[m]))]
    if not populated:
        return [], []

    interpolated: List[int] = []
    for m in range(12):
        if m in populated:
            continue
        prev_m = _nearest_populated(m, populated, step=-1)
        next_m = _nearest_populated(m, populated, step=1)
        consumption[m] = (consumption[prev_m] + consumption[next_m]) / 2
        peak[m] = (peak[prev_m] + peak[next_m]) / 2
        interpolated.append(m + 1)

    consumption = np.nan_to_num(consumption, nan=0.0)
    if interpolated:
        logger.info("Interpolated consumption for months without data: %s", interpolated)

    calendar = build_hourly_calendar()
    buckets = [
        HourlyBucket(
            hour=int(h),
            month=int(m),
            consumption_kwh=float(consumption[m - 1, h]),
            peak_kw=float(peak[m - 1, h]),
        )
        for m, h in zip(calendar.month, calendar.hour)
    ]
    return buckets, interpolated


def summarize_consumption(buckets: List[HourlyBucket]) -> Tuple[float, float]:
    """Return ``(annual_consumption_kwh, peak_kw)`` of a bucket sequence."""
    if not buckets:
        return 0.0, 0.0
    annual = float(sum(b.consumption_kwh for b in buckets))
    peak = float(max(b.peak_kw for b in buckets))
    return annual, peak


def buckets_to_frame(buckets: List[HourlyBucket]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "month": [b.month for b in buckets],
            "hour": [b.hour for b in buckets],
            "consumption_kwh": [b.consumption_kwh for b in buckets],
            "peak_kw": [b.peak_kw for b in buckets],
        }
    )
