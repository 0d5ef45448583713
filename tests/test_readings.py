from __future__ import annotations

from datetime import datetime, timedelta

import pandas as pd
import pytest

from solar_site_sim.simulation.readings import (
    aggregate_hourly_readings,
    build_hourly_buckets,
    buckets_to_frame,
    summarize_consumption,
)


def _month_of_readings(month: int, kwh: float, kw: float) -> list[dict]:
    start = datetime(2024, month, 1)
    return [
        {"timestamp": start + timedelta(hours=h), "kwh": kwh, "kw": kw}
        for h in range(24 * 28)
    ]


def test_quarter_hour_readings_roll_up_per_hour():
    start = datetime(2024, 5, 1, 10)
    readings = [
        {"timestamp": start + timedelta(minutes=15 * i), "kwh": 2.5, "kw": 10 + i}
        for i in range(4)
    ]

    hourly = aggregate_hourly_readings(readings)

    assert len(hourly) == 1
    assert hourly.loc[0, "timestamp"] == pd.Timestamp(start)
    assert hourly.loc[0, "kwh"] == pytest.approx(10.0)
    assert hourly.loc[0, "kw"] == pytest.approx(13.0)


def test_duplicate_timestamps_keep_highest_values():
    stamp = datetime(2024, 5, 1, 10)
    readings = [
        {"timestamp": stamp, "kwh": 4.0, "kw": 5.0},
        {"timestamp": stamp, "kwh": None, "kw": 8.0},
        {"timestamp": stamp, "kwh": 3.0, "kw": None},
    ]

    hourly = aggregate_hourly_readings(readings)

    assert len(hourly) == 1
    assert hourly.loc[0, "kwh"] == pytest.approx(4.0)
    assert hourly.loc[0, "kw"] == pytest.approx(8.0)


def test_missing_months_are_interpolated_from_neighbours():
    readings = _month_of_readings(1, 10.0, 12.0) + _month_of_readings(3, 30.0, 36.0)

    buckets, interpolated = build_hourly_buckets(readings)

    assert len(buckets) == 8760
    assert interpolated == [2, 4, 5, 6, 7, 8, 9, 10, 11, 12]
    frame = buckets_to_frame(buckets)
    by_month = frame.groupby("month")["consumption_kwh"].mean()
    assert by_month[1] == pytest.approx(10.0)
    assert by_month[2] == pytest.approx(20.0)
    assert by_month[3] == pytest.approx(30.0)
    # wraps around the year: December sits between March and January
    assert by_month[12] == pytest.approx(20.0)
    assert frame[frame["month"] == 2]["peak_kw"].max() == pytest.approx(24.0)


def test_bucket_uses_demand_when_energy_is_missing():
    start = datetime(2024, 6, 1)
    readings = [{"timestamp": start + timedelta(hours=h), "kwh": None, "kw": 7.0} for h in range(24)]

    buckets, _ = build_hourly_buckets(readings)

    june = [b for b in buckets if b.month == 6]
    assert all(b.consumption_kwh == pytest.approx(7.0) for b in june)


def test_dataframe_input_is_accepted():
    frame = pd.DataFrame(_month_of_readings(7, 5.0, 6.0))

    buckets, interpolated = build_hourly_buckets(frame)

    assert len(buckets) == 8760
    assert len(interpolated) == 11
    annual, peak = summarize_consumption(buckets)
    assert annual == pytest.approx(5.0 * 8760)
    assert peak == pytest.approx(6.0)


def test_empty_readings_return_empty_buckets():
    assert build_hourly_buckets([]) == ([], [])
    assert build_hourly_buckets([{"timestamp": datetime(2024, 1, 1), "kwh": None, "kw": None}]) == ([], [])
    assert summarize_consumption([]) == (0.0, 0.0)


def test_readings_missing_columns_raise():
    with pytest.raises(ValueError):
        aggregate_hourly_readings(pd.DataFrame({"timestamp": [datetime(2024, 1, 1)], "kwh": [1.0]}))
