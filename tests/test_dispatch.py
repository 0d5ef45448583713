from __future__ import annotations

import numpy as np
import pytest

from solar_site_sim.simulation.assumptions import SystemModelingParams
from solar_site_sim.simulation.dispatch import (
    DispatchContext,
    DispatchState,
    GreedyLookaheadDispatcher,
)
from solar_site_sim.simulation.energy_simulator import run_hourly_simulation
from solar_site_sim.simulation.readings import HourlyBucket


def _dispatcher(peaks, threshold_kw=20.0, battery_kwh=100.0, battery_kw=50.0):
    peaks = np.asarray(peaks, dtype=float)
    context = DispatchContext(peaks, np.ones(len(peaks), dtype=int), threshold_kw, battery_kwh, battery_kw)
    return GreedyLookaheadDispatcher(context)


def _state(hour, peak_kw, soc_kwh):
    return DispatchState(
        hour_of_day=hour,
        month=1,
        consumption_kwh=10.0,
        production_kwh=0.0,
        peak_kw=peak_kw,
        soc_kwh=soc_kwh,
    )


def test_non_priority_peak_discharges_half_the_charge():
    # hour 0 exceeds the threshold but the day's peak comes at hour 10
    dispatcher = _dispatcher([40.0] + [10.0] * 9 + [50.0] + [10.0] * 13)

    action = dispatcher.decide(0, _state(0, 40.0, soc_kwh=10.0))

    assert action.discharge_kwh == pytest.approx(5.0)
    assert not action.from_grid


def test_priority_peak_can_empty_the_battery():
    dispatcher = _dispatcher([40.0] + [10.0] * 9 + [50.0] + [10.0] * 13)

    action = dispatcher.decide(10, _state(10, 50.0, soc_kwh=10.0))

    assert action.discharge_kwh == pytest.approx(10.0)


def test_non_priority_discharge_still_limited_by_excess_and_power():
    dispatcher = _dispatcher([24.0] + [10.0] * 9 + [50.0] + [10.0] * 13, battery_kw=3.0)

    action = dispatcher.decide(0, _state(0, 24.0, soc_kwh=80.0))

    assert action.discharge_kwh == pytest.approx(3.0)


def _flat_day(peak_hour=13, peak_kw=50.0):
    return [
        HourlyBucket(hour=h, month=1, consumption_kwh=10.0, peak_kw=peak_kw if h == peak_hour else 10.0)
        for h in range(24)
    ]


def _run(buckets, pv_kw):
    return run_hourly_simulation(
        buckets,
        pv_kw=pv_kw,
        battery_kwh=40.0,
        battery_kw=20.0,
        threshold_kw=20.0,
        yield_factor=1.0,
        system_params=SystemModelingParams(),
        yield_source="default",
    )


def test_discharge_without_solar_earns_no_self_consumption():
    result = _run(_flat_day(), pv_kw=0.0)

    assert result.total_production == 0.0
    assert result.total_self_consumption == 0.0
    # 20 kWh leave the battery on the peak, then the grid refills it after 22:00
    assert result.hourly_profile[13].peak_after == pytest.approx(30.0)
    assert result.hourly_profile[13].battery_soc == pytest.approx(0.0)
    assert result.total_grid_charging == pytest.approx(40.0)
    assert result.hourly_profile[-1].battery_soc == pytest.approx(40.0)


def test_self_consumption_capped_at_production_with_small_array():
    result = _run(_flat_day(), pv_kw=2.0)

    assert 0 < result.total_production < 24.0
    assert result.hourly_profile[13].peak_after == pytest.approx(30.0)
    assert result.total_self_consumption == pytest.approx(result.total_production)
    assert result.total_exported == 0.0
