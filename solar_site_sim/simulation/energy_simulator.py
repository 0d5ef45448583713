"""
Hourly solar + storage dispatch simulation over a reference year.

The simulation couples the deterministic production model of :mod:`.solar`
with the site's hourly consumption and demand, and lets a
:class:`~solar_site_sim.simulation.dispatch.DispatchStrategy` drive the battery.
Hours are processed strictly in order because the state of charge carries over
from one hour to the next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import pandas as pd

from .assumptions import SystemModelingParams
from .dispatch import DispatchContext, DispatcherFactory, DispatchState, GreedyLookaheadDispatcher
from .readings import HourlyBucket
from .solar import SolarProductionModel
from .yield_strategy import SOURCE_DEFAULT, YIELD_SOURCES

PEAK_WEEK_HALF_WINDOW = 40
INITIAL_SOC_RATIO = 0.5

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HourlyTraceEntry:
    hour: int
    month: int
    consumption: float
    production: float
    battery_soc: float
    peak_before: float
    peak_after: float


@dataclass(frozen=True)
class PeakWeekEntry:
    index: int
    peak_before: float
    peak_after: float


@dataclass
class SimulationResult:
    """
    Aggregated outcome of one hourly simulation run.

    Attributes:
        total_self_consumption: Solar (and battery) energy consumed on site,
            capped at total production so grid-charged energy is never credited.
        total_production: AC production after clipping (kWh).
        total_exported: Production neither consumed nor stored (kWh).
        clipping_loss: DC energy above the inverter rating (kWh).
        total_grid_charging: Battery energy charged from the grid (kWh).
        peak_after: Highest post-battery demand of the year (kW).
        monthly_peaks_before / monthly_peaks_after: 12 monthly demand maxima.
        hourly_profile: Per-hour trace.
        peak_week: Excerpt of ±40 hours around the annual peak.
    """

    total_self_consumption: float = 0.0
    total_production: float = 0.0
    total_exported: float = 0.0
    clipping_loss: float = 0.0
    total_grid_charging: float = 0.0
    peak_after: float = 0.0
    monthly_peaks_before: List[float] = field(default_factory=lambda: [0.0] * 12)
    monthly_peaks_after: List[float] = field(default_factory=lambda: [0.0] * 12)
    hourly_profile: List[HourlyTraceEntry] = field(default_factory=list)
    peak_week: List[PeakWeekEntry] = field(default_factory=list)

    def to_dataframe(self) -> pd.DataFrame:
        """Hourly trace as a DataFrame (one row per simulated hour)."""
        return pd.DataFrame(
            [entry.__dict__ for entry in self.hourly_profile],
            columns=["hour", "month", "consumption", "production", "battery_soc", "peak_before", "peak_after"],
        )


def run_hourly_simulation(
    buckets: Sequence[HourlyBucket],
    pv_kw: float,
    battery_kwh: float,
    battery_kw: float,
    threshold_kw: float,
    yield_factor: float,
    system_params: SystemModelingParams,
    yield_source: str,
    snow_profile: str | None = None,
    dispatcher_factory: DispatcherFactory = GreedyLookaheadDispatcher,
    logger: logging.Logger | None = None,
) -> SimulationResult:
    """
    Simulate production, self-consumption, export and battery dispatch hour by hour.

    Args:
        buckets: Hourly consumption/demand sequence (normally 8,760 entries).
        pv_kw: PV DC capacity.
        battery_kwh: Battery energy capacity (0 for none).
        battery_kw: Battery power rating (0 for none).
        threshold_kw: Demand-shaving target.
        yield_factor: Effective yield relative to 1,150 kWh/kWp.
        system_params: Loss stack and inverter load ratio.
        yield_source: ``"remote"``, ``"manual"`` or ``"default"``; only
            default yields receive the thermal derate.
        snow_profile: Optional monthly snow-loss profile name.
        dispatcher_factory: Builds the battery strategy for this run.
        logger: Optional logger; defaults to the module logger.

    Returns:
        SimulationResult. An empty bucket sequence yields an all-zero result.

    Raises:
        ValueError: For an unknown yield source or snow profile.
    """
    log = logger or _logger
    if yield_source not in YIELD_SOURCES:
        raise ValueError(f"Unknown yield source: {yield_source!r}")

    if len(buckets) == 0:
        log.debug("No hourly data, returning empty simulation result")
        return SimulationResult()

    hours = np.fromiter((b.hour for b in buckets), dtype=int, count=len(buckets))
    months = np.fromiter((b.month for b in buckets), dtype=int, count=len(buckets))
    consumption = np.fromiter((b.consumption_kwh for b in buckets), dtype=float, count=len(buckets))
    peaks = np.fromiter((b.peak_kw for b in buckets), dtype=float, count=len(buckets))

    model = SolarProductionModel(
        pv_kw=pv_kw,
        yield_factor=yield_factor,
        system_params=system_params,
        apply_temperature_correction=yield_source == SOURCE_DEFAULT,
        snow_profile=snow_profile,
    )
    production, clipped = model.ac_production(hours, months)

    dispatcher = dispatcher_factory(
        DispatchContext(
            peaks_kw=peaks,
            months=months,
            threshold_kw=threshold_kw,
            battery_kwh=battery_kwh,
            battery_kw=battery_kw,
        )
    )
    has_battery = battery_kwh > 0 and battery_kw > 0

    soc = battery_kwh * INITIAL_SOC_RATIO
    self_consumption = 0.0
    exported = 0.0
    grid_charging = 0.0
    monthly_before = [0.0] * 12
    monthly_after = [0.0] * 12
    peak_after_max = 0.0
    max_peak_index = 0
    max_peak_value = 0.0
    profile: List[HourlyTraceEntry] = []

    for i in range(len(buckets)):
        hour = int(hours[i])
        month = int(months[i])
        load = float(consumption[i])
        prod = float(production[i])
        peak = float(peaks[i])

        peak_final = peak
        charge = 0.0
        discharge = 0.0
        if has_battery:
            action = dispatcher.decide(
                i,
                DispatchState(
                    hour_of_day=hour,
                    month=month,
                    consumption_kwh=load,
                    production_kwh=prod,
                    peak_kw=peak,
                    soc_kwh=soc,
                ),
            )
            soc = min(battery_kwh, max(0.0, soc + action.energy_kwh))
            charge = action.charge_kwh
            discharge = action.discharge_kwh
            if discharge > 0:
                peak_final = max(0.0, peak - discharge)
            elif action.from_grid and charge > 0:
                peak_final = peak + charge
                grid_charging += charge

        monthly_before[month - 1] = max(monthly_before[month - 1], peak)
        monthly_after[month - 1] = max(monthly_after[month - 1], peak_final)
        if peak > max_peak_value:
            max_peak_value = peak
            max_peak_index = i
        peak_after_max = max(peak_after_max, peak_final)

        hour_self = min(load, prod + discharge)
        self_consumption += hour_self
        exported += max(0.0, prod - hour_self - charge)

        profile.append(
            HourlyTraceEntry(
                hour=hour,
                month=month,
                consumption=load,
                production=prod,
                battery_soc=soc,
                peak_before=peak,
                peak_after=peak_final,
            )
        )

    start = max(0, max_peak_index - PEAK_WEEK_HALF_WINDOW)
    end = min(len(buckets), max_peak_index + PEAK_WEEK_HALF_WINDOW)
    peak_week = [
        PeakWeekEntry(index=i, peak_before=float(peaks[i]), peak_after=profile[i].peak_after)
        for i in range(start, end)
    ]

    total_production = float(production.sum())
    result = SimulationResult(
        total_self_consumption=min(self_consumption, total_production),
        total_production=total_production,
        total_exported=exported,
        clipping_loss=float(clipped.sum()),
        total_grid_charging=grid_charging,
        peak_after=peak_after_max,
        monthly_peaks_before=monthly_before,
        monthly_peaks_after=monthly_after,
        hourly_profile=profile,
        peak_week=peak_week,
    )
    log.debug(
        "Simulated %d h: pv=%.1f kW bess=%.1f kWh/%.1f kW production=%.0f kWh self=%.0f kWh clipping=%.0f kWh",
        len(buckets),
        pv_kw,
        battery_kwh,
        battery_kw,
        result.total_production,
        result.total_self_consumption,
        result.clipping_loss,
    )
    return result
