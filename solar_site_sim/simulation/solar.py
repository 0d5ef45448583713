"""
Deterministic hourly photovoltaic production model.

Production for a given (hour, month) is built from a Gaussian daylight shape,
a cosine seasonal factor, a calibrated capacity factor and the yield factor of
the resolved :class:`~solar_site_sim.simulation.yield_strategy.YieldStrategy`.
Thermal derate (default yields only), fixed system losses and an optional
monthly snow loss follow, then DC power is clipped to the inverter AC rating.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np

from .assumptions import SystemModelingParams

BASELINE_CAPACITY_FACTOR = 0.645
"""Calibrated so that a 1 kWp array at yield factor 1.0 produces ~1,150 kWh/yr."""

SOLAR_NOON_HOUR = 13
DAY_SHAPE_SPREAD = 8.0
DAYLIGHT_START_HOUR = 5
DAYLIGHT_END_HOUR = 20
SEASONAL_AMPLITUDE = 0.4
STC_CELL_TEMPERATURE = 25.0
CELL_TEMPERATURE_RISE = 25.0

QUEBEC_MONTHLY_TEMPS: Tuple[float, ...] = (
    -10.5, -9.2, -2.8, 5.7, 13.1, 18.2, 21.0, 19.8, 14.8, 8.2, 1.4, -7.0,
)
"""Average ambient temperature (°C) per month, January first."""

SNOW_LOSS_PROFILES: Dict[str, Tuple[float, ...]] = {
    "none": (0.0,) * 12,
    "flat_roof": (0.55, 0.45, 0.30, 0.05, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.10, 0.40),
    "tilted": (0.30, 0.25, 0.15, 0.02, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.05, 0.20),
    "ballasted_10deg": (0.18, 0.14, 0.10, 0.02, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.03, 0.13),
}


def day_shape(hour: np.ndarray | float) -> np.ndarray:
    """Gaussian bell centred on 13:00, zero outside the 05:00-20:00 window."""
    hour = np.asarray(hour, dtype=float)
    bell = np.exp(-((hour - SOLAR_NOON_HOUR) ** 2) / DAY_SHAPE_SPREAD)
    daylight = (hour >= DAYLIGHT_START_HOUR) & (hour <= DAYLIGHT_END_HOUR)
    return np.where(daylight, bell, 0.0)


def seasonal_factor(month: np.ndarray | int) -> np.ndarray:
    """Cosine seasonal multiplier peaking in June (1.4) and bottoming in December (0.6)."""
    month = np.asarray(month, dtype=float)
    return 1.0 + SEASONAL_AMPLITUDE * np.cos((month - 6.0) * 2.0 * np.pi / 12.0)


def snow_loss_for(profile: str | None) -> np.ndarray:
    """
    Twelve monthly loss fractions of a snow profile.

    Raises:
        ValueError: If the profile name is unknown.
    """
    key = profile or "none"
    if key not in SNOW_LOSS_PROFILES:
        raise ValueError(
            f"Unknown snow loss profile: {profile!r} (expected one of {', '.join(SNOW_LOSS_PROFILES)})"
        )
    return np.asarray(SNOW_LOSS_PROFILES[key], dtype=float)


@dataclass(frozen=True)
class SolarProductionModel:
    """
    Hourly AC production of an array for one analysis.

    Attributes:
        pv_kw: DC nameplate capacity.
        yield_factor: Effective yield relative to the 1,150 kWh/kWp baseline.
        system_params: Loss stack and inverter load ratio.
        apply_temperature_correction: Only true for default (modelled) yields.
        snow_profile: Key of :data:`SNOW_LOSS_PROFILES` or ``None``.
    """

    pv_kw: float
    yield_factor: float = 1.0
    system_params: SystemModelingParams = field(default_factory=SystemModelingParams)
    apply_temperature_correction: bool = True
    snow_profile: str | None = None

    @property
    def ac_capacity_kw(self) -> float:
        return self.pv_kw / self.system_params.inverter_load_ratio

    def dc_production(self, hours: np.ndarray, months: np.ndarray) -> np.ndarray:
        """DC power (kW, equal to kWh over one hour) for aligned hour/month arrays."""
        hours = np.asarray(hours, dtype=int)
        months = np.asarray(months, dtype=int)
        bell = day_shape(hours)

        dc = self.pv_kw * bell * seasonal_factor(months) * BASELINE_CAPACITY_FACTOR * self.yield_factor

        if self.apply_temperature_correction:
            ambient = np.asarray(QUEBEC_MONTHLY_TEMPS)[months - 1]
            cell_temp = ambient + CELL_TEMPERATURE_RISE * np.exp(-((hours - SOLAR_NOON_HOUR) ** 2) / DAY_SHAPE_SPREAD)
            dc = dc * (1.0 + self.system_params.temp_coefficient * (cell_temp - STC_CELL_TEMPERATURE))

        dc = dc * self.system_params.loss_multiplier()
        dc = dc * (1.0 - snow_loss_for(self.snow_profile)[months - 1])
        return dc

    def ac_production(self, hours: np.ndarray, months: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Clip DC production to the inverter rating.

        Returns:
            Tuple ``(ac_kw, clipped_kw)`` of per-hour arrays; ``ac_kw`` is non-negative.
        """
        dc = self.dc_production(hours, months)
        capacity = self.ac_capacity_kw
        clipped = np.where(dc > capacity, dc - capacity, 0.0)
        ac = np.maximum(0.0, np.minimum(dc, capacity))
        return ac, clipped
