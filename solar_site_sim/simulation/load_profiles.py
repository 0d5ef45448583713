"""
Synthetic hourly consumption profiles for commercial and industrial buildings.

When a site has no metered data the analysis pipeline still needs 8,760 hourly
readings. :func:`generate_synthetic_profile` builds them from a building
archetype (operating window, night baseline, weekend reduction, seasonal shape)
and a target annual energy, so the rest of the engine runs unchanged on an
estimated profile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

from ..calendar_utils import HOURS_PER_YEAR, build_hourly_calendar, hourly_timestamps

REFERENCE_YEAR = 2023
"""Non-leap reference year; January 1st 2023 is a Sunday."""

DEFAULT_ANNUAL_CONSUMPTION_KWH = 200_000
BILL_ENERGY_SHARE = 0.70
BILL_ENERGY_RATES: Dict[str, float] = {"G": 0.11933, "M": 0.06061, "L": 0.03681}


@dataclass(frozen=True)
class BuildingArchetype:
    """
    Occupancy and intensity parameters of a building type.

    Attributes:
        operating_start: First operating hour (0-23).
        operating_end: End of operations (exclusive, up to 24).
        base_night: Off-hours load as a fraction of the daytime peak.
        weekend_factor: Saturday/Sunday multiplier.
        load_factor: Average-to-peak power ratio used to derive peak kW.
        intensity_kwh_per_sqft: Annual energy intensity for area estimates.
        monthly_factors: Twelve seasonal multipliers (January first).
    """

    operating_start: int
    operating_end: int
    base_night: float
    weekend_factor: float
    load_factor: float
    intensity_kwh_per_sqft: float
    monthly_factors: Tuple[float, ...]


ARCHETYPES: Dict[str, BuildingArchetype] = {
    "office": BuildingArchetype(
        7, 19, 0.30, 0.25, 0.45, 18,
        (1.0, 1.0, 1.0, 0.95, 0.9, 0.85, 0.8, 0.85, 0.95, 1.0, 1.05, 1.1),
    ),
    "warehouse": BuildingArchetype(
        6, 22, 0.60, 0.50, 0.65, 10,
        (0.95, 0.95, 1.0, 1.0, 1.0, 1.05, 1.1, 1.1, 1.0, 1.0, 0.95, 0.9),
    ),
    "cold_warehouse": BuildingArchetype(
        0, 24, 0.85, 0.95, 0.75, 30,
        (0.85, 0.85, 0.90, 0.95, 1.05, 1.15, 1.25, 1.25, 1.10, 0.95, 0.85, 0.85),
    ),
    "retail": BuildingArchetype(
        9, 21, 0.20, 0.85, 0.40, 22,
        (1.15, 1.0, 0.95, 0.9, 0.85, 0.8, 0.85, 0.9, 0.95, 1.0, 1.15, 1.4),
    ),
    "industrial": BuildingArchetype(
        0, 24, 0.80, 0.75, 0.70, 15,
        (1.0,) * 12,
    ),
    "light_industrial": BuildingArchetype(
        7, 20, 0.40, 0.30, 0.55, 14,
        (1.0, 1.0, 1.0, 0.97, 0.95, 0.92, 0.9, 0.92, 0.97, 1.0, 1.03, 1.05),
    ),
    "institutional": BuildingArchetype(
        7, 17, 0.25, 0.20, 0.40, 20,
        (1.1, 1.1, 1.0, 0.9, 0.7, 0.5, 0.4, 0.5, 1.0, 1.1, 1.1, 1.2),
    ),
}

SCHEDULE_OVERRIDES: Dict[str, Tuple[int, int]] = {
    "extended": (5, 23),
    "24/7": (0, 24),
}


@dataclass(frozen=True)
class SyntheticReading:
    timestamp: datetime
    kwh: float
    kw: float


@dataclass
class SyntheticProfile:
    """Generated readings plus the metadata describing how they were built."""

    readings: List[SyntheticReading]
    archetype: str
    annual_consumption_kwh: float
    estimated_peak_kw: float
    load_factor: float
    schedule: str = "standard"
    metadata: Dict[str, float | str] = field(default_factory=dict)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "timestamp": [r.timestamp for r in self.readings],
                "kwh": [r.kwh for r in self.readings],
                "kw": [r.kw for r in self.readings],
            }
        )


def get_archetype(name: str) -> BuildingArchetype:
    """
    Raises:
        ValueError: If ``name`` is not a known archetype.
    """
    try:
        return ARCHETYPES[name]
    except KeyError:
        raise ValueError(
            f"Unknown building archetype: {name!r} (expected one of {', '.join(ARCHETYPES)})"
        ) from None


def hourly_weight(hour: int, operating_start: int, operating_end: int, base_night: float) -> float:
    """
    Relative load of an hour of day.

    Round-the-clock operations get a flat weight. Otherwise operating hours
    follow a Gaussian centred on the middle of the window (sigma = half the
    half-width), scaled between ``base_night`` and 1; off hours stay at
    ``base_night``.
    """
    if operating_start == 0 and operating_end == 24:
        return base_night + (1.0 - base_night) * 0.8

    center = (operating_start + operating_end) / 2
    sigma = (operating_end - operating_start) / 4
    if operating_start <= hour < operating_end:
        x = hour - center
        gauss = float(np.exp(-(x * x) / (2 * sigma * sigma)))
        return base_night + (1.0 - base_night) * gauss
    return base_night


def generate_synthetic_profile(
    archetype: str,
    annual_consumption_kwh: float,
    schedule: str | None = None,
) -> SyntheticProfile:
    """
    Generate an 8,760-hour consumption profile for a building archetype.

    Each hour receives a raw weight ``monthly_factor × hourly_weight ×
    weekend_factor``; weights are scaled so they sum to
    ``annual_consumption_kwh``. Peak demand is the average power divided by the
    archetype load factor and caps each hour's kW.

    Args:
        archetype: Key of :data:`ARCHETYPES` (``"office"``, ``"warehouse"``...).
        annual_consumption_kwh: Target yearly energy.
        schedule: ``"standard"`` (default), ``"extended"`` or ``"24/7"``.

    Returns:
        SyntheticProfile with readings rounded to 0.01 and the estimated peak.

    Raises:
        ValueError: For an unknown archetype or schedule, or negative energy.
    """
    building = get_archetype(archetype)
    if annual_consumption_kwh < 0:
        raise ValueError("annual_consumption_kwh must be non-negative")

    schedule = schedule or "standard"
    start, end = building.operating_start, building.operating_end
    if schedule != "standard":
        if schedule not in SCHEDULE_OVERRIDES:
            raise ValueError(f"Unknown operating schedule: {schedule!r}")
        start, end = SCHEDULE_OVERRIDES[schedule]

    calendar = build_hourly_calendar(REFERENCE_YEAR)
    hour_weights = np.array([hourly_weight(h, start, end, building.base_night) for h in range(24)])
    month_factors = np.asarray(building.monthly_factors, dtype=float)
    weekend = calendar.weekday >= 5

    raw = (
        month_factors[calendar.month - 1]
        * hour_weights[calendar.hour]
        * np.where(weekend, building.weekend_factor, 1.0)
    )
    scale = annual_consumption_kwh / raw.sum()
    kwh = raw * scale

    peak_kw = (annual_consumption_kwh / HOURS_PER_YEAR) / building.load_factor
    kw = np.minimum(kwh, peak_kw)

    readings = [
        SyntheticReading(timestamp=ts, kwh=round(float(e), 2), kw=round(float(p), 2))
        for ts, e, p in zip(hourly_timestamps(REFERENCE_YEAR), kwh, kw)
    ]
    return SyntheticProfile(
        readings=readings,
        archetype=archetype,
        annual_consumption_kwh=annual_consumption_kwh,
        estimated_peak_kw=round(peak_kw, 1),
        load_factor=building.load_factor,
        schedule=schedule,
        metadata={
            "building_sub_type": archetype,
            "annual_consumption_kwh": annual_consumption_kwh,
            "estimated_peak_kw": round(peak_kw, 1),
            "load_factor": building.load_factor,
        },
    )


def estimate_annual_consumption(
    archetype: str,
    floor_area_sqft: float | None = None,
    monthly_bill: float | None = None,
    tariff_code: str = "M",
) -> int:
    """
    Estimate annual kWh from the scarce data typically known about a prospect.

    Priority: monthly bill (70 % energy share at the tariff's first-tier rate),
    then floor area times the archetype intensity, then a 200 MWh default.
    """
    if monthly_bill and monthly_bill > 0:
        rate = BILL_ENERGY_RATES.get(tariff_code, BILL_ENERGY_RATES["M"])
        return round(monthly_bill * BILL_ENERGY_SHARE / rate * 12)

    if floor_area_sqft and floor_area_sqft > 0:
        building = ARCHETYPES.get(archetype)
        intensity = building.intensity_kwh_per_sqft if building else 18
        return round(floor_area_sqft * intensity)

    return DEFAULT_ANNUAL_CONSUMPTION_KWH
