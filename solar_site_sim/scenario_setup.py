from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping

import pandas as pd

from .simulation import (
    AnalysisAssumptions,
    HourlyBucket,
    RemoteSensingData,
    SystemSizing,
    YieldStrategy,
    build_hourly_buckets,
    generate_synthetic_profile,
    get_simplified_rates,
    resolve_yield_strategy,
    summarize_consumption,
)

logger = logging.getLogger(__name__)

DEFAULT_SITE_PATH = Path(__file__).resolve().parent / "examples" / "default_site.json"

LOAD_SOURCE_SYNTHETIC = "synthetic"
LOAD_SOURCE_READINGS = "readings"


def load_site_data(source: str | Path | Mapping[str, Any] | None = None) -> dict[str, Any]:
    """
    Load a site payload from JSON or return the provided mapping.

    Args:
        source: Path to a JSON file, mapping, or None for the bundled example.

    Returns:
        Dictionary containing the site configuration.
    """
    if source is None:
        return json.loads(DEFAULT_SITE_PATH.read_text(encoding="utf-8"))
    if isinstance(source, (str, Path)):
        return json.loads(Path(source).read_text(encoding="utf-8"))
    return dict(source)


@dataclass
class SiteLoad:
    """Hourly load of a site with its annual totals."""

    buckets: List[HourlyBucket]
    annual_consumption_kwh: float
    peak_kw: float
    source: str
    interpolated_months: List[int]


def _read_readings_csv(path: str | Path) -> pd.DataFrame:
    frame = pd.read_csv(path)
    if "timestamp" not in frame.columns:
        raise ValueError(f"Readings file {path} has no 'timestamp' column")
    for column in ("kwh", "kw"):
        if column not in frame.columns:
            frame[column] = None
    return frame


def build_site_load(site_data: Mapping[str, Any] | str | Path | None = None) -> SiteLoad:
    """
    Build the hourly buckets of a site from metered readings or a synthetic profile.

    The ``load`` section either lists ``readings`` (or a ``readings_csv`` path)
    or names a building ``archetype`` with its ``annual_consumption_kwh``.

    Raises:
        ValueError: If the load section is missing or unusable.
    """
    data = load_site_data(site_data)
    load_cfg = data.get("load")
    if not load_cfg:
        raise ValueError("Site payload has no 'load' section")

    source = load_cfg.get("source")
    if source is None:
        source = LOAD_SOURCE_READINGS if ("readings" in load_cfg or "readings_csv" in load_cfg) else LOAD_SOURCE_SYNTHETIC

    if source == LOAD_SOURCE_READINGS:
        if "readings_csv" in load_cfg:
            readings: Any = _read_readings_csv(load_cfg["readings_csv"])
        else:
            readings = load_cfg.get("readings") or []
        buckets, interpolated = build_hourly_buckets(readings)
        if not buckets:
            raise ValueError("No usable meter readings in the site payload")
    elif source == LOAD_SOURCE_SYNTHETIC:
        if "archetype" not in load_cfg or "annual_consumption_kwh" not in load_cfg:
            raise ValueError("Synthetic load needs 'archetype' and 'annual_consumption_kwh'")
        profile = generate_synthetic_profile(
            load_cfg["archetype"],
            float(load_cfg["annual_consumption_kwh"]),
            load_cfg.get("schedule"),
        )
        buckets, interpolated = build_hourly_buckets(profile.readings)
    else:
        raise ValueError(f"Unknown load source: {source!r}")

    annual, peak = summarize_consumption(buckets)
    logger.debug("Site load from %s: %.0f kWh/yr, peak %.1f kW", source, annual, peak)
    return SiteLoad(
        buckets=buckets,
        annual_consumption_kwh=annual,
        peak_kw=peak,
        source=source,
        interpolated_months=interpolated,
    )


def build_assumptions(site_data: Mapping[str, Any] | str | Path | None = None) -> AnalysisAssumptions:
    """
    Build analysis assumptions, deriving energy and power rates from the
    tariff code when they are not given explicitly.
    """
    data = load_site_data(site_data)
    raw = dict(data.get("assumptions") or {})
    if "tariff_code" in raw and ("tariff_energy" not in raw or "tariff_power" not in raw):
        energy, power = get_simplified_rates(raw["tariff_code"])
        raw.setdefault("tariff_energy", energy)
        raw.setdefault("tariff_power", power)
    return AnalysisAssumptions.from_mapping(raw)


def build_sizing(site_data: Mapping[str, Any] | str | Path | None = None) -> SystemSizing:
    data = load_site_data(site_data)
    sizing_cfg = data.get("sizing") or {}
    return SystemSizing(
        pv_kw=float(sizing_cfg.get("pv_kw", 0.0)),
        battery_kwh=float(sizing_cfg.get("battery_kwh", 0.0)),
        battery_kw=float(sizing_cfg.get("battery_kw", 0.0)),
    )


def build_remote_data(site_data: Mapping[str, Any] | str | Path | None = None) -> RemoteSensingData | None:
    data = load_site_data(site_data)
    remote_cfg = data.get("remote_sensing")
    if not remote_cfg:
        return None
    return RemoteSensingData(
        yearly_energy_kwh=remote_cfg.get("yearly_energy_kwh"),
        system_size_kw=remote_cfg.get("system_size_kw"),
        max_sunshine_hours_per_year=remote_cfg.get("max_sunshine_hours_per_year"),
    )


def build_yield_strategy(
    site_data: Mapping[str, Any] | str | Path | None = None,
    assumptions: AnalysisAssumptions | None = None,
) -> YieldStrategy:
    data = load_site_data(site_data)
    return resolve_yield_strategy(
        assumptions or build_assumptions(data),
        remote_data=build_remote_data(data),
        roof_color=data.get("roof_color"),
    )
