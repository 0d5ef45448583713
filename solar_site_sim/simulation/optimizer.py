"""
Sizing sensitivity analysis.

Sweeps alternative solar and battery sizes around a configured sizing,
evaluates each one with the financial scenario engine and returns:

* a frontier of labelled configurations (solar only, battery only, hybrid),
* 1-D solar and battery NPV sweeps for charting,
* three optimal picks (best NPV, best IRR among profitable points, maximum
  self-sufficiency) re-evaluated with their full financial breakdown.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Sequence

import pandas as pd

from .assumptions import AnalysisAssumptions, SystemSizing
from .financials import ScenarioFinancials, run_scenario
from .readings import HourlyBucket
from .yield_strategy import YieldStrategy

_logger = logging.getLogger(__name__)

SQFT_PER_SQM = 10.764
SQM_PER_PANEL = 3.71
KW_PER_PANEL = 0.660

SOLAR_SWEEP_STEPS = 20
BATTERY_SWEEP_STEPS = 20
BATTERY_SWEEP_MIN_MAX_KWH = 500.0
HYBRID_GRID_STEPS = 5
HYBRID_BATTERY_MIN_MAX_KWH = 200.0

POINT_SOLAR = "solar"
POINT_BATTERY = "battery"
POINT_HYBRID = "hybrid"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _steps(start: float, stop: float, step: float) -> Iterator[float]:
    value = start
    while value <= stop:
        yield value
        value += step


def max_pv_from_roof(assumptions: AnalysisAssumptions) -> float:
    """Largest PV array (kW) the usable roof area can hold."""
    if assumptions.max_pv_from_roof_kw is not None:
        return assumptions.max_pv_from_roof_kw
    usable_sqm = assumptions.roof_area_sqft / SQFT_PER_SQM * assumptions.roof_utilization_ratio
    return usable_sqm / SQM_PER_PANEL * KW_PER_PANEL


def point_type(pv_kw: float, battery_kwh: float) -> str:
    if pv_kw > 0 and battery_kwh > 0:
        return POINT_HYBRID
    if pv_kw > 0:
        return POINT_SOLAR
    return POINT_BATTERY


def point_label(pv_kw: float, battery_kwh: float) -> str:
    kind = point_type(pv_kw, battery_kwh)
    if kind == POINT_HYBRID:
        return f"{pv_kw:g}kW PV + {battery_kwh:g}kWh"
    if kind == POINT_SOLAR:
        return f"{pv_kw:g}kW solar only"
    return f"{battery_kwh:g}kWh storage only"


@dataclass
class FrontierPoint:
    """
    One evaluated sizing of the frontier.

    ``type`` is derived from the sizes and cannot disagree with them.
    """

    id: str
    label: str
    pv_kw: float
    battery_kwh: float
    battery_kw: float
    capex_net: float
    npv25: float
    irr25: float
    simple_payback_years: int
    self_sufficiency_percent: float
    annual_savings: float
    total_production_kwh: float
    co2_avoided_tonnes_per_year: float
    is_optimal: bool = False
    sweep_source: str | None = None

    @property
    def type(self) -> str:
        return point_type(self.pv_kw, self.battery_kwh)

    @property
    def key(self) -> str:
        return f"{self.pv_kw:g}-{self.battery_kwh:g}"

    def as_dict(self) -> Dict[str, object]:
        data = dict(self.__dict__)
        data["type"] = self.type
        return data

    @classmethod
    def from_financials(
        cls,
        point_id: str,
        financials: ScenarioFinancials,
        label: str | None = None,
        sweep_source: str | None = None,
    ) -> "FrontierPoint":
        return cls(
            id=point_id,
            label=label or point_label(financials.pv_kw, financials.battery_kwh),
            pv_kw=financials.pv_kw,
            battery_kwh=financials.battery_kwh,
            battery_kw=financials.battery_kw,
            capex_net=financials.capex_net,
            npv25=financials.npv25,
            irr25=financials.irr25,
            simple_payback_years=financials.simple_payback_years,
            self_sufficiency_percent=financials.self_sufficiency_percent,
            annual_savings=financials.annual_savings,
            total_production_kwh=financials.total_production_kwh,
            co2_avoided_tonnes_per_year=financials.co2_avoided_tonnes_per_year,
            sweep_source=sweep_source,
        )


@dataclass
class SolarSweepPoint:
    pv_kw: float
    npv25: float
    is_optimal: bool = False


@dataclass
class BatterySweepPoint:
    battery_kwh: float
    npv25: float
    is_optimal: bool = False


@dataclass
class OptimalScenario:
    """A frontier pick together with its re-evaluated financial detail."""

    point: FrontierPoint
    financials: ScenarioFinancials


@dataclass
class OptimalScenarios:
    best_npv: OptimalScenario | None = None
    best_irr: OptimalScenario | None = None
    max_self_sufficiency: OptimalScenario | None = None

    def items(self) -> List[tuple]:
        return [
            ("best_npv", self.best_npv),
            ("best_irr", self.best_irr),
            ("max_self_sufficiency", self.max_self_sufficiency),
        ]


@dataclass
class SensitivityResult:
    frontier: List[FrontierPoint] = field(default_factory=list)
    solar_sweep: List[SolarSweepPoint] = field(default_factory=list)
    battery_sweep: List[BatterySweepPoint] = field(default_factory=list)
    optimal_scenario_id: str | None = None
    optimal_scenarios: OptimalScenarios = field(default_factory=OptimalScenarios)
    evaluations: int = 0

    def frontier_frame(self) -> pd.DataFrame:
        return pd.DataFrame([point.as_dict() for point in self.frontier])

    def solar_sweep_frame(self) -> pd.DataFrame:
        return pd.DataFrame([p.__dict__ for p in self.solar_sweep], columns=["pv_kw", "npv25", "is_optimal"])

    def battery_sweep_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [p.__dict__ for p in self.battery_sweep], columns=["battery_kwh", "npv25", "is_optimal"]
        )


def _flag_sweep_optimum(points: Sequence) -> None:
    if not points:
        return
    best = max(p.npv25 for p in points)
    for p in points:
        p.is_optimal = p.npv25 == best


def run_sensitivity_analysis(
    buckets: Sequence[HourlyBucket],
    sizing: SystemSizing,
    peak_kw: float,
    annual_consumption_kwh: float,
    assumptions: AnalysisAssumptions,
    yield_strategy: YieldStrategy,
    configured_npv25: float | None = None,
    logger: logging.Logger | None = None,
) -> SensitivityResult:
    """
    Sweep solar and battery sizes around a configured sizing.

    Args:
        buckets: 8,760 hourly consumption/demand buckets.
        sizing: Configured sizing; a non-empty sizing becomes the
            ``current-config`` frontier point.
        peak_kw: Annual site peak demand (kW).
        annual_consumption_kwh: Annual site consumption (kWh).
        assumptions: Financial and roof assumptions.
        yield_strategy: Yield resolved once for the analysis.
        configured_npv25: Optional NPV already computed for the configured
            sizing, reported on the current-config point instead of the
            re-evaluated one.
        logger: Optional logger; defaults to the module logger.

    Returns:
        SensitivityResult with the frontier, sweeps and optimal picks.
    """
    log = logger or _logger
    evaluations = 0

    def evaluate(pv_kw: float, battery_kwh: float, battery_kw: float) -> ScenarioFinancials:
        nonlocal evaluations
        evaluations += 1
        return run_scenario(
            buckets,
            SystemSizing(pv_kw=pv_kw, battery_kwh=battery_kwh, battery_kw=battery_kw),
            peak_kw,
            annual_consumption_kwh,
            assumptions,
            yield_strategy,
            logger=log,
        )

    pv_cfg, batt_cfg, batt_kw_cfg = sizing.pv_kw, sizing.battery_kwh, sizing.battery_kw
    frontier: List[FrontierPoint] = []
    solar_sweep: List[SolarSweepPoint] = []
    battery_sweep: List[BatterySweepPoint] = []

    if pv_cfg > 0 or batt_cfg > 0:
        current = FrontierPoint.from_financials(
            "current-config",
            evaluate(pv_cfg, batt_cfg, batt_kw_cfg),
            label=f"{point_label(pv_cfg, batt_cfg)} (Current)",
        )
        if configured_npv25 is not None:
            current.npv25 = configured_npv25
        frontier.append(current)

    roof_max = max_pv_from_roof(assumptions)
    solar_max = min(max(pv_cfg * 1.5, roof_max * 0.5), roof_max)
    solar_step = max(5, _round_half_up(solar_max / SOLAR_SWEEP_STEPS / 5) * 5)

    # solar sweep at the configured battery energy
    solar_sizes = set(_steps(0, solar_max, solar_step))
    if pv_cfg > 0:
        solar_sizes.add(pv_cfg)
    sweep_batt_kw = _round_half_up(batt_cfg / 2)
    for pv in sorted(solar_sizes):
        result = evaluate(pv, batt_cfg, sweep_batt_kw)
        solar_sweep.append(SolarSweepPoint(pv_kw=pv, npv25=result.npv25))
        if pv > 0 and batt_cfg > 0 and pv != pv_cfg:
            frontier.append(FrontierPoint.from_financials(f"hybrid-pv{pv:g}", result, sweep_source="pvSweep"))

    # battery sweep at the configured PV size
    battery_max = max(batt_cfg * 2, BATTERY_SWEEP_MIN_MAX_KWH)
    battery_step = max(10, _round_half_up(battery_max / BATTERY_SWEEP_STEPS / 10) * 10)
    battery_sizes = set(_steps(0, battery_max, battery_step))
    if batt_cfg > 0:
        battery_sizes.add(batt_cfg)
    for batt in sorted(battery_sizes):
        result = evaluate(pv_cfg, batt, _round_half_up(batt / 2))
        battery_sweep.append(BatterySweepPoint(battery_kwh=batt, npv25=result.npv25))

    if pv_cfg > 0:
        for batt in _steps(battery_step, battery_max, battery_step):
            if batt == batt_cfg:
                continue
            result = evaluate(pv_cfg, batt, _round_half_up(batt / 2))
            frontier.append(FrontierPoint.from_financials(f"hybrid-batt{batt:g}", result, sweep_source="battSweep"))

    for pv in _steps(solar_step, solar_max, solar_step):
        if batt_cfg > 0 or pv != pv_cfg:
            frontier.append(FrontierPoint.from_financials(f"solar-{pv:g}", evaluate(pv, 0, 0)))

    for batt in _steps(battery_step, battery_max, battery_step * 2):
        if pv_cfg > 0 or batt != batt_cfg:
            result = evaluate(0, batt, _round_half_up(batt / 2))
            frontier.append(FrontierPoint.from_financials(f"battery-{batt:g}", result))

    # coarse hybrid grid, profitable points only
    grid_pv_step = max(10, _round_half_up(solar_max / HYBRID_GRID_STEPS / 10) * 10)
    grid_batt_max = max(peak_kw * 2, batt_cfg * 2, HYBRID_BATTERY_MIN_MAX_KWH)
    grid_batt_step = max(20, _round_half_up(grid_batt_max / HYBRID_GRID_STEPS / 20) * 20)
    seen = {point.key for point in frontier}
    for pv in _steps(grid_pv_step, solar_max, grid_pv_step):
        for batt in _steps(grid_batt_step, grid_batt_max, grid_batt_step):
            key = f"{pv:g}-{batt:g}"
            if key in seen:
                continue
            seen.add(key)
            result = evaluate(pv, batt, _round_half_up(batt / 2))
            if result.npv25 > 0:
                frontier.append(
                    FrontierPoint.from_financials(
                        f"hybrid-grid-pv{pv:g}-batt{batt:g}", result, sweep_source="hybridGrid"
                    )
                )

    optimal_id = None
    best_npv = -math.inf
    for point in frontier:
        if point.npv25 > best_npv:
            best_npv = point.npv25
            optimal_id = point.id
    for point in frontier:
        point.is_optimal = point.id == optimal_id

    _flag_sweep_optimum(solar_sweep)
    _flag_sweep_optimum(battery_sweep)

    def pick(candidates: Sequence[FrontierPoint], metric: Callable[[FrontierPoint], float]) -> FrontierPoint | None:
        chosen = None
        best = -math.inf
        for point in candidates:
            value = metric(point)
            if math.isfinite(value) and value > best:
                best = value
                chosen = point
        return chosen

    def detail(point: FrontierPoint | None) -> OptimalScenario | None:
        if point is None:
            return None
        return OptimalScenario(point=point, financials=evaluate(point.pv_kw, point.battery_kwh, point.battery_kw))

    best_npv_point = next((p for p in frontier if p.id == optimal_id), None)
    best_irr_point = pick([p for p in frontier if p.npv25 > 0], lambda p: p.irr25 or 0.0)
    max_self_point = pick(
        [p for p in frontier if p.pv_kw > 0 or p.battery_kwh > 0],
        lambda p: p.self_sufficiency_percent or 0.0,
    )
    optimal = OptimalScenarios(
        best_npv=detail(best_npv_point),
        best_irr=detail(best_irr_point),
        max_self_sufficiency=detail(max_self_point),
    )

    log.info(
        "Sensitivity analysis: %d scenarios evaluated, %d frontier points, optimal=%s",
        evaluations,
        len(frontier),
        optimal_id,
    )
    return SensitivityResult(
        frontier=frontier,
        solar_sweep=solar_sweep,
        battery_sweep=battery_sweep,
        optimal_scenario_id=optimal_id,
        optimal_scenarios=optimal,
        evaluations=evaluations,
    )
