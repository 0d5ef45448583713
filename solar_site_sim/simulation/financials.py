"""
Financial scenario engine for a solar + storage sizing.

One call to :func:`run_scenario` runs the hourly simulation for a sizing,
prices the resulting savings under the site tariff, stacks the Hydro-Québec
rebate, the federal investment tax credit and the capital cost allowance
shield, and builds a 31-entry (year 0-30) cashflow from which NPV, IRR, LCOE
and payback are derived.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from .assumptions import AnalysisAssumptions, SystemSizing
from .energy_simulator import SimulationResult, run_hourly_simulation
from .readings import HourlyBucket
from .yield_strategy import SOURCE_DEFAULT, YieldStrategy

_logger = logging.getLogger(__name__)

MAX_SCENARIO_YEARS = 30
NPV_HORIZONS = (10, 20, 25, 30)
LCOE_HORIZONS = (25, 30)
PAYBACK_SEARCH_YEARS = 25
PAYBACK_FALLBACK_YEARS = 30
SURPLUS_START_YEAR = 3
FIXED_REPLACEMENT_YEARS = (20, 30)

SHAVING_THRESHOLD_RATIO = 0.9
DEFAULT_REMOTE_SNOW_PROFILE = "ballasted_10deg"

# (minimum kW, $/W), largest band first
SOLAR_COST_TIERS = (
    (3000.0, 1.70),
    (1000.0, 1.85),
    (500.0, 2.00),
    (100.0, 2.15),
)
SOLAR_COST_SMALL = 2.30

HQ_SOLAR_REBATE_PER_KW = 1000.0
HQ_SOLAR_ELIGIBLE_KW = 1000.0
HQ_REBATE_CAP_RATIO = 0.40
FEDERAL_ITC_RATE = 0.30
CCA_RATIO = 0.90
CO2_TONNES_PER_MWH = 0.002

IRR_INITIAL_GUESS = 0.1
IRR_MAX_ITERATIONS = 200
IRR_TOLERANCE = 1e-4
IRR_MIN_DERIVATIVE = 1e-10
IRR_ITERATE_BOUNDS = (-0.99, 5.0)
BISECTION_BRACKET = (-0.99, 2.0)
BISECTION_SCAN_STEP = 0.1
BISECTION_MAX_ITERATIONS = 100


def get_tiered_solar_cost_per_w(pv_kw: float) -> float:
    """Installed PV cost ($/W) for a system size; larger systems are cheaper per watt."""
    for min_kw, cost in SOLAR_COST_TIERS:
        if pv_kw >= min_kw:
            return cost
    return SOLAR_COST_SMALL


def calculate_npv(cashflows: Sequence[float], rate: float, years: int | None = None) -> float:
    """
    Net present value of the cashflow prefix ending at ``years``.

    Index 0 is undiscounted. ``years`` larger than the series uses the whole series.
    """
    flows = np.asarray(cashflows, dtype=float)
    if flows.size == 0:
        return 0.0
    last = flows.size - 1 if years is None else min(years, flows.size - 1)
    periods = np.arange(last + 1, dtype=float)
    return float(np.sum(flows[: last + 1] / np.power(1.0 + rate, periods)))


def _npv_at(flows: np.ndarray, rate: float) -> float:
    periods = np.arange(flows.size, dtype=float)
    return float(np.sum(flows / np.power(1.0 + rate, periods)))


def _bisection_irr(flows: np.ndarray) -> float:
    low, high = BISECTION_BRACKET
    npv_low = _npv_at(flows, low)
    npv_high = _npv_at(flows, high)

    if npv_low * npv_high > 0:
        for rate in np.arange(low, high + 1e-9, BISECTION_SCAN_STEP):
            npv = _npv_at(flows, float(rate))
            if npv_low * npv < 0:
                high, npv_high = float(rate), npv
                break
            if npv * npv_high < 0:
                low, npv_low = float(rate), npv
                break
        if npv_low * npv_high > 0:
            return 0.0

    mid = (low + high) / 2.0
    for _ in range(BISECTION_MAX_ITERATIONS):
        mid = (low + high) / 2.0
        npv_mid = _npv_at(flows, mid)
        if abs(npv_mid) < IRR_TOLERANCE or (high - low) / 2.0 < IRR_TOLERANCE:
            break
        if npv_mid * npv_low < 0:
            high = mid
        else:
            low, npv_low = mid, npv_mid
    return max(0.0, min(1.0, mid))


def calculate_irr(cashflows: Sequence[float]) -> float:
    """
    Internal rate of return of an annual cashflow series.

    Newton-Raphson starting at 10 %, falling back to bisection when the
    derivative vanishes, the step is not finite or the iteration does not
    converge.

    Returns:
        IRR clamped to [0, 1]. Series without a sign change return 1.0 when
        they contain a positive flow and 0.0 otherwise.
    """
    flows = np.asarray(cashflows, dtype=float)
    if flows.size < 2:
        return 0.0
    has_negative = bool(np.any(flows < 0))
    has_positive = bool(np.any(flows > 0))
    if not (has_negative and has_positive):
        return 1.0 if has_positive else 0.0

    periods = np.arange(flows.size, dtype=float)
    lower, upper = IRR_ITERATE_BOUNDS
    irr = IRR_INITIAL_GUESS
    for _ in range(IRR_MAX_ITERATIONS):
        growth = 1.0 + irr
        npv = float(np.sum(flows / np.power(growth, periods)))
        dnpv = float(np.sum(-periods[1:] * flows[1:] / np.power(growth, periods[1:] + 1.0)))
        if abs(dnpv) < IRR_MIN_DERIVATIVE:
            return _bisection_irr(flows)
        candidate = irr - npv / dnpv
        if not math.isfinite(candidate):
            return _bisection_irr(flows)
        candidate = max(lower, min(upper, candidate))
        if abs(candidate - irr) < IRR_TOLERANCE:
            return max(0.0, min(1.0, candidate))
        irr = candidate
    return _bisection_irr(flows)


def _payback_year(cashflows: Sequence[float]) -> int:
    cumulative = 0.0
    for year, value in enumerate(cashflows):
        cumulative += value
        if 1 <= year <= PAYBACK_SEARCH_YEARS and cumulative >= 0:
            return year
    return PAYBACK_FALLBACK_YEARS


@dataclass(frozen=True)
class CashflowEntry:
    """One year of the project cashflow (year 0 is the initial equity)."""

    year: int
    revenue: float
    opex: float
    ebitda: float
    investment: float
    tax_shield: float
    incentives: float
    net_cashflow: float
    cumulative: float


@dataclass(frozen=True)
class HourlyProfilePoint:
    """Average site load for one hour of the day before and after the system."""

    hour: str
    consumption_before: int
    consumption_after: int
    peak_before: int
    peak_after: int


@dataclass
class ScenarioFinancials:
    """
    Full financial outcome of one sizing.

    Monetary values are in CAD, energy in kWh, power in kW. ``irr_*`` are
    fractions. ``cashflows`` is empty when the sizing has no capital cost.
    """

    pv_kw: float = 0.0
    battery_kwh: float = 0.0
    battery_kw: float = 0.0
    capex_solar: float = 0.0
    capex_battery: float = 0.0
    capex_gross: float = 0.0
    capex_net: float = 0.0
    incentives_hq_solar: float = 0.0
    incentives_hq_battery: float = 0.0
    incentives_hq: float = 0.0
    incentives_federal: float = 0.0
    tax_shield: float = 0.0
    total_incentives: float = 0.0
    cashflows: List[CashflowEntry] = field(default_factory=list)
    npv10: float = 0.0
    npv20: float = 0.0
    npv25: float = 0.0
    npv30: float = 0.0
    irr10: float = 0.0
    irr20: float = 0.0
    irr25: float = 0.0
    irr30: float = 0.0
    lcoe: float = 0.0
    lcoe30: float = 0.0
    simple_payback_years: int = 0
    annual_savings: float = 0.0
    demand_savings: float = 0.0
    annual_surplus_revenue: float = 0.0
    annual_cost_before: float = 0.0
    annual_cost_after: float = 0.0
    self_consumption_kwh: float = 0.0
    total_production_kwh: float = 0.0
    total_exported_kwh: float = 0.0
    peak_after_kw: float = 0.0
    self_sufficiency_percent: float = 0.0
    co2_avoided_tonnes_per_year: float = 0.0
    hourly_profile_summary: List[HourlyProfilePoint] = field(default_factory=list)
    simulation: SimulationResult | None = None

    @property
    def cashflow_values(self) -> List[float]:
        return [entry.net_cashflow for entry in self.cashflows]

    def to_cashflow_frame(self) -> pd.DataFrame:
        """Cashflow table, one row per project year."""
        return pd.DataFrame(
            [entry.__dict__ for entry in self.cashflows],
            columns=[
                "year", "revenue", "opex", "ebitda", "investment",
                "tax_shield", "incentives", "net_cashflow", "cumulative",
            ],
        )

    def summary(self) -> Dict[str, float]:
        """Headline figures as a flat JSON-friendly mapping."""
        return {
            "pv_kw": self.pv_kw,
            "battery_kwh": self.battery_kwh,
            "battery_kw": self.battery_kw,
            "capex_gross": self.capex_gross,
            "capex_net": self.capex_net,
            "total_incentives": self.total_incentives,
            "npv10": self.npv10,
            "npv20": self.npv20,
            "npv25": self.npv25,
            "npv30": self.npv30,
            "irr10": self.irr10,
            "irr20": self.irr20,
            "irr25": self.irr25,
            "irr30": self.irr30,
            "lcoe": self.lcoe,
            "lcoe30": self.lcoe30,
            "simple_payback_years": self.simple_payback_years,
            "annual_savings": self.annual_savings,
            "annual_cost_before": self.annual_cost_before,
            "annual_cost_after": self.annual_cost_after,
            "self_sufficiency_percent": self.self_sufficiency_percent,
            "total_production_kwh": self.total_production_kwh,
            "co2_avoided_tonnes_per_year": self.co2_avoided_tonnes_per_year,
        }


def _hourly_profile_summary(result: SimulationResult) -> List[HourlyProfilePoint]:
    if not result.hourly_profile:
        return []
    frame = result.to_dataframe()
    means = frame.groupby("hour")[["consumption", "production", "peak_before"]].mean()
    points = []
    for hour, row in means.iterrows():
        points.append(
            HourlyProfilePoint(
                hour=f"{int(hour)}h",
                consumption_before=int(round(row["consumption"])),
                consumption_after=max(0, int(round(row["consumption"] - row["production"]))),
                peak_before=int(round(row["peak_before"])),
                peak_after=int(round(max(0.0, row["peak_before"] - row["production"]))),
            )
        )
    return points


def run_scenario(
    buckets: Sequence[HourlyBucket],
    sizing: SystemSizing,
    peak_kw: float,
    annual_consumption_kwh: float,
    assumptions: AnalysisAssumptions,
    yield_strategy: YieldStrategy,
    logger: logging.Logger | None = None,
) -> ScenarioFinancials:
    """
    Simulate and price one solar + storage sizing over 30 years.

    Args:
        buckets: 8,760 hourly consumption/demand buckets.
        sizing: PV kW, battery kWh and battery kW to evaluate.
        peak_kw: Annual site peak demand (kW) before the system.
        annual_consumption_kwh: Annual site consumption (kWh).
        assumptions: Tariff, cost, incentive and escalation assumptions.
        yield_strategy: Yield resolved once for the whole analysis.
        logger: Optional logger; defaults to the module logger.

    Returns:
        ScenarioFinancials. A sizing without capital cost returns an
        all-zero result.
    """
    log = logger or _logger
    a = assumptions
    pv_kw, battery_kwh, battery_kw = sizing.pv_kw, sizing.battery_kwh, sizing.battery_kw

    threshold_kw = float(round(peak_kw * SHAVING_THRESHOLD_RATIO)) if battery_kw > 0 else peak_kw
    snow_profile = a.snow_loss_profile
    if snow_profile is None and yield_strategy.source != SOURCE_DEFAULT:
        snow_profile = DEFAULT_REMOTE_SNOW_PROFILE

    sim = run_hourly_simulation(
        buckets,
        pv_kw,
        battery_kwh,
        battery_kw,
        threshold_kw,
        yield_strategy.yield_factor,
        a.system_params,
        yield_strategy.source,
        snow_profile=snow_profile,
        logger=log,
    )

    demand_cost_before = sum(before * a.tariff_power for before in sim.monthly_peaks_before)
    demand_savings = sum(
        max(0.0, before - after) * a.tariff_power
        for before, after in zip(sim.monthly_peaks_before, sim.monthly_peaks_after)
    )
    annual_cost_before = annual_consumption_kwh * a.tariff_energy + demand_cost_before
    energy_savings = sim.total_self_consumption * a.tariff_energy
    grid_charging_cost = sim.total_grid_charging * a.tariff_energy
    annual_savings = energy_savings - grid_charging_cost + demand_savings
    annual_surplus_revenue = sim.total_exported * a.surplus_compensation_rate

    cost_per_w = a.solar_cost_per_w if a.solar_cost_per_w is not None else get_tiered_solar_cost_per_w(pv_kw)
    if a.bifacial_enabled:
        cost_per_w += a.bifacial_cost_premium
    capex_solar = pv_kw * 1000.0 * cost_per_w
    capex_battery = battery_kwh * a.battery_capacity_cost + battery_kw * a.battery_power_cost
    capex_gross = capex_solar + capex_battery
    if capex_gross == 0:
        log.debug("Sizing %s has no capital cost, returning empty financials", sizing.describe())
        return ScenarioFinancials(pv_kw=pv_kw, battery_kwh=battery_kwh, battery_kw=battery_kw)

    rebate_cap = capex_gross * HQ_REBATE_CAP_RATIO
    hq_solar = min(min(pv_kw, HQ_SOLAR_ELIGIBLE_KW) * HQ_SOLAR_REBATE_PER_KW, rebate_cap)
    hq_battery = 0.0
    if pv_kw > 0 and battery_kwh > 0:
        hq_battery = min(max(0.0, rebate_cap - hq_solar), capex_battery)
    hq_total = hq_solar + hq_battery
    federal = (capex_gross - hq_total) * FEDERAL_ITC_RATE
    depreciable = max(0.0, capex_gross - hq_total - federal)
    tax_shield = depreciable * a.tax_rate * CCA_RATIO
    total_incentives = hq_total + federal + tax_shield
    capex_net = capex_gross - total_incentives

    # half of the battery rebate is paid up front, the rest in year 1
    equity_initial = capex_gross - hq_solar - hq_battery * 0.5
    opex_base = capex_solar * a.om_solar_percent + capex_battery * a.om_battery_percent
    replacement_years = {a.battery_replacement_year, *FIXED_REPLACEMENT_YEARS}

    entries = [
        CashflowEntry(
            year=0, revenue=0.0, opex=0.0, ebitda=0.0, investment=-capex_gross,
            tax_shield=0.0, incentives=hq_solar + hq_battery * 0.5,
            net_cashflow=-equity_initial, cumulative=-equity_initial,
        )
    ]
    cumulative = -equity_initial
    production_by_year = []
    for year in range(1, MAX_SCENARIO_YEARS + 1):
        degradation = (1.0 - a.degradation_rate) ** (year - 1)
        escalation = (1.0 + a.inflation_rate) ** (year - 1)
        revenue = annual_savings * degradation * escalation
        if year >= SURPLUS_START_YEAR:
            revenue += annual_surplus_revenue * degradation * escalation
        opex = opex_base * (1.0 + a.om_escalation) ** (year - 1)
        ebitda = revenue - opex

        shield = tax_shield if year == 1 else 0.0
        incentives = hq_battery * 0.5 if year == 1 else federal if year == 2 else 0.0
        investment = 0.0
        if battery_kwh > 0 and year in replacement_years:
            growth = 1.0 + a.inflation_rate - a.battery_price_decline_rate
            investment = -capex_battery * a.battery_replacement_cost_factor * growth ** year

        net = ebitda + shield + incentives + investment
        cumulative += net
        entries.append(
            CashflowEntry(
                year=year, revenue=revenue, opex=opex, ebitda=ebitda, investment=investment,
                tax_shield=shield, incentives=incentives, net_cashflow=net, cumulative=cumulative,
            )
        )
        production_by_year.append(sim.total_production * degradation)

    values = [entry.net_cashflow for entry in entries]
    npvs = {n: calculate_npv(values, a.discount_rate, n) for n in NPV_HORIZONS}
    irrs = {n: calculate_irr(values[: n + 1]) for n in NPV_HORIZONS}

    lcoes = {}
    for n in LCOE_HORIZONS:
        produced = sum(production_by_year[:n])
        lcoes[n] = (capex_net + opex_base * n) / produced if produced > 0 else 0.0

    self_consumption = sim.total_self_consumption
    result = ScenarioFinancials(
        pv_kw=pv_kw,
        battery_kwh=battery_kwh,
        battery_kw=battery_kw,
        capex_solar=capex_solar,
        capex_battery=capex_battery,
        capex_gross=capex_gross,
        capex_net=capex_net,
        incentives_hq_solar=hq_solar,
        incentives_hq_battery=hq_battery,
        incentives_hq=hq_total,
        incentives_federal=federal,
        tax_shield=tax_shield,
        total_incentives=total_incentives,
        cashflows=entries,
        npv10=npvs[10],
        npv20=npvs[20],
        npv25=npvs[25],
        npv30=npvs[30],
        irr10=irrs[10],
        irr20=irrs[20],
        irr25=irrs[25],
        irr30=irrs[30],
        lcoe=lcoes[25],
        lcoe30=lcoes[30],
        simple_payback_years=_payback_year(values),
        annual_savings=annual_savings,
        demand_savings=demand_savings,
        annual_surplus_revenue=annual_surplus_revenue,
        annual_cost_before=annual_cost_before,
        annual_cost_after=annual_cost_before - annual_savings,
        self_consumption_kwh=self_consumption,
        total_production_kwh=sim.total_production,
        total_exported_kwh=sim.total_exported,
        peak_after_kw=sim.peak_after,
        self_sufficiency_percent=(
            self_consumption / annual_consumption_kwh * 100.0 if annual_consumption_kwh > 0 else 0.0
        ),
        co2_avoided_tonnes_per_year=self_consumption * CO2_TONNES_PER_MWH / 1000.0,
        hourly_profile_summary=_hourly_profile_summary(sim),
        simulation=sim,
    )
    log.debug(
        "Scenario %s: capex_net=%.0f npv25=%.0f irr25=%.3f payback=%d",
        sizing.describe(),
        result.capex_net,
        result.npv25,
        result.irr25,
        result.simple_payback_years,
    )
    return result
