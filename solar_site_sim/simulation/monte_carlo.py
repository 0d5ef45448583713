"""
Monte Carlo uncertainty analysis of a scenario's financial outcome.

Each iteration draws tariff escalation, O&M escalation and a production
variance (plus, when configured, the discount rate, solar cost and O&M
cost) from independent uniform distributions, evaluates a scenario
function under the perturbed assumptions and records NPV, IRR, payback,
net capex and 25-year cumulative cashflow. Percentiles use the nearest-rank
rule over the sorted sample.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Protocol, Sequence, Tuple

import numpy as np
import pandas as pd

from .assumptions import AnalysisAssumptions, SystemSizing, check_fields
from .financials import run_scenario
from .readings import HourlyBucket
from .yield_strategy import YieldStrategy

_logger = logging.getLogger(__name__)

SAVINGS_HORIZON_YEARS = 25
PAYBACK_FALLBACK_YEARS = 25.0
RANGE_FIELDS = ("tariff_escalation_range", "om_escalation_range", "production_variance_range")
OPTIONAL_RANGE_FIELDS = ("discount_rate_range", "solar_cost_per_w_range", "om_per_kwc_range")
DEFAULT_SOLAR_COST_PER_W = 2.00


class ScenarioOutcome(Protocol):
    npv10: float
    npv20: float
    npv25: float
    irr10: float
    irr20: float
    irr25: float
    capex_net: float

    @property
    def cashflow_values(self) -> List[float]: ...


ScenarioFn = Callable[[AnalysisAssumptions, float], ScenarioOutcome]
"""``scenario_fn(assumptions, production_multiplier) -> outcome``."""


@dataclass(frozen=True)
class MonteCarloConfig:
    """
    Sampling configuration.

    Attributes:
        iterations: Number of independent draws.
        seed: Optional seed for reproducible draws.
        tariff_escalation_range: Annual tariff escalation bounds, applied as
            the inflation rate on savings and export revenue.
        om_escalation_range: Annual O&M escalation bounds.
        production_variance_range: Relative production deviation bounds,
            applied as ``yield × (1 + variance)``.
        discount_rate_range: Optional WACC bounds; off unless given.
        solar_cost_per_w_range: Optional installed solar cost bounds in $/W;
            off unless given.
        om_per_kwc_range: Optional solar O&M bounds in $/kWc/yr, converted to
            a share of the solar cost per kW; off unless given.
    """

    iterations: int = 1000
    seed: int | None = None
    tariff_escalation_range: Tuple[float, float] = (0.02, 0.07)
    om_escalation_range: Tuple[float, float] = (0.03, 0.06)
    production_variance_range: Tuple[float, float] = (-0.10, 0.10)
    discount_rate_range: Tuple[float, float] | None = None
    solar_cost_per_w_range: Tuple[float, float] | None = None
    om_per_kwc_range: Tuple[float, float] | None = None

    def __post_init__(self) -> None:
        if self.iterations < 1:
            raise ValueError("iterations must be at least 1")
        for name in RANGE_FIELDS + OPTIONAL_RANGE_FIELDS:
            bounds = getattr(self, name)
            if bounds is None:
                continue
            low, high = bounds
            if low > high:
                raise ValueError(f"{name} lower bound exceeds upper bound")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "MonteCarloConfig":
        """
        Build a config from the ``monte_carlo`` section of a site payload.

        Raises:
            ValueError: On unknown keys, wrongly typed values or ranges that
                are not ``[low, high]`` pairs of numbers.
        """
        if not data:
            return cls()
        check_fields(cls, data, "monte_carlo")
        values = dict(data)
        if "iterations" in values:
            values["iterations"] = int(values["iterations"])
        for name in RANGE_FIELDS + OPTIONAL_RANGE_FIELDS:
            bounds = values.get(name)
            if bounds is None:
                continue
            if (
                isinstance(bounds, (str, bytes))
                or not isinstance(bounds, Sequence)
                or len(bounds) != 2
                or any(isinstance(b, bool) or not isinstance(b, (int, float)) for b in bounds)
            ):
                raise ValueError(f"monte_carlo.{name} must be a [low, high] pair, got {bounds!r}")
            values[name] = (float(bounds[0]), float(bounds[1]))
        return cls(**values)

    def input_ranges(self) -> Dict[str, Tuple[float, float]]:
        ranges = {
            "tariff_escalation": self.tariff_escalation_range,
            "om_escalation": self.om_escalation_range,
            "production_variance": self.production_variance_range,
        }
        for name in OPTIONAL_RANGE_FIELDS:
            bounds = getattr(self, name)
            if bounds is not None:
                ranges[name[: -len("_range")]] = bounds
        return ranges


@dataclass(frozen=True)
class FinancialSummary:
    npv10: float
    npv20: float
    npv25: float
    irr10: float
    irr20: float
    irr25: float
    payback_years: float
    capex_net: float
    total_savings25: float


SUMMARY_METRICS = tuple(FinancialSummary.__dataclass_fields__)


@dataclass
class MonteCarloResult:
    """
    Aggregated outcome of a Monte Carlo run.

    Attributes:
        p10, p50, p90, mean: Per-metric statistics across completed draws.
        iterations: Number of draws that completed without error.
        distribution: Sorted raw ``npv25``, ``irr25`` and ``payback_years`` samples.
        draws: One row per completed draw (sampled inputs and outcomes).
        input_ranges: Sampling bounds used.
    """

    p10: FinancialSummary
    p50: FinancialSummary
    p90: FinancialSummary
    mean: FinancialSummary
    iterations: int
    distribution: Dict[str, List[float]] = field(default_factory=dict)
    draws: pd.DataFrame = field(default_factory=pd.DataFrame)
    input_ranges: Dict[str, Tuple[float, float]] = field(default_factory=dict)

    def summary_frame(self) -> pd.DataFrame:
        """Statistics table with one row per metric and P10/P50/P90/mean columns."""
        return pd.DataFrame(
            {
                "p10": self.p10.__dict__,
                "p50": self.p50.__dict__,
                "p90": self.p90.__dict__,
                "mean": self.mean.__dict__,
            }
        )


def nearest_rank_percentile(sorted_values: Sequence[float], p: float) -> float:
    """``sorted_values[min(n - 1, floor(n·p))]``; the input must already be sorted."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    return float(sorted_values[min(int(math.floor(n * p)), n - 1)])


def payback_from_cashflows(cashflows: Sequence[float]) -> float:
    """
    Fractional payback year of a cashflow series (index = year).

    Interpolates linearly inside the year where the cumulative cashflow turns
    non-negative; series that never pay back return 25.
    """
    cumulative = 0.0
    for year, value in enumerate(cashflows):
        previous = cumulative
        cumulative += value
        if cumulative >= 0:
            fraction = abs(previous) / abs(value) if value != 0 else 0.0
            return max(0.0, year - 1 + fraction)
    return PAYBACK_FALLBACK_YEARS


def _summary(frame: pd.DataFrame, p: float | None) -> FinancialSummary:
    values = {}
    for metric in SUMMARY_METRICS:
        column = frame[metric].to_numpy(dtype=float)
        if p is None:
            values[metric] = float(column.mean())
        else:
            values[metric] = nearest_rank_percentile(np.sort(column), p)
    return FinancialSummary(**values)


def _optional_overrides(base: AnalysisAssumptions, sampled: Dict[str, float]) -> Dict[str, float]:
    """Map the optional sampled variables onto assumption fields."""
    overrides: Dict[str, float] = {}
    if "discount_rate" in sampled:
        overrides["discount_rate"] = sampled["discount_rate"]
    if "solar_cost_per_w" in sampled:
        overrides["solar_cost_per_w"] = sampled["solar_cost_per_w"]
    if "om_per_kwc" in sampled:
        cost_per_w = overrides.get("solar_cost_per_w", base.solar_cost_per_w or DEFAULT_SOLAR_COST_PER_W)
        overrides["om_solar_percent"] = sampled["om_per_kwc"] / (cost_per_w * 1000.0)
    return overrides


def run_monte_carlo_analysis(
    base_assumptions: AnalysisAssumptions,
    scenario_fn: ScenarioFn,
    config: MonteCarloConfig | None = None,
    logger: logging.Logger | None = None,
) -> MonteCarloResult:
    """
    Evaluate a scenario under resampled escalation and production assumptions.

    Args:
        base_assumptions: Assumptions the draws are applied to.
        scenario_fn: Called as ``scenario_fn(assumptions, production_multiplier)``;
            must return an object exposing ``npv10/20/25``, ``irr10/20/25``,
            ``capex_net`` and ``cashflow_values``.
        config: Sampling configuration; defaults to ``MonteCarloConfig()``.
        logger: Optional logger; defaults to the module logger.

    Returns:
        MonteCarloResult over the draws that completed.

    Raises:
        RuntimeError: If every iteration fails.
    """
    log = logger or _logger
    config = config or MonteCarloConfig()
    rng = np.random.default_rng(config.seed)
    n = config.iterations

    tariff_draws = rng.uniform(*config.tariff_escalation_range, size=n)
    om_draws = rng.uniform(*config.om_escalation_range, size=n)
    variance_draws = rng.uniform(*config.production_variance_range, size=n)
    # drawn after the base three, whose seeded sequences stay unchanged
    optional_draws = {
        name[: -len("_range")]: rng.uniform(*getattr(config, name), size=n)
        for name in OPTIONAL_RANGE_FIELDS
        if getattr(config, name) is not None
    }

    rows: List[Dict[str, float]] = []
    for i in range(n):
        sampled = {key: float(values[i]) for key, values in optional_draws.items()}
        varied = replace(
            base_assumptions,
            inflation_rate=float(tariff_draws[i]),
            om_escalation=float(om_draws[i]),
            **_optional_overrides(base_assumptions, sampled),
        )
        multiplier = 1.0 + float(variance_draws[i])
        try:
            outcome = scenario_fn(varied, multiplier)
            flows = list(outcome.cashflow_values)
        except Exception as exc:
            log.warning("Monte Carlo iteration %d failed: %s", i, exc)
            continue
        rows.append(
            {
                "iteration": i,
                "tariff_escalation": float(tariff_draws[i]),
                "om_escalation": float(om_draws[i]),
                "production_variance": float(variance_draws[i]),
                **sampled,
                "npv10": outcome.npv10,
                "npv20": outcome.npv20,
                "npv25": outcome.npv25,
                "irr10": outcome.irr10,
                "irr20": outcome.irr20,
                "irr25": outcome.irr25,
                "payback_years": payback_from_cashflows(flows),
                "capex_net": outcome.capex_net,
                "total_savings25": float(sum(flows[: SAVINGS_HORIZON_YEARS + 1])),
            }
        )

    if not rows:
        raise RuntimeError("All Monte Carlo iterations failed")

    draws = pd.DataFrame(rows)
    if len(rows) < n:
        log.info("Monte Carlo completed %d of %d iterations", len(rows), n)

    result = MonteCarloResult(
        p10=_summary(draws, 0.10),
        p50=_summary(draws, 0.50),
        p90=_summary(draws, 0.90),
        mean=_summary(draws, None),
        iterations=len(rows),
        distribution={
            "npv25": sorted(draws["npv25"].tolist()),
            "irr25": sorted(draws["irr25"].tolist()),
            "payback_years": sorted(draws["payback_years"].tolist()),
        },
        draws=draws,
        input_ranges=config.input_ranges(),
    )
    log.debug(
        "Monte Carlo NPV25 P10/P50/P90 = %.0f / %.0f / %.0f",
        result.p10.npv25,
        result.p50.npv25,
        result.p90.npv25,
    )
    return result


def make_scenario_runner(
    buckets: Sequence[HourlyBucket],
    sizing: SystemSizing,
    peak_kw: float,
    annual_consumption_kwh: float,
    yield_strategy: YieldStrategy,
    logger: logging.Logger | None = None,
) -> ScenarioFn:
    """
    Bind the financial scenario engine as a Monte Carlo scenario function.

    The production multiplier scales the resolved yield; all other yield
    decisions (source, bifacial boost, orientation) stay as resolved.
    """
    log = logger or _logger

    def scenario(assumptions: AnalysisAssumptions, production_multiplier: float):
        return run_scenario(
            buckets,
            sizing,
            peak_kw,
            annual_consumption_kwh,
            assumptions,
            yield_strategy.scaled(production_multiplier),
            logger=log,
        )

    return scenario
