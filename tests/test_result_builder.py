from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import List

import pandas as pd

from solar_site_sim.result_builder import ResultBuilder
from solar_site_sim.simulation import (
    AnalysisAssumptions,
    MonteCarloConfig,
    SystemSizing,
    resolve_yield_strategy,
    run_monte_carlo_analysis,
    run_scenario,
    run_sensitivity_analysis,
    summarize_consumption,
)


@dataclass
class _Outcome:
    npv25: float
    npv10: float = 0.0
    npv20: float = 0.0
    irr10: float = 0.0
    irr20: float = 0.0
    irr25: float = 0.1
    capex_net: float = 500.0
    cashflow_values: List[float] = field(default_factory=lambda: [-500.0] + [80.0] * 25)


def _inputs(buckets, roof_kw=40.0):
    assumptions = AnalysisAssumptions(max_pv_from_roof_kw=roof_kw)
    annual, peak = summarize_consumption(buckets)
    return annual, peak, assumptions, resolve_yield_strategy(assumptions)


def test_build_analysis_writes_tables_and_charts(tmp_path, short_buckets):
    annual, peak, assumptions, strategy = _inputs(short_buckets)
    financials = run_scenario(short_buckets, SystemSizing(pv_kw=30), peak, annual, assumptions, strategy)

    run_dir = ResultBuilder(tmp_path).build_analysis("Site / Test", financials)

    assert run_dir.parent == tmp_path
    assert run_dir.name.endswith("_Site___Test_analysis")
    cashflows = pd.read_csv(run_dir / "cashflows.csv")
    assert len(cashflows) == 31
    assert (run_dir / "monthly_peaks.csv").exists()
    assert (run_dir / "cashflow.png").exists()
    assert (run_dir / "monthly_peaks.png").exists()
    assert (run_dir / "hourly_profile.png").exists()
    summary = json.loads((run_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["pv_kw"] == 30


def test_build_sensitivity_writes_frontier_and_picks(tmp_path, short_buckets):
    annual, peak, assumptions, strategy = _inputs(short_buckets)
    result = run_sensitivity_analysis(short_buckets, SystemSizing(pv_kw=30), peak, annual, assumptions, strategy)

    run_dir = ResultBuilder(tmp_path).build_sensitivity("Site", result)

    frontier = pd.read_csv(run_dir / "frontier.csv")
    assert len(frontier) == len(result.frontier)
    assert set(frontier["type"]) <= {"solar", "battery", "hybrid"}
    assert (run_dir / "solar_sweep.csv").exists()
    assert (run_dir / "frontier.png").exists()
    optimal = json.loads((run_dir / "optimal_scenarios.json").read_text(encoding="utf-8"))
    assert optimal["optimal_scenario_id"] == result.optimal_scenario_id
    assert (run_dir / "best_npv" / "cashflows.csv").exists()


def test_build_monte_carlo_writes_draws_and_summary(tmp_path):
    result = run_monte_carlo_analysis(
        AnalysisAssumptions(),
        lambda assumptions, multiplier: _Outcome(npv25=1_000 * multiplier),
        MonteCarloConfig(iterations=20, seed=5),
    )

    run_dir = ResultBuilder(tmp_path).build_monte_carlo("Site", result)

    assert len(pd.read_csv(run_dir / "draws.csv")) == 20
    summary = pd.read_csv(run_dir / "summary.csv", index_col="metric")
    assert list(summary.columns) == ["p10", "p50", "p90", "mean"]
    assert "npv25" in summary.index
    assert (run_dir / "npv_distribution.png").exists()
