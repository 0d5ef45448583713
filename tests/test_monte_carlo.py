from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import pytest

from solar_site_sim.simulation.assumptions import AnalysisAssumptions, SystemSizing
from solar_site_sim.simulation.monte_carlo import (
    MonteCarloConfig,
    make_scenario_runner,
    nearest_rank_percentile,
    payback_from_cashflows,
    run_monte_carlo_analysis,
)
from solar_site_sim.simulation.readings import summarize_consumption
from solar_site_sim.simulation.yield_strategy import resolve_yield_strategy


@dataclass
class FakeOutcome:
    npv25: float
    npv10: float = 0.0
    npv20: float = 0.0
    irr10: float = 0.05
    irr20: float = 0.08
    irr25: float = 0.10
    capex_net: float = 1_000.0
    cashflow_values: List[float] = field(default_factory=lambda: [-1_000.0] + [150.0] * 25)


def fake_scenario(assumptions, multiplier):
    return FakeOutcome(npv25=10_000 * multiplier + 1_000 * assumptions.inflation_rate)


def test_percentiles_are_ordered():
    result = run_monte_carlo_analysis(AnalysisAssumptions(), fake_scenario, MonteCarloConfig(iterations=200, seed=3))

    assert result.iterations == 200
    assert result.p10.npv25 <= result.p50.npv25 <= result.p90.npv25
    assert result.distribution["npv25"] == sorted(result.distribution["npv25"])
    assert len(result.draws) == 200
    assert 9_000 * 0.99 < result.mean.npv25 < 11_000 * 1.01


def test_draws_stay_within_ranges():
    config = MonteCarloConfig(iterations=100, seed=11)
    result = run_monte_carlo_analysis(AnalysisAssumptions(), fake_scenario, config)

    assert result.draws["tariff_escalation"].between(0.02, 0.07).all()
    assert result.draws["om_escalation"].between(0.03, 0.06).all()
    assert result.draws["production_variance"].between(-0.10, 0.10).all()
    assert result.input_ranges["tariff_escalation"] == (0.02, 0.07)


def test_same_seed_gives_same_result():
    config = MonteCarloConfig(iterations=50, seed=42)

    first = run_monte_carlo_analysis(AnalysisAssumptions(), fake_scenario, config)
    second = run_monte_carlo_analysis(AnalysisAssumptions(), fake_scenario, config)

    assert first.distribution == second.distribution
    assert first.p50 == second.p50


def test_failed_iterations_are_skipped():
    calls = {"n": 0}

    def flaky(assumptions, multiplier):
        calls["n"] += 1
        if calls["n"] % 3 == 0:
            raise ValueError("boom")
        return fake_scenario(assumptions, multiplier)

    result = run_monte_carlo_analysis(AnalysisAssumptions(), flaky, MonteCarloConfig(iterations=9, seed=1))

    assert result.iterations == 6
    assert len(result.distribution["npv25"]) == 6


def test_all_failures_raise():
    def failing(assumptions, multiplier):
        raise ValueError("boom")

    with pytest.raises(RuntimeError):
        run_monte_carlo_analysis(AnalysisAssumptions(), failing, MonteCarloConfig(iterations=3))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"iterations": 0},
        {"tariff_escalation_range": (0.07, 0.02)},
        {"production_variance_range": (0.1, -0.1)},
    ],
)
def test_invalid_config_raises(kwargs):
    with pytest.raises(ValueError):
        MonteCarloConfig(**kwargs)


def test_nearest_rank_percentile():
    values = list(range(1, 11))

    assert nearest_rank_percentile(values, 0.1) == 2
    assert nearest_rank_percentile(values, 0.5) == 6
    assert nearest_rank_percentile(values, 0.9) == 10
    assert nearest_rank_percentile(values, 1.0) == 10
    assert nearest_rank_percentile([], 0.5) == 0.0


def test_payback_interpolates_within_the_year():
    assert payback_from_cashflows([-100, 60, 60]) == pytest.approx(1 + 40 / 60)
    assert payback_from_cashflows([-100, 50, 50]) == pytest.approx(2.0)
    assert payback_from_cashflows([-100, 1, 1]) == 25.0
    assert payback_from_cashflows([10, 10]) == 0.0


def test_scenario_runner_with_real_engine(short_buckets):
    assumptions = AnalysisAssumptions()
    annual, peak = summarize_consumption(short_buckets)
    runner = make_scenario_runner(
        short_buckets,
        SystemSizing(pv_kw=30),
        peak,
        annual,
        resolve_yield_strategy(assumptions),
    )

    result = run_monte_carlo_analysis(assumptions, runner, MonteCarloConfig(iterations=5, seed=9))

    assert result.iterations == 5
    assert result.p10.npv25 <= result.p90.npv25
    assert result.p50.capex_net == pytest.approx(result.p90.capex_net)
    assert 0 <= result.p50.payback_years <= 25


def test_config_from_payload_section():
    config = MonteCarloConfig.from_mapping({"iterations": 20, "seed": 5, "om_escalation_range": [0.02, 0.04]})

    assert config.iterations == 20
    assert config.om_escalation_range == (0.02, 0.04)
    assert MonteCarloConfig.from_mapping(None) == MonteCarloConfig()


@pytest.mark.parametrize(
    "section,name",
    [
        ({"itterations": 10}, "itterations"),
        ({"iterations": "ten"}, "iterations"),
        ({"iterations": 2.5}, "iterations"),
        ({"seed": True}, "seed"),
        ({"tariff_escalation_range": "0.02-0.07"}, "tariff_escalation_range"),
        ({"production_variance_range": [-0.1, 0.0, 0.1]}, "production_variance_range"),
        ({"discount_rate_range": [0.06, "x"]}, "discount_rate_range"),
    ],
)
def test_config_from_payload_rejects_bad_section(section, name):
    with pytest.raises(ValueError, match=name):
        MonteCarloConfig.from_mapping(section)


def test_optional_variables_are_off_by_default():
    seen = []

    def recording(assumptions, multiplier):
        seen.append(assumptions)
        return fake_scenario(assumptions, multiplier)

    base = AnalysisAssumptions()
    result = run_monte_carlo_analysis(base, recording, MonteCarloConfig(iterations=5, seed=4))

    assert set(result.input_ranges) == {"tariff_escalation", "om_escalation", "production_variance"}
    assert "discount_rate" not in result.draws.columns
    assert {a.discount_rate for a in seen} == {base.discount_rate}
    assert {a.solar_cost_per_w for a in seen} == {None}


def test_optional_variables_are_sampled_when_configured():
    seen = []

    def recording(assumptions, multiplier):
        seen.append(assumptions)
        return fake_scenario(assumptions, multiplier)

    config = MonteCarloConfig(
        iterations=40,
        seed=8,
        discount_rate_range=(0.06, 0.08),
        solar_cost_per_w_range=(1.75, 2.35),
        om_per_kwc_range=(10.0, 20.0),
    )
    result = run_monte_carlo_analysis(AnalysisAssumptions(), recording, config)

    assert result.input_ranges["discount_rate"] == (0.06, 0.08)
    assert result.draws["discount_rate"].between(0.06, 0.08).all()
    assert result.draws["solar_cost_per_w"].between(1.75, 2.35).all()
    for assumptions, row in zip(seen, result.draws.itertuples()):
        assert assumptions.discount_rate == pytest.approx(row.discount_rate)
        assert assumptions.solar_cost_per_w == pytest.approx(row.solar_cost_per_w)
        assert assumptions.om_solar_percent == pytest.approx(row.om_per_kwc / (row.solar_cost_per_w * 1000))


def test_optional_variables_keep_base_draws_unchanged():
    plain = run_monte_carlo_analysis(AnalysisAssumptions(), fake_scenario, MonteCarloConfig(iterations=10, seed=3))
    extended = run_monte_carlo_analysis(
        AnalysisAssumptions(),
        fake_scenario,
        MonteCarloConfig(iterations=10, seed=3, discount_rate_range=(0.06, 0.08)),
    )

    for column in ("tariff_escalation", "om_escalation", "production_variance"):
        assert extended.draws[column].tolist() == plain.draws[column].tolist()
