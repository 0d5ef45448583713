from __future__ import annotations

import pytest

from solar_site_sim.simulation.assumptions import AnalysisAssumptions, SystemSizing
from solar_site_sim.simulation.optimizer import (
    FrontierPoint,
    max_pv_from_roof,
    point_label,
    point_type,
    run_sensitivity_analysis,
)
from solar_site_sim.simulation.readings import summarize_consumption
from solar_site_sim.simulation.yield_strategy import resolve_yield_strategy


def _sweep(buckets, sizing, roof_kw=60.0, **kwargs):
    assumptions = AnalysisAssumptions(max_pv_from_roof_kw=roof_kw)
    annual, peak = summarize_consumption(buckets)
    return run_sensitivity_analysis(
        buckets,
        sizing,
        peak,
        annual,
        assumptions,
        resolve_yield_strategy(assumptions),
        **kwargs,
    )


@pytest.fixture()
def solar_only_sweep(short_buckets):
    return _sweep(short_buckets, SystemSizing(pv_kw=40))


def test_point_type_follows_sizes():
    assert point_type(100, 0) == "solar"
    assert point_type(0, 50) == "battery"
    assert point_type(100, 50) == "hybrid"
    assert point_label(100, 0) == "100kW solar only"
    assert point_label(0, 50) == "50kWh storage only"
    assert point_label(100, 50) == "100kW PV + 50kWh"


def test_frontier_types_are_consistent_with_sizes(solar_only_sweep):
    for point in solar_only_sweep.frontier:
        data = point.as_dict()
        assert data["type"] == point_type(point.pv_kw, point.battery_kwh)
        if point.type == "solar":
            assert point.battery_kwh == 0
        elif point.type == "battery":
            assert point.pv_kw == 0


def test_single_optimal_point_with_highest_npv(solar_only_sweep):
    flagged = [point for point in solar_only_sweep.frontier if point.is_optimal]

    assert len(flagged) == 1
    assert flagged[0].id == solar_only_sweep.optimal_scenario_id
    assert flagged[0].npv25 == max(point.npv25 for point in solar_only_sweep.frontier)
    assert solar_only_sweep.optimal_scenarios.best_npv.point is flagged[0]


def test_current_configuration_leads_the_frontier(solar_only_sweep):
    current = solar_only_sweep.frontier[0]

    assert current.id == "current-config"
    assert current.label.endswith("(Current)")
    assert current.pv_kw == 40
    # the configured size is not duplicated as a solar-only point
    assert "solar-40" not in {point.id for point in solar_only_sweep.frontier}


def test_configured_npv_is_reported_on_current_point(short_buckets):
    result = _sweep(short_buckets, SystemSizing(pv_kw=40), configured_npv25=123.0)

    assert result.frontier[0].npv25 == 123.0


def test_sweeps_are_sorted_and_flag_their_optimum(solar_only_sweep):
    pv_sizes = [point.pv_kw for point in solar_only_sweep.solar_sweep]
    battery_sizes = [point.battery_kwh for point in solar_only_sweep.battery_sweep]

    assert pv_sizes == sorted(pv_sizes)
    assert pv_sizes[0] == 0 and pv_sizes[-1] == 60
    assert 40 in pv_sizes
    assert battery_sizes[0] == 0 and max(battery_sizes) <= 500
    for sweep in (solar_only_sweep.solar_sweep, solar_only_sweep.battery_sweep):
        best = max(point.npv25 for point in sweep)
        assert any(point.is_optimal for point in sweep)
        assert all(point.npv25 == best for point in sweep if point.is_optimal)


def test_hybrid_grid_keeps_profitable_points_only(solar_only_sweep):
    grid = [point for point in solar_only_sweep.frontier if point.sweep_source == "hybridGrid"]

    assert all(point.npv25 > 0 for point in grid)


def test_optimal_picks_carry_financial_detail(solar_only_sweep):
    for key, scenario in solar_only_sweep.optimal_scenarios.items():
        if scenario is None:
            continue
        assert key in {"best_npv", "best_irr", "max_self_sufficiency"}
        assert scenario.financials.pv_kw == scenario.point.pv_kw
        assert len(scenario.financials.cashflows) == 31


def test_hybrid_configuration_adds_pv_sweep_points(short_buckets):
    result = _sweep(short_buckets, SystemSizing(pv_kw=40, battery_kwh=60, battery_kw=30), roof_kw=40)

    sources = {point.sweep_source for point in result.frontier}
    assert "pvSweep" in sources
    assert "battSweep" in sources
    assert result.frontier[0].type == "hybrid"
    assert 60 in [point.battery_kwh for point in result.battery_sweep]


def test_empty_configuration_has_no_current_point(short_buckets):
    result = _sweep(short_buckets, SystemSizing(), roof_kw=40)

    assert "current-config" not in {point.id for point in result.frontier}
    assert result.optimal_scenario_id is not None


def test_max_pv_from_roof():
    assert max_pv_from_roof(AnalysisAssumptions(max_pv_from_roof_kw=250)) == 250
    expected = 100_000 / 10.764 * 0.80 / 3.71 * 0.660
    assert max_pv_from_roof(AnalysisAssumptions()) == pytest.approx(expected)


def test_frontier_point_key():
    point = FrontierPoint(
        id="x", label="x", pv_kw=120.0, battery_kwh=0.0, battery_kw=0.0, capex_net=1.0, npv25=1.0,
        irr25=0.1, simple_payback_years=8, self_sufficiency_percent=10.0, annual_savings=1.0,
        total_production_kwh=1.0, co2_avoided_tonnes_per_year=0.0,
    )

    assert point.key == "120-0"
    assert point.type == "solar"


def test_evaluation_count_includes_every_scenario_run(solar_only_sweep):
    result = solar_only_sweep
    picks = sum(1 for _, scenario in result.optimal_scenarios.items() if scenario is not None)
    sweep_only = len(result.solar_sweep) + len(result.battery_sweep)

    assert result.evaluations > len(result.frontier)
    assert result.evaluations >= sweep_only + picks
