from __future__ import annotations

import pytest

from solar_site_sim.simulation.assumptions import AnalysisAssumptions, SystemSizing
from solar_site_sim.simulation.yield_strategy import (
    BASELINE_YIELD,
    RemoteSensingData,
    YieldStrategy,
    get_bifacial_config_from_roof_color,
    resolve_yield_strategy,
)


def test_baseline_resolves_to_default_source():
    strategy = resolve_yield_strategy(AnalysisAssumptions())

    assert strategy.source == "default"
    assert strategy.effective_yield == BASELINE_YIELD
    assert strategy.yield_factor == pytest.approx(1.0)
    assert strategy.skip_temperature_correction is False


def test_remote_production_estimate_beats_sunshine_hours():
    remote = RemoteSensingData(
        yearly_energy_kwh=126_000,
        system_size_kw=100,
        max_sunshine_hours_per_year=1_400,
    )

    strategy = resolve_yield_strategy(AnalysisAssumptions(), remote_data=remote)

    assert strategy.source == "remote"
    assert strategy.base_yield == 1_260
    assert strategy.skip_temperature_correction is True


def test_sunshine_hours_used_without_production_estimate():
    remote = RemoteSensingData(max_sunshine_hours_per_year=1_333.4)

    strategy = resolve_yield_strategy(AnalysisAssumptions(), remote_data=remote)

    assert strategy.source == "remote"
    assert strategy.base_yield == 1_333


def test_manual_flag_overrides_remote_data():
    assumptions = AnalysisAssumptions(solar_yield_kwh_per_kwp=1_100, use_manual_yield=True, yield_source="remote")
    remote = RemoteSensingData(yearly_energy_kwh=130_000, system_size_kw=100)

    strategy = resolve_yield_strategy(assumptions, remote_data=remote)

    assert strategy.source == "manual"
    assert strategy.base_yield == 1_100
    assert strategy.skip_temperature_correction is True


def test_stored_remote_source_keeps_stored_yield():
    assumptions = AnalysisAssumptions(solar_yield_kwh_per_kwp=1_240, yield_source="remote")
    remote = RemoteSensingData(yearly_energy_kwh=100_000, system_size_kw=100)

    strategy = resolve_yield_strategy(assumptions, remote_data=remote)

    assert strategy.source == "remote"
    assert strategy.base_yield == 1_240


def test_legacy_google_source_is_treated_as_remote():
    assumptions = AnalysisAssumptions(solar_yield_kwh_per_kwp=1_240, yield_source="google")

    assert resolve_yield_strategy(assumptions).source == "remote"


def test_non_baseline_yield_is_manual():
    strategy = resolve_yield_strategy(AnalysisAssumptions(solar_yield_kwh_per_kwp=1_050))

    assert strategy.source == "manual"
    assert strategy.effective_yield == 1_050


@pytest.mark.parametrize(
    "orientation,expected",
    [(0.3, 0.6), (0.85, 0.85), (1.4, 1.0)],
)
def test_orientation_is_clamped_for_default_yield(orientation, expected):
    strategy = resolve_yield_strategy(AnalysisAssumptions(orientation_factor=orientation))

    assert strategy.orientation_factor == pytest.approx(expected)
    assert strategy.effective_yield == pytest.approx(BASELINE_YIELD * expected)


def test_orientation_ignored_for_remote_yield():
    assumptions = AnalysisAssumptions(orientation_factor=0.7)
    remote = RemoteSensingData(yearly_energy_kwh=120_000, system_size_kw=100)

    strategy = resolve_yield_strategy(assumptions, remote_data=remote)

    assert strategy.orientation_factor == 1.0
    assert strategy.effective_yield == 1_200


@pytest.mark.parametrize(
    "color,boost",
    [
        ("white_membrane", 1.15),
        ("Light", 1.10),
        ("gravel", 1.05),
        ("dark", 1.0),
        ("unknown", 1.0),
        (None, 1.0),
        ("green", 1.0),
    ],
)
def test_roof_color_sets_bifacial_boost(color, boost):
    strategy = resolve_yield_strategy(AnalysisAssumptions(), roof_color=color)

    assert strategy.bifacial_boost == pytest.approx(boost)
    assert get_bifacial_config_from_roof_color(color).boost == pytest.approx(boost)


def test_explicit_bifacial_flag_wins_over_roof_color():
    enabled = resolve_yield_strategy(AnalysisAssumptions(bifacial_enabled=True), roof_color="dark")
    disabled = resolve_yield_strategy(AnalysisAssumptions(bifacial_enabled=False), roof_color="white_membrane")

    assert enabled.bifacial_boost == pytest.approx(1.15)
    assert disabled.bifacial_boost == 1.0


def test_scaled_strategy_keeps_source_and_adjustments():
    strategy = YieldStrategy.build(1_200, "remote", bifacial_boost=1.1)

    scaled = strategy.scaled(0.9)

    assert scaled.source == "remote"
    assert scaled.bifacial_boost == pytest.approx(1.1)
    assert scaled.effective_yield == pytest.approx(1_200 * 0.9 * 1.1)


def test_unknown_yield_source_raises():
    with pytest.raises(ValueError):
        YieldStrategy.build(1_150, "satellite")


def test_assumptions_reject_unknown_keys_and_negative_sizes():
    with pytest.raises(ValueError):
        AnalysisAssumptions.from_mapping({"tarif_code": "M"})
    with pytest.raises(ValueError):
        SystemSizing(pv_kw=-1)

    custom = AnalysisAssumptions.from_mapping({"discount_rate": 0.06, "system_params": {"inverter_load_ratio": 1.2}})
    assert custom.discount_rate == 0.06
    assert custom.system_params.inverter_load_ratio == 1.2


@pytest.mark.parametrize(
    "data,name",
    [
        ({"discount_rate": "0.08"}, "discount_rate"),
        ({"battery_replacement_year": 10.5}, "battery_replacement_year"),
        ({"use_manual_yield": "yes"}, "use_manual_yield"),
        ({"tariff_code": 3}, "tariff_code"),
        ({"system_params": {"inverter_ratio": 1.2}}, "inverter_ratio"),
        ({"system_params": {"temp_coefficient": None}}, "temp_coefficient"),
        ({"system_params": [1.2]}, "system_params"),
    ],
)
def test_assumptions_reject_wrongly_typed_values(data, name):
    with pytest.raises(ValueError, match=name):
        AnalysisAssumptions.from_mapping(data)


def test_assumptions_accept_integers_and_nulls_for_numbers():
    assumptions = AnalysisAssumptions.from_mapping(
        {"discount_rate": 0, "battery_replacement_year": 12.0, "max_pv_from_roof_kw": None, "bifacial_enabled": None}
    )

    assert assumptions.discount_rate == 0
    assert assumptions.battery_replacement_year == 12
    assert assumptions.max_pv_from_roof_kw is None
