from __future__ import annotations

import pytest

from solar_site_sim.simulation.load_profiles import (
    ARCHETYPES,
    DEFAULT_ANNUAL_CONSUMPTION_KWH,
    estimate_annual_consumption,
    generate_synthetic_profile,
    hourly_weight,
)


@pytest.mark.parametrize("archetype", sorted(ARCHETYPES))
def test_profile_has_full_year_matching_target(archetype):
    profile = generate_synthetic_profile(archetype, 500_000)

    assert len(profile.readings) == 8760
    total = sum(reading.kwh for reading in profile.readings)
    assert total == pytest.approx(500_000, rel=0.01)
    assert all(reading.kwh >= 0 and reading.kw >= 0 for reading in profile.readings)
    assert all(reading.kw <= profile.estimated_peak_kw + 0.1 for reading in profile.readings)


def test_office_weekday_midday_is_well_above_night():
    profile = generate_synthetic_profile("office", 200_000)
    frame = profile.to_dataframe()
    # 2023-01-03 is a Tuesday
    tuesday = frame[frame["timestamp"].dt.strftime("%Y-%m-%d") == "2023-01-03"].reset_index(drop=True)

    assert tuesday.loc[13, "kwh"] > 2 * tuesday.loc[2, "kwh"]


def test_office_weekends_are_reduced():
    frame = generate_synthetic_profile("office", 200_000).to_dataframe()
    noon = frame[frame["timestamp"].dt.hour == 12]
    weekday = noon[noon["timestamp"].dt.dayofweek < 5]["kwh"].mean()
    weekend = noon[noon["timestamp"].dt.dayofweek >= 5]["kwh"].mean()

    assert weekend < weekday * 0.5


def test_peak_derived_from_load_factor():
    profile = generate_synthetic_profile("warehouse", 876_000)

    assert profile.estimated_peak_kw == pytest.approx(100 / 0.65, abs=0.1)
    assert profile.load_factor == 0.65
    assert profile.metadata["building_sub_type"] == "warehouse"


def test_round_the_clock_schedule_is_flat_within_a_day():
    frame = generate_synthetic_profile("office", 200_000, schedule="24/7").to_dataframe()
    tuesday = frame[frame["timestamp"].dt.strftime("%Y-%m-%d") == "2023-01-03"]

    assert tuesday["kwh"].max() == pytest.approx(tuesday["kwh"].min(), abs=0.01)


def test_hourly_weight_off_hours_is_base_night():
    assert hourly_weight(3, 7, 19, 0.3) == 0.3
    assert hourly_weight(13, 7, 19, 0.3) == pytest.approx(1.0)


def test_unknown_archetype_or_schedule_raises():
    with pytest.raises(ValueError):
        generate_synthetic_profile("spaceport", 100_000)
    with pytest.raises(ValueError):
        generate_synthetic_profile("office", 100_000, schedule="nights")
    with pytest.raises(ValueError):
        generate_synthetic_profile("office", -1)


def test_estimate_prefers_bill_then_area_then_default():
    from_bill = estimate_annual_consumption("office", floor_area_sqft=10_000, monthly_bill=1_000)
    from_area = estimate_annual_consumption("office", floor_area_sqft=10_000)

    assert from_bill == round(1_000 * 0.70 / 0.06061 * 12)
    assert from_area == 180_000
    assert estimate_annual_consumption("office") == DEFAULT_ANNUAL_CONSUMPTION_KWH


def test_estimate_from_bill_uses_tariff_rate():
    rate_g = estimate_annual_consumption("retail", monthly_bill=500, tariff_code="G")
    unknown = estimate_annual_consumption("retail", monthly_bill=500, tariff_code="X")

    assert rate_g == round(500 * 0.70 / 0.11933 * 12)
    assert unknown == estimate_annual_consumption("retail", monthly_bill=500, tariff_code="M")
