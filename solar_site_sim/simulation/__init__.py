"""
Core solar + storage site simulation models.

This package collects every component of the site analysis engine:

* Input value objects (assumptions, sizing, system modeling parameters) and
  the Hydro-Québec tariff schedules.
* Load data preparation: meter readings to hourly buckets, synthetic load
  profiles for sites without metering.
* Yield resolution, the hourly production model and the battery dispatch
  strategy driving the hourly simulation (`energy_simulator`).
* Financial post-processing: scenario cashflows, sizing sensitivity sweeps
  and Monte Carlo uncertainty analysis.

Higher layers (`application`, FastAPI routes, CLI) import from this namespace.
"""

from __future__ import annotations

from .assumptions import AnalysisAssumptions, SystemModelingParams, SystemSizing
from .dispatch import DispatchAction, DispatchContext, DispatchState, DispatchStrategy, GreedyLookaheadDispatcher
from .energy_simulator import SimulationResult, run_hourly_simulation
from .financials import (
    CashflowEntry,
    ScenarioFinancials,
    calculate_irr,
    calculate_npv,
    get_tiered_solar_cost_per_w,
    run_scenario,
)
from .load_profiles import (
    ARCHETYPES,
    BuildingArchetype,
    SyntheticProfile,
    estimate_annual_consumption,
    generate_synthetic_profile,
)
from .monte_carlo import (
    FinancialSummary,
    MonteCarloConfig,
    MonteCarloResult,
    make_scenario_runner,
    run_monte_carlo_analysis,
)
from .optimizer import FrontierPoint, OptimalScenarios, SensitivityResult, run_sensitivity_analysis
from .readings import HourlyBucket, aggregate_hourly_readings, build_hourly_buckets, summarize_consumption
from .solar import SNOW_LOSS_PROFILES, SolarProductionModel
from .tariffs import (
    TARIFFS,
    AnnualCost,
    TariffDetectionResult,
    TariffSchedule,
    calculate_annual_cost,
    calculate_monthly_cost,
    detect_tariff,
    get_simplified_rates,
    get_tariff,
    list_tariffs,
)
from .yield_strategy import RemoteSensingData, YieldStrategy, resolve_yield_strategy

__all__ = [
    # Inputs
    "AnalysisAssumptions",
    "SystemModelingParams",
    "SystemSizing",
    # Tariffs
    "TARIFFS",
    "TariffSchedule",
    "AnnualCost",
    "TariffDetectionResult",
    "calculate_monthly_cost",
    "calculate_annual_cost",
    "detect_tariff",
    "get_simplified_rates",
    "get_tariff",
    "list_tariffs",
    # Load data
    "HourlyBucket",
    "aggregate_hourly_readings",
    "build_hourly_buckets",
    "summarize_consumption",
    "ARCHETYPES",
    "BuildingArchetype",
    "SyntheticProfile",
    "generate_synthetic_profile",
    "estimate_annual_consumption",
    # Production + dispatch
    "RemoteSensingData",
    "YieldStrategy",
    "resolve_yield_strategy",
    "SNOW_LOSS_PROFILES",
    "SolarProductionModel",
    "DispatchAction",
    "DispatchContext",
    "DispatchState",
    "DispatchStrategy",
    "GreedyLookaheadDispatcher",
    "SimulationResult",
    "run_hourly_simulation",
    # Economics
    "CashflowEntry",
    "ScenarioFinancials",
    "calculate_irr",
    "calculate_npv",
    "get_tiered_solar_cost_per_w",
    "run_scenario",
    "FrontierPoint",
    "OptimalScenarios",
    "SensitivityResult",
    "run_sensitivity_analysis",
    "FinancialSummary",
    "MonteCarloConfig",
    "MonteCarloResult",
    "make_scenario_runner",
    "run_monte_carlo_analysis",
]
