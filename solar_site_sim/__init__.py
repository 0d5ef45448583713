from .calendar_utils import HOURS_PER_YEAR, MONTH_LENGTHS, build_hourly_calendar
from .simulation.assumptions import AnalysisAssumptions, SystemModelingParams, SystemSizing
from .simulation.energy_simulator import SimulationResult, run_hourly_simulation
from .simulation.financials import ScenarioFinancials, calculate_irr, calculate_npv, run_scenario
from .simulation.load_profiles import SyntheticProfile, estimate_annual_consumption, generate_synthetic_profile
from .simulation.monte_carlo import MonteCarloConfig, MonteCarloResult, make_scenario_runner, run_monte_carlo_analysis
from .simulation.optimizer import FrontierPoint, SensitivityResult, run_sensitivity_analysis
from .simulation.readings import HourlyBucket, aggregate_hourly_readings, build_hourly_buckets, summarize_consumption
from .simulation.tariffs import (
    calculate_annual_cost,
    calculate_monthly_cost,
    detect_tariff,
    get_simplified_rates,
    get_tariff,
    list_tariffs,
)
from .simulation.yield_strategy import RemoteSensingData, YieldStrategy, resolve_yield_strategy
from .result_builder import ResultBuilder
from .application import SiteAnalysisApplication

__all__ = [
    "HOURS_PER_YEAR",
    "MONTH_LENGTHS",
    "build_hourly_calendar",
    "AnalysisAssumptions",
    "SystemModelingParams",
    "SystemSizing",
    "HourlyBucket",
    "aggregate_hourly_readings",
    "build_hourly_buckets",
    "summarize_consumption",
    "SyntheticProfile",
    "generate_synthetic_profile",
    "estimate_annual_consumption",
    "get_tariff",
    "list_tariffs",
    "get_simplified_rates",
    "calculate_monthly_cost",
    "calculate_annual_cost",
    "detect_tariff",
    "RemoteSensingData",
    "YieldStrategy",
    "resolve_yield_strategy",
    "SimulationResult",
    "run_hourly_simulation",
    "ScenarioFinancials",
    "calculate_irr",
    "calculate_npv",
    "run_scenario",
    "FrontierPoint",
    "SensitivityResult",
    "run_sensitivity_analysis",
    "MonteCarloConfig",
    "MonteCarloResult",
    "make_scenario_runner",
    "run_monte_carlo_analysis",
    "ResultBuilder",
    "SiteAnalysisApplication",
]
