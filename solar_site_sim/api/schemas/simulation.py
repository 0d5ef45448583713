"""
Simulation execution schemas for API validation.

This module contains Pydantic models for the engine endpoints:
- Analysis: Hourly simulation and 30-year financials of one sizing
- Sensitivity: Solar/battery sizing sweep with the optimal picks
- MonteCarlo: Uncertainty analysis of the configured sizing
- RunResult: Historical execution records

Requests carry an inline site payload (see SiteRequest); responses mirror
the dictionaries returned by SiteAnalysisApplication.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import SiteRequest


class AnalysisRequest(SiteRequest):
    """
    Request schema for a single-sizing analysis.

    Example:
        ```python
        # POST /api/analysis
        {
            "site": {
                "name": "Entrepôt Laval",
                "roof_color": "white_membrane",
                "load": {
                    "source": "synthetic",
                    "archetype": "warehouse",
                    "annual_consumption_kwh": 850000
                },
                "sizing": {"pv_kw": 400, "battery_kwh": 200, "battery_kw": 100},
                "assumptions": {"tariff_code": "M", "roof_area_sqft": 60000}
            }
        }
        ```

    Notes:
        - If site is None, the bundled example site is analysed
        - Unknown assumption keys are rejected with HTTP 400
    """


class SensitivityRequest(SiteRequest):
    """Request schema for the sizing sweep; same payload as AnalysisRequest."""


class MonteCarloRequest(SiteRequest):
    """
    Request schema for the Monte Carlo uncertainty analysis.

    Attributes:
        iterations: Number of draws (overrides ``site.monte_carlo.iterations``).
        seed: RNG seed for reproducible draws (overrides ``site.monte_carlo.seed``).
    """

    iterations: Optional[int] = Field(
        default=None,
        ge=1,
        description="Number of Monte Carlo draws (must be >= 1)",
    )
    seed: Optional[int] = Field(
        default=None,
        description="Random seed for reproducibility",
    )


class YieldStrategyResponse(BaseModel):
    source: str = Field(..., description="'remote', 'manual' or 'default'")
    base_yield: float = Field(..., description="Yield before adjustments (kWh/kWp)")
    effective_yield: float = Field(..., description="Yield after bifacial and orientation adjustments")
    bifacial_boost: float = Field(..., ge=1.0)
    orientation_factor: float = Field(..., ge=0.0, le=1.0)
    yield_factor: float = Field(..., description="effective_yield / 1150")


class CashflowRow(BaseModel):
    year: int = Field(..., ge=0, le=30)
    revenue: float
    opex: float
    ebitda: float
    investment: float
    tax_shield: float
    incentives: float
    net_cashflow: float
    cumulative: float


class HourlyProfileRow(BaseModel):
    hour: str = Field(..., description="Hour of day label ('0h' to '23h')")
    consumption_before: int
    consumption_after: int
    peak_before: int
    peak_after: int


class MonthlyPeaks(BaseModel):
    before: List[float] = Field(..., min_length=12, max_length=12)
    after: List[float] = Field(..., min_length=12, max_length=12)


class SiteSummaryFields(BaseModel):
    site: str = Field(..., description="Site name")
    load_source: str = Field(..., description="'readings' or 'synthetic'")
    annual_consumption_kwh: float = Field(..., ge=0.0)
    peak_kw: float = Field(..., ge=0.0)
    interpolated_months: List[int] = Field(default_factory=list, description="Months filled by interpolation")


class AnalysisResponse(SiteSummaryFields):
    """
    Response schema for a completed analysis.

    Monetary values are CAD, IRRs are fractions. ``cashflows`` is empty and
    ``monthly_peaks`` is None when the sizing has no capital cost.

    Example:
        ```python
        {
            "site": "Entrepôt Laval",
            "load_source": "synthetic",
            "annual_consumption_kwh": 850000.0,
            "peak_kw": 149.3,
            "yield_strategy": {"source": "default", "effective_yield": 1322.5, ...},
            "pv_kw": 400.0,
            "capex_net": 412345.0,
            "npv25": 238000.0,
            "irr25": 0.12,
            "simple_payback_years": 8,
            "cashflows": [{"year": 0, ...}, ...],
            "output_dir": null
        }
        ```
    """

    yield_strategy: YieldStrategyResponse
    pv_kw: float
    battery_kwh: float
    battery_kw: float
    capex_gross: float
    capex_net: float
    total_incentives: float
    npv10: float
    npv20: float
    npv25: float
    npv30: float
    irr10: float
    irr20: float
    irr25: float
    irr30: float
    lcoe: float
    lcoe30: float
    simple_payback_years: int
    annual_savings: float
    annual_cost_before: float
    annual_cost_after: float
    self_sufficiency_percent: float
    total_production_kwh: float
    co2_avoided_tonnes_per_year: float
    cashflows: List[CashflowRow] = Field(default_factory=list)
    hourly_profile_summary: List[HourlyProfileRow] = Field(default_factory=list)
    monthly_peaks: Optional[MonthlyPeaks] = None
    clipping_loss_kwh: Optional[float] = None
    output_dir: Optional[str] = Field(None, description="Output directory path (if saved)")


class FrontierPointResponse(BaseModel):
    id: str
    label: str
    type: str = Field(..., description="'solar', 'battery' or 'hybrid'")
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
    sweep_source: Optional[str] = None


class SolarSweepRow(BaseModel):
    pv_kw: float
    npv25: float
    is_optimal: bool = False


class BatterySweepRow(BaseModel):
    battery_kwh: float
    npv25: float
    is_optimal: bool = False


class SensitivityResponse(SiteSummaryFields):
    """
    Response schema for the sizing sweep.

    Attributes:
        evaluations: Number of scenarios the sweep evaluated, including
            the re-evaluated optimal picks.
        optimal_scenario_id: ID of the highest-NPV25 point, if any.
        optimal_scenarios: ``best_npv``, ``best_irr`` and
            ``max_self_sufficiency`` picks with their headline financials,
            None when no frontier point qualifies.
    """

    evaluations: int = Field(..., ge=0)
    optimal_scenario_id: Optional[str] = None
    frontier: List[FrontierPointResponse] = Field(default_factory=list)
    solar_sweep: List[SolarSweepRow] = Field(default_factory=list)
    battery_sweep: List[BatterySweepRow] = Field(default_factory=list)
    optimal_scenarios: Dict[str, Optional[Dict[str, Any]]] = Field(default_factory=dict)
    output_dir: Optional[str] = None


class FinancialSummaryResponse(BaseModel):
    npv10: float
    npv20: float
    npv25: float
    irr10: float
    irr20: float
    irr25: float
    payback_years: float
    capex_net: float
    total_savings25: float


class MonteCarloResponse(BaseModel):
    """
    Response schema for the Monte Carlo analysis.

    ``p10``/``p50``/``p90`` are nearest-rank percentiles taken per metric,
    so one percentile row does not describe a single draw.
    """

    site: str
    iterations: int = Field(..., ge=1, description="Draws that completed")
    seed: Optional[int] = None
    p10: FinancialSummaryResponse
    p50: FinancialSummaryResponse
    p90: FinancialSummaryResponse
    mean: FinancialSummaryResponse
    distribution: Dict[str, List[float]] = Field(default_factory=dict)
    input_ranges: Dict[str, List[float]] = Field(default_factory=dict)
    output_dir: Optional[str] = None


class RunResult(BaseModel):
    """
    Historical execution record.

    Attributes:
        id: Unique database identifier.
        result_type: 'analysis', 'sensitivity' or 'monte_carlo'.
        name: Site name.
        summary: Headline metrics (structure varies by type).
        output_dir: Exported files location, if any.
        configuration_id: Saved configuration the run came from, if any.
        created_at: Timestamp of the run.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    result_type: str = Field(..., description="'analysis', 'sensitivity' or 'monte_carlo'")
    name: Optional[str] = None
    summary: Dict[str, Any] = Field(..., description="Run metrics (structure varies by type)")
    output_dir: Optional[str] = None
    configuration_id: Optional[int] = None
    created_at: datetime = Field(..., description="Timestamp of result creation")
