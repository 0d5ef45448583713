"""
Hydro-Québec rate schedule schemas for API validation.

This module contains Pydantic models for the tariff endpoints:
- TariffResponse: One rate schedule of the catalog
- TariffDetect*: Schedule classification from peak demand and consumption
- AnnualCost*: Yearly bill estimate under a schedule
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .common import LocalizedText


class TariffResponse(BaseModel):
    """
    Rate schedule description.

    Attributes:
        code: Schedule code ("D", "G", "M", "L", "G9", "Flex M"...).
        name: Bilingual display name.
        access_fee: Fixed fee, per day when access_fee_daily else per month.
        power_rate: $/kW applied to billed demand (0 when not billed).
        energy_rates: $/kWh of each energy band, lowest band first.
        peak_event_rate: Critical-peak rate of the flex schedules.
        min_demand_kw / max_demand_kw: Applicability bounds.
    """

    code: str
    name: LocalizedText
    access_fee: float
    access_fee_daily: bool
    power_rate: float
    energy_rates: List[float]
    peak_event_rate: Optional[float] = None
    min_demand_kw: Optional[float] = None
    max_demand_kw: Optional[float] = None


class TariffDetectRequest(BaseModel):
    peak_demand_kw: float = Field(..., ge=0.0, description="Highest demand of the year (kW)")
    annual_consumption_kwh: float = Field(..., ge=0.0, description="Yearly consumption (kWh)")
    has_demand_meter: bool = Field(default=True, description="Whether demand is metered")


class TariffDetectResponse(BaseModel):
    """
    Detected schedule with its confidence and rationale.

    Example:
        ```python
        # POST /api/tariffs/detect {"peak_demand_kw": 150, "annual_consumption_kwh": 500000}
        {
            "detected_tariff": "M",
            "confidence": "high",
            "reason": {"fr": "...", "en": "Peak demand of 150 kW between 65 kW and 5 MW"},
            "suggested_tariffs": ["M", "Flex M", "G9"],
            "peak_demand_kw": 150.0,
            "annual_consumption_kwh": 500000.0,
            "load_factor": 0.38
        }
        ```
    """

    detected_tariff: str
    confidence: str = Field(..., description="'high' or 'medium'")
    reason: LocalizedText
    suggested_tariffs: List[str] = Field(default_factory=list)
    peak_demand_kw: float
    annual_consumption_kwh: float
    load_factor: float


class AnnualCostRequest(BaseModel):
    tariff_code: str = Field(..., description="Schedule code")
    annual_consumption_kwh: float = Field(..., ge=0.0)
    peak_demand_kw: float = Field(..., ge=0.0)
    is_three_phase: bool = Field(default=True, description="Selects the three-phase minimum bill")


class MonthlyCostRow(BaseModel):
    month: int = Field(..., ge=1, le=12)
    access_fee: float
    power_charge: float
    energy_charge: float
    total: float


class AnnualCostResponse(BaseModel):
    tariff_code: str
    tariff_name: LocalizedText
    annual_total: float
    average_rate: float = Field(..., description="annual_total / annual consumption ($/kWh)")
    monthly_breakdown: List[MonthlyCostRow]
