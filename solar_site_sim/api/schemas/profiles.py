"""
Synthetic load profile schemas for API validation.

Sites without interval metering get an 8,760-hour profile generated from a
building archetype and an annual consumption (given, or estimated from the
monthly bill or the floor area).
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class SyntheticProfileRequest(BaseModel):
    """
    Request schema for synthetic profile generation.

    Attributes:
        archetype: Building type ("office", "warehouse", "cold_warehouse",
            "retail", "industrial", "light_industrial", "institutional").
        annual_consumption_kwh: Yearly consumption. When omitted it is
            estimated from monthly_bill, then floor_area_sqft.
        schedule: Operating schedule override.
        include_readings: Return the 8,760 hourly readings.

    Example:
        ```python
        # POST /api/profiles/synthetic
        {"archetype": "office", "floor_area_sqft": 40000, "schedule": "extended"}
        ```
    """

    archetype: str = Field(..., description="Building archetype")
    annual_consumption_kwh: Optional[float] = Field(default=None, ge=0.0)
    schedule: Optional[Literal["standard", "extended", "24/7"]] = None
    floor_area_sqft: Optional[float] = Field(default=None, gt=0.0)
    monthly_bill: Optional[float] = Field(default=None, gt=0.0, description="Average monthly bill ($)")
    tariff_code: str = Field(default="M", description="Rate used to convert the bill into kWh")
    include_readings: bool = False


class ProfileReading(BaseModel):
    timestamp: str
    kwh: float
    kw: float


class SyntheticProfileResponse(BaseModel):
    archetype: str
    schedule: str
    annual_consumption_kwh: float
    estimated_peak_kw: float
    load_factor: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
    monthly_kwh: List[float] = Field(..., min_length=12, max_length=12)
    average_day_kw: List[float] = Field(..., min_length=24, max_length=24)
    readings: Optional[List[ProfileReading]] = None


class ArchetypeResponse(BaseModel):
    name: str
    operating_start: int
    operating_end: int
    load_factor: float
    intensity_kwh_per_sqft: float
