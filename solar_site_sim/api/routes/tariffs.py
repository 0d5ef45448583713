"""
Hydro-Québec rate API endpoints.

Endpoints:
- GET /tariffs: Rate schedule catalog
- POST /tariffs/detect: Guess the schedule of a site
- POST /tariffs/annual-cost: Yearly bill estimate under a schedule
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ...application import SiteAnalysisApplication
from ..schemas import tariffs as tariff_schemas

router = APIRouter(prefix="/api", tags=["tariffs"])


@router.get("/tariffs", response_model=list[tariff_schemas.TariffResponse])
def list_tariffs() -> list[tariff_schemas.TariffResponse]:
    """List every known rate schedule with its fees and energy bands."""
    return [tariff_schemas.TariffResponse(**item) for item in SiteAnalysisApplication.list_tariffs()]


@router.post("/tariffs/detect", response_model=tariff_schemas.TariffDetectResponse)
def detect_tariff(payload: tariff_schemas.TariffDetectRequest) -> tariff_schemas.TariffDetectResponse:
    """
    Classify the likely rate schedule of a site.

    Sites without a demand meter or under 10 kW map to D, under 65 kW to G,
    up to 5 MW to M (G9 suggested first for load factors under 0.3), and
    larger sites to L.
    """
    result = SiteAnalysisApplication.detect_tariff(
        payload.peak_demand_kw,
        payload.annual_consumption_kwh,
        payload.has_demand_meter,
    )
    return tariff_schemas.TariffDetectResponse(**result)


@router.post("/tariffs/annual-cost", response_model=tariff_schemas.AnnualCostResponse)
def annual_cost(payload: tariff_schemas.AnnualCostRequest) -> tariff_schemas.AnnualCostResponse:
    """
    Estimate a year of bills assuming flat monthly consumption.

    Raises:
        HTTPException 400: If the tariff code is unknown.
    """
    try:
        result = SiteAnalysisApplication.estimate_tariff_cost(
            payload.tariff_code,
            payload.annual_consumption_kwh,
            payload.peak_demand_kw,
            payload.is_three_phase,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return tariff_schemas.AnnualCostResponse(**result)
