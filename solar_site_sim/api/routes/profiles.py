"""
Synthetic load profile API endpoints.

Endpoints:
- GET /profiles/archetypes: Building archetypes available for generation
- POST /profiles/synthetic: Generate an 8,760-hour profile
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ...application import SiteAnalysisApplication
from ...simulation import ARCHETYPES
from ..schemas import profiles as profile_schemas

router = APIRouter(prefix="/api", tags=["profiles"])


@router.get("/profiles/archetypes", response_model=list[profile_schemas.ArchetypeResponse])
def list_archetypes() -> list[profile_schemas.ArchetypeResponse]:
    return [
        profile_schemas.ArchetypeResponse(
            name=name,
            operating_start=spec.operating_start,
            operating_end=spec.operating_end,
            load_factor=spec.load_factor,
            intensity_kwh_per_sqft=spec.intensity_kwh_per_sqft,
        )
        for name, spec in ARCHETYPES.items()
    ]


@router.post("/profiles/synthetic", response_model=profile_schemas.SyntheticProfileResponse)
def generate_profile(payload: profile_schemas.SyntheticProfileRequest) -> profile_schemas.SyntheticProfileResponse:
    """
    Generate a synthetic consumption profile for a building archetype.

    Args:
        payload: Archetype plus consumption (or bill / floor area to estimate it).

    Returns:
        SyntheticProfileResponse with monthly totals, the average-day kW
        curve and, when requested, the hourly readings.

    Raises:
        HTTPException 400: For an unknown archetype.

    Example:
        ```python
        # POST /api/profiles/synthetic
        {"archetype": "warehouse", "annual_consumption_kwh": 850000}

        # Response
        {"archetype": "warehouse", "estimated_peak_kw": 149.3, "monthly_kwh": [...], ...}
        ```
    """
    try:
        summary = SiteAnalysisApplication.generate_profile(
            payload.archetype,
            payload.annual_consumption_kwh,
            schedule=payload.schedule,
            floor_area_sqft=payload.floor_area_sqft,
            monthly_bill=payload.monthly_bill,
            tariff_code=payload.tariff_code,
            include_readings=payload.include_readings,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return profile_schemas.SyntheticProfileResponse(**summary)
