"""
Engine execution API endpoints.

Endpoints:
- POST /analysis: Hourly simulation and financials of the configured sizing
- POST /sensitivity: Solar/battery sizing sweep with optimal picks
- POST /monte-carlo: Uncertainty analysis of the configured sizing
- GET /runs: Historical execution results

These endpoints accept an inline site payload in the request body and
execute it immediately. Results are stored in the database.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from ...application import SiteAnalysisApplication
from ...persistence import PersistenceService
from .. import dependencies
from ..schemas import simulation as sim_schemas

router = APIRouter(prefix="/api", tags=["simulation"])


@router.post("/analysis", response_model=sim_schemas.AnalysisResponse)
def trigger_analysis(
    payload: sim_schemas.AnalysisRequest | None = None,
    app_service: SiteAnalysisApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.AnalysisResponse:
    """
    Simulate and price one solar + storage sizing.

    Runs the 8,760-hour simulation for the sizing of the site payload,
    prices savings under the site tariff, applies the Hydro-Québec rebate,
    federal ITC and CCA shield, and returns the 30-year cashflow with NPV,
    IRR, LCOE and payback.

    Args:
        payload: Optional site payload. If None or site is None, the bundled
            example site is analysed.
        app_service: Site analysis application service (dependency injected).

    Returns:
        AnalysisResponse with site figures, resolved yield, financials and
        the cashflow / hourly profile tables.

    Raises:
        HTTPException 400: If the site payload is invalid (unknown
            assumption key, unusable load section, negative sizes...).

    Example:
        ```python
        # POST /api/analysis
        {"site": {"load": {...}, "sizing": {"pv_kw": 400}, "assumptions": {"tariff_code": "M"}}}

        # Response
        {"site": "site", "npv25": 238000.0, "irr25": 0.12, "simple_payback_years": 8, ...}
        ```
    """
    try:
        summary = app_service.run_analysis(payload.site if payload else None)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return sim_schemas.AnalysisResponse(**summary)


@router.post("/sensitivity", response_model=sim_schemas.SensitivityResponse)
def trigger_sensitivity(
    payload: sim_schemas.SensitivityRequest | None = None,
    app_service: SiteAnalysisApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.SensitivityResponse:
    """
    Sweep solar and battery sizes around the configured sizing.

    Every evaluated sizing runs the full hourly simulation, so a large roof
    can take several seconds.

    Returns:
        SensitivityResponse with the frontier, the 1-D sweeps and the
        best_npv / best_irr / max_self_sufficiency picks.

    Raises:
        HTTPException 400: If the site payload is invalid.
    """
    try:
        summary = app_service.run_sensitivity(payload.site if payload else None)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return sim_schemas.SensitivityResponse(**summary)


@router.post("/monte-carlo", response_model=sim_schemas.MonteCarloResponse)
def trigger_monte_carlo(
    payload: sim_schemas.MonteCarloRequest | None = None,
    app_service: SiteAnalysisApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.MonteCarloResponse:
    """
    Run the Monte Carlo uncertainty analysis on the configured sizing.

    Tariff escalation, O&M escalation and production variance are drawn
    uniformly for each iteration.

    Args:
        payload: Site payload with optional iterations and seed overrides.
        app_service: Site analysis application service (dependency injected).

    Returns:
        MonteCarloResponse with P10/P50/P90/mean summaries and the sorted
        NPV25, IRR25 and payback distributions.

    Raises:
        HTTPException 400: If the site payload is invalid.
        HTTPException 500: If every iteration failed.
    """
    payload = payload or sim_schemas.MonteCarloRequest()
    try:
        summary = app_service.run_monte_carlo(payload.site, iterations=payload.iterations, seed=payload.seed)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return sim_schemas.MonteCarloResponse(**summary)


@router.get("/runs", response_model=list[sim_schemas.RunResult])
def list_runs(
    limit: int = Query(50, ge=1, le=500),
    result_type: str | None = None,
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> list[sim_schemas.RunResult]:
    """
    List historical execution results, newest first.

    Args:
        limit: Maximum number of records (1-500, default 50).
        result_type: Optional filter: 'analysis', 'sensitivity' or 'monte_carlo'.
        persistence: Database persistence service (dependency injected).
    """
    return persistence.list_run_results(limit=limit, result_type=result_type)
