"""
Saved configuration API endpoints.

Site payloads can be stored by name (upsert) and re-run later with any of
the engine runs. Runs made from a saved configuration are linked to it in
the run history.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ...application import SiteAnalysisApplication
from ...persistence import PersistenceService
from .. import dependencies
from ..schemas import configurations as config_schemas
from ..schemas import simulation as sim_schemas

router = APIRouter(prefix="/api", tags=["configurations"])

_RESPONSES = {
    "analysis": sim_schemas.AnalysisResponse,
    "sensitivity": sim_schemas.SensitivityResponse,
    "monte_carlo": sim_schemas.MonteCarloResponse,
}


@router.get("/configurations", response_model=list[config_schemas.SavedConfigurationResponse])
def list_configurations(
    type: str | None = None,
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> list[config_schemas.SavedConfigurationResponse]:
    """
    List saved configurations, sorted by name.

    Args:
        type: Optional filter on config_type (e.g. "site").
        persistence: Database persistence service (dependency injected).
    """
    return persistence.list_configurations(config_type=type)


@router.post("/configurations", response_model=config_schemas.SavedConfigurationResponse)
def create_configuration(
    payload: config_schemas.SavedConfigurationCreate,
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> config_schemas.SavedConfigurationResponse:
    """
    Create or update a saved configuration.

    Implements upsert behavior: creates a new configuration if the name does
    not exist, otherwise replaces its type and payload. The payload is not
    validated until it is run.

    Example:
        ```python
        # POST /api/configurations
        {
            "name": "Entrepôt Laval",
            "data": {
                "load": {"source": "synthetic", "archetype": "warehouse", "annual_consumption_kwh": 850000},
                "sizing": {"pv_kw": 400, "battery_kwh": 200, "battery_kw": 100}
            }
        }
        ```
    """
    return persistence.save_configuration(payload.name, payload.config_type, payload.data)


@router.get("/configurations/{config_id}", response_model=config_schemas.SavedConfigurationResponse)
def get_configuration(
    config_id: int,
    persistence: PersistenceService = Depends(dependencies.get_persistence_service),
) -> config_schemas.SavedConfigurationResponse:
    config = persistence.get_configuration_by_id(config_id)
    if not config:
        raise HTTPException(status_code=404, detail=f"Configuration {config_id} not found")
    return config


@router.post("/configurations/{config_id}/run")
def run_configuration(
    config_id: int,
    payload: config_schemas.ConfigurationRunRequest | None = None,
    app_service: SiteAnalysisApplication = Depends(dependencies.get_application_service),
):
    """
    Execute an engine run on a saved site payload.

    Args:
        config_id: Database ID of the saved configuration.
        payload: Run kind ("analysis", "sensitivity" or "monte_carlo") and,
            for Monte Carlo, optional iterations and seed.
        app_service: Site analysis application service (dependency injected).

    Returns:
        The response of the matching direct endpoint (AnalysisResponse,
        SensitivityResponse or MonteCarloResponse).

    Raises:
        HTTPException 404: If config_id is not found.
        HTTPException 400: If the stored payload is invalid.
    """
    payload = payload or config_schemas.ConfigurationRunRequest()
    options = {}
    if payload.kind == "monte_carlo":
        options = {"iterations": payload.iterations, "seed": payload.seed}
    try:
        summary = app_service.run_saved_configuration(config_id, payload.kind, **options)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _RESPONSES[payload.kind](**summary)
