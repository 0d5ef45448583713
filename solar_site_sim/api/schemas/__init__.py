"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic models used for API validation,
organized by domain:
- simulation: Analysis, sensitivity and Monte Carlo schemas, run history
- tariffs: Rate catalog, detection and annual cost schemas
- profiles: Synthetic load profile schemas
- configurations: Saved site configuration schemas
- common: Shared base schemas and utilities

Example:
    ```python
    # Both import styles work:
    from solar_site_sim.api.schemas import AnalysisResponse
    from solar_site_sim.api.schemas.simulation import AnalysisResponse
    ```
"""

from __future__ import annotations

from .common import LocalizedText, SiteRequest, _coerce_to_dict
from .configurations import (
    ConfigurationRunRequest,
    SavedConfigurationCreate,
    SavedConfigurationResponse,
)
from .profiles import ArchetypeResponse, SyntheticProfileRequest, SyntheticProfileResponse
from .simulation import (
    AnalysisRequest,
    AnalysisResponse,
    MonteCarloRequest,
    MonteCarloResponse,
    RunResult,
    SensitivityRequest,
    SensitivityResponse,
)
from .tariffs import (
    AnnualCostRequest,
    AnnualCostResponse,
    TariffDetectRequest,
    TariffDetectResponse,
    TariffResponse,
)

__all__ = [
    # Utilities
    "_coerce_to_dict",
    "LocalizedText",
    "SiteRequest",
    # Simulation schemas
    "AnalysisRequest",
    "AnalysisResponse",
    "SensitivityRequest",
    "SensitivityResponse",
    "MonteCarloRequest",
    "MonteCarloResponse",
    "RunResult",
    # Tariff schemas
    "TariffResponse",
    "TariffDetectRequest",
    "TariffDetectResponse",
    "AnnualCostRequest",
    "AnnualCostResponse",
    # Profile schemas
    "SyntheticProfileRequest",
    "SyntheticProfileResponse",
    "ArchetypeResponse",
    # Configuration schemas
    "SavedConfigurationCreate",
    "SavedConfigurationResponse",
    "ConfigurationRunRequest",
]
