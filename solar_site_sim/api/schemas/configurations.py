"""
Saved site configuration schemas for API validation.

This module contains Pydantic models for storing and re-running site
payloads:
- SavedConfigurationCreate / SavedConfigurationResponse
- ConfigurationRunRequest: which engine run to execute on a stored payload
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import _coerce_to_dict


class SavedConfigurationResponse(BaseModel):
    """
    Saved configuration response schema.

    Attributes:
        id: Unique database identifier.
        name: Configuration name (unique).
        config_type: "site" for a site payload.
        data: Complete site payload (load, sizing, assumptions...).

    Example:
        ```python
        {
            "id": 1,
            "name": "Entrepôt Laval",
            "config_type": "site",
            "data": {
                "load": {"source": "synthetic", "archetype": "warehouse", "annual_consumption_kwh": 850000},
                "sizing": {"pv_kw": 400, "battery_kwh": 200, "battery_kw": 100},
                "assumptions": {"tariff_code": "M"}
            },
            "created_at": "2025-01-15T10:45:30Z"
        }
        ```
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str = Field(..., description="Unique configuration name")
    config_type: str = Field(..., description="Configuration type")
    data: Dict[str, Any] = Field(..., description="Site payload")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("data", mode="before")
    @classmethod
    def _data_as_dict(cls, value: Any) -> Dict[str, Any]:
        return _coerce_to_dict(value)


class SavedConfigurationCreate(BaseModel):
    """
    Saved configuration creation schema (upsert by name).

    Example:
        ```python
        # POST /api/configurations
        {
            "name": "Entrepôt Laval",
            "data": {"load": {...}, "sizing": {...}, "assumptions": {...}}
        }
        ```
    """

    name: str = Field(..., min_length=1, description="Unique configuration name")
    config_type: str = Field(default="site", description="Configuration type")
    data: Dict[str, Any] = Field(..., description="Complete site payload")


class ConfigurationRunRequest(BaseModel):
    kind: Literal["analysis", "sensitivity", "monte_carlo"] = Field(
        default="analysis",
        description="Engine run to execute on the stored payload",
    )
    iterations: Optional[int] = Field(default=None, ge=1, description="Monte Carlo draws")
    seed: Optional[int] = Field(default=None, description="Monte Carlo seed")
