"""
Common utilities and base schemas for API validation.

This module provides shared pieces used across the schema modules:
- LocalizedText for the bilingual (French/English) labels of the rate tables
- SiteRequest, the base of every request carrying an inline site payload
- _coerce_to_dict for accepting both mappings and ORM records
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field


def _coerce_to_dict(data: Any) -> Dict[str, Any]:
    """
    Coerce various input types to a dictionary for Pydantic validation.

    Args:
        data: Plain dict, Mapping, SQLAlchemy model or dict-like object.

    Returns:
        Dictionary representation of the input, or the original object
        if it is a SQLAlchemy model (handled by from_attributes).

    Example:
        >>> _coerce_to_dict(None)
        {}
        >>> _coerce_to_dict({"name": "Entrepôt Laval"})
        {'name': 'Entrepôt Laval'}
    """
    if data is None:
        return {}
    if isinstance(data, dict):
        return data
    if isinstance(data, Mapping):
        return dict(data)
    if hasattr(data, "__tablename__") or hasattr(data, "_sa_instance_state"):
        return data  # type: ignore
    return dict(data)


class LocalizedText(BaseModel):
    """French and English variants of a label or message."""

    fr: str = Field(..., description="French text")
    en: str = Field(..., description="English text")


class SiteRequest(BaseModel):
    """
    Base request carrying an optional inline site payload.

    Attributes:
        site: Complete site payload as JSON, or None for the bundled example
            site. Sections:
            - name: Site name used for outputs and run history
            - load: ``{"source": "readings", "readings": [...]}`` or
              ``{"source": "synthetic", "archetype": ..., "annual_consumption_kwh": ...}``
            - sizing: pv_kw, battery_kwh, battery_kw
            - assumptions: Any AnalysisAssumptions field (tariff_code, roof_area_sqft, ...)
            - remote_sensing: Optional yearly_energy_kwh / system_size_kw
            - roof_color: Optional roof color driving the bifacial boost
    """

    site: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Complete site payload (JSON), or None for the bundled example site",
    )
