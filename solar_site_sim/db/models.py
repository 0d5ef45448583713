"""
SQLAlchemy database models for site analysis persistence.

Stores analysis run summaries and reusable site configurations. All models
inherit automatic timestamp tracking via TimestampMixin.
"""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, func

from .session import Base


class TimestampMixin:
    """
    Mixin adding automatic created_at and updated_at timestamps.

    Notes:
        - Timestamps managed by database (server_default, onupdate)
        - created_at immutable after insert
        - updated_at changes on every UPDATE
    """
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class RunResultRecord(Base, TimestampMixin):
    """
    Database model for analysis results.

    Attributes:
        id: Primary key (auto-increment).
        result_type: "analysis", "sensitivity" or "monte_carlo".
        name: Site name the run was made for (optional).
        summary: Headline metrics (JSON).
        output_dir: Filesystem path to exported CSV/PNG files (optional).
        configuration_id: Saved configuration the run was made from (optional).

    Example:
        ```python
        result = RunResultRecord(
            result_type="analysis",
            name="Entrepôt Laval",
            summary={"npv25": 412000.0, "irr25": 0.14, "simple_payback_years": 7},
            output_dir="results/analysis_entrepot-laval_2025-01-15_143022",
        )
        ```
    """
    __tablename__ = "run_results"

    id = Column(Integer, primary_key=True)
    result_type = Column(String(50), nullable=False)
    name = Column(String(255), nullable=True)
    summary = Column(JSON, nullable=False)
    output_dir = Column(Text, nullable=True)
    configuration_id = Column(Integer, nullable=True)


class SavedConfigurationModel(Base, TimestampMixin):
    """
    Database model for saved site configurations.

    Stores the complete site payload (load source, sizing, assumptions,
    remote-sensing data) so that an analysis can be re-run later.

    Attributes:
        id: Primary key (auto-increment).
        name: Unique configuration identifier.
        config_type: "site" for a site payload.
        data: Complete site payload (JSON).
    """
    __tablename__ = "saved_configurations"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    config_type = Column(String(50), nullable=False, default="site")
    data = Column(JSON, nullable=False)
