"""
Database persistence layer for site analysis runs and saved configurations.

Run summaries and site payloads are stored as JSON columns; dataclass and
pydantic inputs are converted to plain dictionaries before storage.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterable, Mapping

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from .db.models import RunResultRecord, SavedConfigurationModel
from .db.session import SessionLocal


def _asdict_safe(obj: Any) -> Dict[str, Any]:
    """
    Convert dataclasses, pydantic models and mappings to plain dictionaries.

    Raises:
        TypeError: If ``obj`` is none of the supported types.
    """
    if obj is None:
        return {}
    if is_dataclass(obj):
        return asdict(obj)
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    raise TypeError(f"Unsupported object type for serialization: {type(obj)!r}")


class PersistenceService:
    """
    Database persistence service for analysis results and site configurations.

    All operations use transactional sessions with automatic commit/rollback
    handling. Saved configurations are upserted by name.

    Example:
        ```python
        from solar_site_sim.persistence import PersistenceService

        service = PersistenceService()
        config = service.save_configuration("Entrepôt Laval", "site", {"sizing": {"pv_kw": 500}})
        service.record_run_result(
            "analysis",
            {"npv25": 412000.0, "irr25": 0.14},
            name="Entrepôt Laval",
            configuration=config,
        )
        ```
    """

    def __init__(self, session_factory: type[Session] | None = None) -> None:
        """
        Args:
            session_factory: SQLAlchemy session factory. Defaults to
                ``SessionLocal``; tests pass an in-memory factory.
        """
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def session(self) -> Iterable[Session]:
        """
        Context manager providing a transactional database session.

        Commits on success, rolls back and re-raises on error, and always
        closes the session.
        """
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def record_run_result(
        self,
        result_type: str,
        summary: Mapping[str, Any],
        *,
        name: str | None = None,
        configuration: SavedConfigurationModel | None = None,
        output_dir: str | None = None,
    ) -> RunResultRecord:
        """
        Store the outcome of an analysis, sensitivity or Monte Carlo run.

        Args:
            result_type: ``"analysis"``, ``"sensitivity"`` or ``"monte_carlo"``.
            summary: JSON-serializable metrics.
            name: Optional site name.
            configuration: Optional saved configuration the run came from.
            output_dir: Filesystem path containing exported artifacts.
        """
        with self.session() as session:
            record = RunResultRecord(
                result_type=result_type,
                name=name,
                summary=dict(summary),
                configuration_id=configuration.id if configuration else None,
                output_dir=output_dir,
            )
            session.add(record)
            session.flush()
            session.refresh(record)
            return record

    def list_run_results(self, limit: int = 50, result_type: str | None = None) -> list[RunResultRecord]:
        """
        Fetch the latest run results ordered by creation date.

        Args:
            limit: Maximum number of records to return.
            result_type: Optional filter on the run type.
        """
        with self.session() as session:
            stmt = select(RunResultRecord)
            if result_type:
                stmt = stmt.where(RunResultRecord.result_type == result_type)
            stmt = stmt.order_by(desc(RunResultRecord.created_at), desc(RunResultRecord.id)).limit(limit)
            return list(session.execute(stmt).scalars().all())

    def save_configuration(self, name: str, config_type: str, data: Any) -> SavedConfigurationModel:
        payload = _asdict_safe(data)
        with self.session() as session:
            stmt = select(SavedConfigurationModel).where(SavedConfigurationModel.name == name)
            record = session.execute(stmt).scalar_one_or_none()
            if record is None:
                record = SavedConfigurationModel(name=name, config_type=config_type, data=payload)
                session.add(record)
            else:
                record.config_type = config_type
                record.data = payload
            session.flush()
            # load the server-side timestamps before the session closes
            session.refresh(record)
            return record

    def list_configurations(self, config_type: str | None = None) -> list[SavedConfigurationModel]:
        with self.session() as session:
            stmt = select(SavedConfigurationModel)
            if config_type:
                stmt = stmt.where(SavedConfigurationModel.config_type == config_type)
            stmt = stmt.order_by(SavedConfigurationModel.name)
            return list(session.execute(stmt).scalars().all())

    def get_configuration_by_id(self, config_id: int) -> SavedConfigurationModel | None:
        """
        Retrieve a saved configuration by ID.

        Returns:
            The configuration record or None if not found.
        """
        with self.session() as session:
            stmt = select(SavedConfigurationModel).where(SavedConfigurationModel.id == config_id)
            return session.execute(stmt).scalar_one_or_none()

    def get_configuration_by_name(self, name: str) -> SavedConfigurationModel | None:
        with self.session() as session:
            stmt = select(SavedConfigurationModel).where(SavedConfigurationModel.name == name)
            return session.execute(stmt).scalar_one_or_none()
