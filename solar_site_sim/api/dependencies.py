from __future__ import annotations

from functools import lru_cache

from ..application import SiteAnalysisApplication
from ..config import get_results_dir
from ..db.session import init_db
from ..persistence import PersistenceService
from ..result_builder import ResultBuilder


@lru_cache()
def get_persistence_service() -> PersistenceService:
    """
    Provide a cached PersistenceService instance for API routes.
    """
    init_db()
    return PersistenceService()


def get_result_builder() -> ResultBuilder:
    """
    Provide a ResultBuilder for optional CLI-style exports.
    """
    return ResultBuilder(get_results_dir())


def get_application_service() -> SiteAnalysisApplication:
    """
    Provide a SiteAnalysisApplication configured for API usage.
    """
    persistence = get_persistence_service()
    # API does not save tables or plots by default
    return SiteAnalysisApplication(
        save_outputs=False,
        persistence=persistence,
        result_builder=None,
    )
