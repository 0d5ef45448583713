"""
API route modules for the site analysis application.

This package organizes FastAPI route handlers by business domain:
- simulation: Engine runs (analysis, sensitivity, Monte Carlo) and run history
- tariffs: Hydro-Québec rate catalog, detection and bill estimates
- profiles: Synthetic load profile generation
- configurations: Saved site configurations and their execution

All routers are prefixed with /api.
"""

from __future__ import annotations

from .configurations import router as configurations_router
from .profiles import router as profiles_router
from .simulation import router as simulation_router
from .tariffs import router as tariffs_router

__all__ = [
    "simulation_router",
    "tariffs_router",
    "profiles_router",
    "configurations_router",
]
