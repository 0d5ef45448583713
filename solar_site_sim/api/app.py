from __future__ import annotations

from fastapi import FastAPI

from .routes import (
    configurations_router,
    profiles_router,
    simulation_router,
    tariffs_router,
)


def create_app() -> FastAPI:
    """
    Instantiate the FastAPI application and register routers.

    Creates the main FastAPI application with CORS middleware and
    registers all domain-specific routers:
    - simulation: Analysis, sensitivity sweep, Monte Carlo and run history
    - tariffs: Rate catalog, tariff detection and annual cost estimates
    - profiles: Synthetic load profiles
    - configurations: Saved site configurations and their execution

    Returns:
        FastAPI: Configured FastAPI application instance ready to serve.

    Example:
        ```python
        # Direct usage
        app = create_app()
        uvicorn.run(app, host="0.0.0.0", port=8000)

        # Or use the pre-created instance
        from solar_site_sim.api.app import app
        ```
    """
    app = FastAPI(
        title="Solar Site Simulator API",
        version="0.1.0",
        description="API to simulate, size and price solar + storage systems for C&I sites.",
    )

    from fastapi.middleware.cors import CORSMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(simulation_router)
    app.include_router(tariffs_router)
    app.include_router(profiles_router)
    app.include_router(configurations_router)

    return app


app = create_app()
