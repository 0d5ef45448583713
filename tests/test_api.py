from __future__ import annotations

from fastapi.testclient import TestClient

from solar_site_sim.api import dependencies
from solar_site_sim.api.app import create_app
from solar_site_sim.application import SiteAnalysisApplication
from solar_site_sim.persistence import PersistenceService


def create_test_client(persistence: PersistenceService) -> TestClient:
    """Build a FastAPI test client with dependency overrides for persistence."""
    app = create_app()

    def get_app_service() -> SiteAnalysisApplication:
        return SiteAnalysisApplication(
            save_outputs=False,
            persistence=persistence,
            result_builder=None,
        )

    app.dependency_overrides[dependencies.get_application_service] = get_app_service
    app.dependency_overrides[dependencies.get_persistence_service] = lambda: persistence
    return TestClient(app)


def test_api_analysis_and_runs(persistence: PersistenceService, site_payload: dict):
    """Exercise /api/analysis and /api/runs endpoints."""
    client = create_test_client(persistence)
    resp = client.post("/api/analysis", json={"site": site_payload})
    assert resp.status_code == 200
    data = resp.json()
    assert data["site"] == "Test Site"
    assert len(data["cashflows"]) == 31
    assert data["yield_strategy"]["source"] == "default"

    runs_resp = client.get("/api/runs")
    assert runs_resp.status_code == 200
    runs = runs_resp.json()
    assert len(runs) == 1
    assert runs[0]["result_type"] == "analysis"
    assert runs[0]["summary"]["pv_kw"] == 40

    assert client.get("/api/runs", params={"result_type": "sensitivity"}).json() == []
    assert client.get("/api/runs", params={"limit": 0}).status_code == 422


def test_api_analysis_rejects_invalid_site(persistence: PersistenceService, site_payload: dict):
    client = create_test_client(persistence)
    site_payload["assumptions"]["not_an_assumption"] = 1

    resp = client.post("/api/analysis", json={"site": site_payload})

    assert resp.status_code == 400
    assert "not_an_assumption" in resp.json()["detail"]


def test_api_monte_carlo(persistence: PersistenceService, site_payload: dict):
    """Exercise the /api/monte-carlo endpoint."""
    client = create_test_client(persistence)
    resp = client.post("/api/monte-carlo", json={"site": site_payload, "iterations": 3, "seed": 2})
    assert resp.status_code == 200
    data = resp.json()
    assert data["iterations"] == 3
    assert data["seed"] == 2
    assert len(data["distribution"]["npv25"]) == 3

    assert client.post("/api/monte-carlo", json={"site": site_payload, "iterations": 0}).status_code == 422


def test_api_monte_carlo_rejects_unknown_section_key(persistence: PersistenceService, site_payload: dict):
    client = create_test_client(persistence)
    site_payload["monte_carlo"] = {"itterations": 10}

    resp = client.post("/api/monte-carlo", json={"site": site_payload})

    assert resp.status_code == 400
    assert "itterations" in resp.json()["detail"]


def test_api_monte_carlo_rejects_wrongly_typed_values(persistence: PersistenceService, site_payload: dict):
    client = create_test_client(persistence)

    site_payload["monte_carlo"] = {"iterations": "many"}
    resp = client.post("/api/monte-carlo", json={"site": site_payload})
    assert resp.status_code == 400
    assert "iterations" in resp.json()["detail"]

    site_payload["monte_carlo"] = {"iterations": 2, "om_escalation_range": [0.03]}
    resp = client.post("/api/monte-carlo", json={"site": site_payload})
    assert resp.status_code == 400
    assert "om_escalation_range" in resp.json()["detail"]


def test_api_analysis_rejects_wrongly_typed_assumption(persistence: PersistenceService, site_payload: dict):
    client = create_test_client(persistence)
    site_payload["assumptions"]["discount_rate"] = "eight percent"

    resp = client.post("/api/analysis", json={"site": site_payload})

    assert resp.status_code == 400
    assert "discount_rate" in resp.json()["detail"]


def test_api_tariffs(persistence: PersistenceService):
    client = create_test_client(persistence)

    tariffs = client.get("/api/tariffs").json()
    assert "M" in {t["code"] for t in tariffs}

    detect = client.post("/api/tariffs/detect", json={"peak_demand_kw": 40, "annual_consumption_kwh": 90_000})
    assert detect.status_code == 200
    assert detect.json()["detected_tariff"] == "G"
    assert set(detect.json()["reason"]) == {"fr", "en"}

    cost = client.post(
        "/api/tariffs/annual-cost",
        json={"tariff_code": "M", "annual_consumption_kwh": 1_200_000, "peak_demand_kw": 300},
    )
    assert cost.status_code == 200
    assert len(cost.json()["monthly_breakdown"]) == 12

    unknown = client.post(
        "/api/tariffs/annual-cost",
        json={"tariff_code": "Z", "annual_consumption_kwh": 1_000, "peak_demand_kw": 10},
    )
    assert unknown.status_code == 400


def test_api_profiles(persistence: PersistenceService):
    client = create_test_client(persistence)

    archetypes = client.get("/api/profiles/archetypes").json()
    assert "warehouse" in {a["name"] for a in archetypes}

    resp = client.post("/api/profiles/synthetic", json={"archetype": "warehouse", "annual_consumption_kwh": 876_000})
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["monthly_kwh"]) == 12
    assert data["readings"] is None
    assert abs(sum(data["monthly_kwh"]) - 876_000) < 876_000 * 0.01

    assert client.post("/api/profiles/synthetic", json={"archetype": "spaceport"}).status_code == 400
    assert client.post("/api/profiles/synthetic", json={"archetype": "office", "schedule": "nights"}).status_code == 422


def test_save_and_run_configuration(persistence: PersistenceService, site_payload: dict):
    """Save a site payload and run it from the database."""
    client = create_test_client(persistence)

    save_resp = client.post("/api/configurations", json={"name": "Test Site", "data": site_payload})
    assert save_resp.status_code == 200
    saved = save_resp.json()
    assert saved["config_type"] == "site"
    assert saved["created_at"] is not None

    listed = client.get("/api/configurations").json()
    assert [c["name"] for c in listed] == ["Test Site"]
    assert client.get(f"/api/configurations/{saved['id']}").json()["data"]["sizing"]["pv_kw"] == 40

    run_resp = client.post(f"/api/configurations/{saved['id']}/run")
    assert run_resp.status_code == 200
    assert run_resp.json()["npv25"] is not None

    mc_resp = client.post(
        f"/api/configurations/{saved['id']}/run",
        json={"kind": "monte_carlo", "iterations": 2, "seed": 3},
    )
    assert mc_resp.status_code == 200
    assert mc_resp.json()["iterations"] == 2

    runs = client.get("/api/runs").json()
    assert len(runs) == 2
    assert all(run["configuration_id"] == saved["id"] for run in runs)


def test_configuration_not_found(persistence: PersistenceService):
    client = create_test_client(persistence)

    assert client.get("/api/configurations/999").status_code == 404
    assert client.post("/api/configurations/999/run").status_code == 404
