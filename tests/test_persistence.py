from __future__ import annotations

from solar_site_sim.persistence import PersistenceService


def test_persistence_records_runs(persistence: PersistenceService):
    """Verify runs can be stored, filtered and retrieved."""
    config = persistence.save_configuration("Site A", "site", {"sizing": {"pv_kw": 100}})

    run = persistence.record_run_result(
        "analysis",
        {"npv25": 1000.0},
        name="Site A",
        configuration=config,
        output_dir="results/test",
    )
    assert run.id is not None
    assert run.configuration_id == config.id
    assert run.created_at is not None

    persistence.record_run_result("monte_carlo", {"iterations": 10})

    runs = persistence.list_run_results(limit=5)
    assert len(runs) == 2
    analysis_runs = persistence.list_run_results(result_type="analysis")
    assert len(analysis_runs) == 1
    assert analysis_runs[0].summary["npv25"] == 1000.0
    assert analysis_runs[0].output_dir == "results/test"
    assert len(persistence.list_run_results(limit=1)) == 1


def test_save_configuration_upserts_by_name(persistence: PersistenceService):
    first = persistence.save_configuration("Site B", "site", {"sizing": {"pv_kw": 100}})
    second = persistence.save_configuration("Site B", "site", {"sizing": {"pv_kw": 250}})

    assert first.id == second.id
    stored = persistence.get_configuration_by_id(first.id)
    assert stored.data["sizing"]["pv_kw"] == 250
    assert persistence.get_configuration_by_name("Site B").id == first.id
    assert len(persistence.list_configurations()) == 1


def test_list_configurations_filters_and_sorts(persistence: PersistenceService):
    persistence.save_configuration("Zeta", "site", {})
    persistence.save_configuration("Alpha", "site", {})
    persistence.save_configuration("Template", "template", {})

    names = [c.name for c in persistence.list_configurations(config_type="site")]
    assert names == ["Alpha", "Zeta"]
    assert len(persistence.list_configurations()) == 3


def test_missing_configuration_returns_none(persistence: PersistenceService):
    assert persistence.get_configuration_by_id(999) is None
    assert persistence.get_configuration_by_name("nope") is None
