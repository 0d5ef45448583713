from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping

from .persistence import PersistenceService
from .result_builder import ResultBuilder
from .scenario_setup import (
    SiteLoad,
    build_assumptions,
    build_site_load,
    build_sizing,
    build_yield_strategy,
    load_site_data,
)
from .simulation import (
    AnalysisAssumptions,
    MonteCarloConfig,
    ScenarioFinancials,
    SystemSizing,
    YieldStrategy,
    calculate_annual_cost,
    detect_tariff,
    estimate_annual_consumption,
    generate_synthetic_profile,
    list_tariffs,
    make_scenario_runner,
    run_monte_carlo_analysis,
    run_scenario,
    run_sensitivity_analysis,
)

logger = logging.getLogger(__name__)

SiteData = Mapping[str, Any] | str | Path | None

RUN_ANALYSIS = "analysis"
RUN_SENSITIVITY = "sensitivity"
RUN_MONTE_CARLO = "monte_carlo"
RUN_KINDS = (RUN_ANALYSIS, RUN_SENSITIVITY, RUN_MONTE_CARLO)


@dataclass
class PreparedSite:
    """Everything derived from a site payload before any scenario runs."""

    payload: Dict[str, Any]
    name: str
    load: SiteLoad
    assumptions: AnalysisAssumptions
    sizing: SystemSizing
    yield_strategy: YieldStrategy


def prepare_site(site_data: SiteData = None) -> PreparedSite:
    """
    Resolve load, assumptions, sizing and yield from a site payload.

    Args:
        site_data: Mapping, JSON path, or None for the bundled example site.

    Raises:
        ValueError: If any section of the payload is invalid.
    """
    payload = load_site_data(site_data)
    assumptions = build_assumptions(payload)
    return PreparedSite(
        payload=payload,
        name=str(payload.get("name") or "site"),
        load=build_site_load(payload),
        assumptions=assumptions,
        sizing=build_sizing(payload),
        yield_strategy=build_yield_strategy(payload, assumptions),
    )


def _yield_summary(strategy: YieldStrategy) -> Dict[str, Any]:
    return {
        "source": strategy.source,
        "base_yield": strategy.base_yield,
        "effective_yield": strategy.effective_yield,
        "bifacial_boost": strategy.bifacial_boost,
        "orientation_factor": strategy.orientation_factor,
        "yield_factor": strategy.yield_factor,
    }


def _site_summary(site: PreparedSite) -> Dict[str, Any]:
    return {
        "site": site.name,
        "load_source": site.load.source,
        "annual_consumption_kwh": site.load.annual_consumption_kwh,
        "peak_kw": site.load.peak_kw,
        "interpolated_months": list(site.load.interpolated_months),
    }


def _financials_detail(financials: ScenarioFinancials) -> Dict[str, Any]:
    """Headline figures plus the per-year and per-hour tables."""
    detail: Dict[str, Any] = financials.summary()
    detail["cashflows"] = [asdict(entry) for entry in financials.cashflows]
    detail["hourly_profile_summary"] = [asdict(point) for point in financials.hourly_profile_summary]
    if financials.simulation is not None:
        detail["monthly_peaks"] = {
            "before": list(financials.simulation.monthly_peaks_before),
            "after": list(financials.simulation.monthly_peaks_after),
        }
        detail["clipping_loss_kwh"] = financials.simulation.clipping_loss
    return detail


class SiteAnalysisApplication:
    """
    High-level orchestrator used by the CLI and the FastAPI surface.

    Each ``run_*`` method resolves a site payload, runs the engine, records
    the run through the optional PersistenceService and, when
    ``save_outputs`` is set, exports CSV/PNG files with the ResultBuilder.
    """

    def __init__(
        self,
        *,
        save_outputs: bool = False,
        persistence: PersistenceService | None = None,
        result_builder: ResultBuilder | None = None,
    ) -> None:
        """
        Args:
            save_outputs: When True, ResultBuilder saves tables and plots.
            persistence: Optional PersistenceService for DB storage.
            result_builder: Optional ResultBuilder for exported files.
        """
        self.save_outputs = save_outputs
        self.persistence = persistence
        self.result_builder = result_builder

    def _record(
        self,
        result_type: str,
        site: PreparedSite,
        summary: Mapping[str, Any],
        output_dir: Path | None,
        configuration: Any = None,
    ) -> None:
        if not self.persistence:
            return
        self.persistence.record_run_result(
            result_type,
            summary,
            name=site.name,
            configuration=configuration,
            output_dir=str(output_dir) if output_dir else None,
        )

    def _builder(self) -> ResultBuilder | None:
        return self.result_builder if self.save_outputs and self.result_builder else None

    def run_analysis(self, site_data: SiteData = None, *, configuration: Any = None) -> Dict[str, Any]:
        """
        Simulate and price the configured sizing of a site.

        Args:
            site_data: Optional mapping/path overriding the bundled example site.
            configuration: Saved configuration the payload came from, if any.

        Returns:
            Site figures, resolved yield, headline financials, cashflow and
            profile tables, and the optional output directory.
        """
        site = prepare_site(site_data)
        logger.info("Running analysis for %s (%s)", site.name, site.sizing.describe())
        financials = run_scenario(
            site.load.buckets,
            site.sizing,
            site.load.peak_kw,
            site.load.annual_consumption_kwh,
            site.assumptions,
            site.yield_strategy,
        )

        output_dir = None
        builder = self._builder()
        if builder:
            output_dir = builder.build_analysis(site.name, financials)

        self._record(
            RUN_ANALYSIS,
            site,
            {**_site_summary(site), **financials.summary()},
            output_dir,
            configuration,
        )

        summary: Dict[str, Any] = _site_summary(site)
        summary["yield_strategy"] = _yield_summary(site.yield_strategy)
        summary.update(_financials_detail(financials))
        summary["output_dir"] = str(output_dir) if output_dir else None
        return summary

    def run_sensitivity(self, site_data: SiteData = None, *, configuration: Any = None) -> Dict[str, Any]:
        """
        Sweep solar and battery sizes and pick the optimal configurations.

        The NPV25 of the configured sizing is computed first and reported on
        the ``current-config`` frontier point.
        """
        site = prepare_site(site_data)
        configured = run_scenario(
            site.load.buckets,
            site.sizing,
            site.load.peak_kw,
            site.load.annual_consumption_kwh,
            site.assumptions,
            site.yield_strategy,
        )
        result = run_sensitivity_analysis(
            site.load.buckets,
            site.sizing,
            site.load.peak_kw,
            site.load.annual_consumption_kwh,
            site.assumptions,
            site.yield_strategy,
            configured_npv25=configured.npv25 if configured.cashflows else None,
        )

        output_dir = None
        builder = self._builder()
        if builder:
            output_dir = builder.build_sensitivity(site.name, result)

        optimal: Dict[str, Any] = {}
        for key, scenario in result.optimal_scenarios.items():
            optimal[key] = None if scenario is None else {"id": scenario.point.id, **scenario.financials.summary()}

        self._record(
            RUN_SENSITIVITY,
            site,
            {
                **_site_summary(site),
                "evaluations": result.evaluations,
                "optimal_scenario_id": result.optimal_scenario_id,
                "optimal_scenarios": optimal,
            },
            output_dir,
            configuration,
        )

        summary: Dict[str, Any] = _site_summary(site)
        summary.update(
            {
                "evaluations": result.evaluations,
                "optimal_scenario_id": result.optimal_scenario_id,
                "frontier": [point.as_dict() for point in result.frontier],
                "solar_sweep": [asdict(point) for point in result.solar_sweep],
                "battery_sweep": [asdict(point) for point in result.battery_sweep],
                "optimal_scenarios": optimal,
                "output_dir": str(output_dir) if output_dir else None,
            }
        )
        return summary

    def run_monte_carlo(
        self,
        site_data: SiteData = None,
        *,
        iterations: int | None = None,
        seed: int | None = None,
        configuration: Any = None,
    ) -> Dict[str, Any]:
        """
        Run the Monte Carlo uncertainty analysis on the configured sizing.

        ``iterations`` and ``seed`` override the ``monte_carlo`` section of
        the payload, which may also carry the sampling ranges.

        Raises:
            ValueError: If the ``monte_carlo`` section is malformed.
        """
        site = prepare_site(site_data)
        section = site.payload.get("monte_carlo") or {}
        if not isinstance(section, Mapping):
            raise ValueError("monte_carlo must be an object")
        mc_cfg = dict(section)
        if iterations is not None:
            mc_cfg["iterations"] = iterations
        if seed is not None:
            mc_cfg["seed"] = seed
        config = MonteCarloConfig.from_mapping(mc_cfg)

        logger.info("Running %d Monte Carlo iterations for %s", config.iterations, site.name)
        scenario_fn = make_scenario_runner(
            site.load.buckets,
            site.sizing,
            site.load.peak_kw,
            site.load.annual_consumption_kwh,
            site.yield_strategy,
        )
        result = run_monte_carlo_analysis(site.assumptions, scenario_fn, config)

        output_dir = None
        builder = self._builder()
        if builder:
            output_dir = builder.build_monte_carlo(site.name, result)

        stats = {
            "p10": asdict(result.p10),
            "p50": asdict(result.p50),
            "p90": asdict(result.p90),
            "mean": asdict(result.mean),
        }
        self._record(
            RUN_MONTE_CARLO,
            site,
            {"site": site.name, "iterations": result.iterations, "seed": config.seed, **stats},
            output_dir,
            configuration,
        )

        return {
            "site": site.name,
            "iterations": result.iterations,
            "seed": config.seed,
            **stats,
            "distribution": result.distribution,
            "input_ranges": {key: list(bounds) for key, bounds in result.input_ranges.items()},
            "output_dir": str(output_dir) if output_dir else None,
        }

    def run_saved_configuration(self, config_id: int, kind: str = RUN_ANALYSIS, **options: Any) -> Dict[str, Any]:
        """
        Run a stored site payload.

        Args:
            config_id: Saved configuration ID.
            kind: ``"analysis"``, ``"sensitivity"`` or ``"monte_carlo"``.
            **options: Forwarded to the run method (``iterations``, ``seed``).

        Raises:
            RuntimeError: If the application has no persistence service.
            LookupError: If the configuration does not exist.
            ValueError: If ``kind`` is not a known run type.
        """
        if self.persistence is None:
            raise RuntimeError("Saved configurations require a persistence service")
        if kind not in RUN_KINDS:
            raise ValueError(f"Unknown run type: {kind!r} (expected one of {', '.join(RUN_KINDS)})")
        record = self.persistence.get_configuration_by_id(config_id)
        if record is None:
            raise LookupError(f"Configuration {config_id} not found")

        if kind == RUN_SENSITIVITY:
            return self.run_sensitivity(record.data, configuration=record)
        if kind == RUN_MONTE_CARLO:
            return self.run_monte_carlo(record.data, configuration=record, **options)
        return self.run_analysis(record.data, configuration=record)

    @staticmethod
    def list_tariffs() -> List[Dict[str, Any]]:
        return [
            {
                "code": schedule.code,
                "name": dict(schedule.name),
                "access_fee": schedule.access_fee,
                "access_fee_daily": schedule.access_fee_daily,
                "power_rate": schedule.power_rate,
                "energy_rates": [tier.rate for tier in schedule.energy_tiers],
                "peak_event_rate": schedule.peak_event_rate,
                "min_demand_kw": schedule.min_demand_kw,
                "max_demand_kw": schedule.max_demand_kw,
            }
            for schedule in list_tariffs()
        ]

    @staticmethod
    def estimate_tariff_cost(
        tariff_code: str,
        annual_consumption_kwh: float,
        peak_demand_kw: float,
        is_three_phase: bool = True,
    ) -> Dict[str, Any]:
        """
        Bill a year of flat consumption under one schedule.

        Raises:
            ValueError: If ``tariff_code`` is unknown.
        """
        cost = calculate_annual_cost(tariff_code, annual_consumption_kwh, peak_demand_kw, is_three_phase)
        return {
            "tariff_code": cost.tariff.code,
            "tariff_name": dict(cost.tariff.name),
            "annual_total": cost.annual_total,
            "average_rate": cost.average_rate,
            "monthly_breakdown": cost.monthly_breakdown,
        }

    @staticmethod
    def detect_tariff(
        peak_demand_kw: float,
        annual_consumption_kwh: float,
        has_demand_meter: bool = True,
    ) -> Dict[str, Any]:
        return asdict(detect_tariff(peak_demand_kw, annual_consumption_kwh, has_demand_meter))

    @staticmethod
    def generate_profile(
        archetype: str,
        annual_consumption_kwh: float | None = None,
        *,
        schedule: str | None = None,
        floor_area_sqft: float | None = None,
        monthly_bill: float | None = None,
        tariff_code: str = "M",
        include_readings: bool = False,
    ) -> Dict[str, Any]:
        """
        Build a synthetic load profile for a site without metering.

        When ``annual_consumption_kwh`` is missing it is estimated from the
        monthly bill or the floor area.

        Returns:
            Profile metadata, monthly energy totals, the average-day kW
            curve and optionally the 8,760 hourly readings.

        Raises:
            ValueError: For an unknown archetype or schedule.
        """
        if annual_consumption_kwh is None:
            annual_consumption_kwh = float(
                estimate_annual_consumption(
                    archetype,
                    floor_area_sqft=floor_area_sqft,
                    monthly_bill=monthly_bill,
                    tariff_code=tariff_code,
                )
            )
        profile = generate_synthetic_profile(archetype, annual_consumption_kwh, schedule)
        frame = profile.to_dataframe()
        stamps = frame["timestamp"].dt
        monthly = frame.groupby(stamps.month)["kwh"].sum()
        average_day = frame.groupby(stamps.hour)["kw"].mean()

        summary: Dict[str, Any] = {
            "archetype": profile.archetype,
            "schedule": profile.schedule,
            "annual_consumption_kwh": profile.annual_consumption_kwh,
            "estimated_peak_kw": profile.estimated_peak_kw,
            "load_factor": profile.load_factor,
            "metadata": dict(profile.metadata),
            "monthly_kwh": [round(float(v), 1) for v in monthly.tolist()],
            "average_day_kw": [round(float(v), 2) for v in average_day.tolist()],
        }
        if include_readings:
            summary["readings"] = [
                {"timestamp": r.timestamp.isoformat(), "kwh": r.kwh, "kw": r.kw} for r in profile.readings
            ]
        return summary
