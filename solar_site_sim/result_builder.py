from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .simulation.financials import ScenarioFinancials
from .simulation.monte_carlo import MonteCarloResult
from .simulation.optimizer import POINT_BATTERY, POINT_HYBRID, POINT_SOLAR, SensitivityResult

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
POINT_COLORS = {POINT_SOLAR: "#f2a900", POINT_BATTERY: "#1f77b4", POINT_HYBRID: "#2ca02c"}


def _slugify(value: str) -> str:
    """
    Convert a free-form string into a filesystem-safe slug.

    Args:
        value: Input string.

    Returns:
        Slug containing only alphanumeric characters, dash, or underscore.
    """
    return "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in value.strip()).strip("_")


def _create_run_directory(site_name: str, output_root: Path, kind: str) -> Path:
    """
    Create the timestamped directory for one run.
    """
    timestamp = datetime.now().strftime("%y%m%d_%H%M%S")
    slug = _slugify(site_name) or "site"
    run_dir = output_root / f"{timestamp}_{slug}_{kind}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def _write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False, default=float), encoding="utf-8")


def _plot_cumulative_cashflow(financials: ScenarioFinancials, save_path: Path) -> None:
    """
    Plot yearly net cashflow bars with the cumulative curve.
    """
    frame = financials.to_cashflow_frame()
    if frame.empty:
        return
    fig, ax = plt.subplots(figsize=(10, 5))
    colors = np.where(frame["net_cashflow"] >= 0, "#2ca02c", "#d62728")
    ax.bar(frame["year"], frame["net_cashflow"], color=colors, alpha=0.6, label="Net cashflow")
    ax.plot(frame["year"], frame["cumulative"], color="black", marker="o", markersize=3, label="Cumulative")
    ax.axhline(0, color="gray", linewidth=1)
    ax.set_xlabel("Year")
    ax.set_ylabel("CAD")
    ax.set_title(f"Cashflow (payback year {financials.simple_payback_years})")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _plot_monthly_peaks(financials: ScenarioFinancials, save_path: Path) -> None:
    """
    Plot monthly billed demand before and after the system.
    """
    sim = financials.simulation
    if sim is None:
        return
    x = np.arange(12)
    fig, ax = plt.subplots(figsize=(10, 4.5))
    ax.bar(x - 0.2, sim.monthly_peaks_before, width=0.4, label="Before")
    ax.bar(x + 0.2, sim.monthly_peaks_after, width=0.4, label="After")
    ax.set_xticks(x)
    ax.set_xticklabels(MONTH_LABELS)
    ax.set_ylabel("Peak demand [kW]")
    ax.set_title("Monthly peak demand")
    ax.grid(True, axis="y", alpha=0.3)
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _plot_hourly_profile(financials: ScenarioFinancials, save_path: Path) -> None:
    """
    Plot the average day load before and after solar.
    """
    points = financials.hourly_profile_summary
    if not points:
        return
    hours = list(range(len(points)))
    fig, ax = plt.subplots(figsize=(10, 4.5))
    ax.plot(hours, [p.consumption_before for p in points], label="Consumption before")
    ax.plot(hours, [p.consumption_after for p in points], label="Consumption after")
    ax.set_xlabel("Hour of day")
    ax.set_ylabel("kWh")
    ax.set_title("Average daily profile")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _plot_frontier(result: SensitivityResult, save_path: Path) -> None:
    """
    Scatter net capex against NPV25, one color per configuration type.
    """
    if not result.frontier:
        return
    fig, ax = plt.subplots(figsize=(9, 6))
    for kind, color in POINT_COLORS.items():
        points = [p for p in result.frontier if p.type == kind]
        if points:
            ax.scatter([p.capex_net for p in points], [p.npv25 for p in points], color=color, label=kind, alpha=0.7)
    optimal = [p for p in result.frontier if p.is_optimal]
    if optimal:
        ax.scatter(
            [optimal[0].capex_net], [optimal[0].npv25],
            marker="*", s=250, color="red", label=f"Optimal: {optimal[0].label}",
        )
    ax.axhline(0, color="gray", linewidth=1)
    ax.set_xlabel("Net capex [CAD]")
    ax.set_ylabel("NPV 25 years [CAD]")
    ax.set_title("Sizing frontier")
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8, loc="best")
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _plot_sweeps(result: SensitivityResult, save_path: Path) -> None:
    """
    Plot the 1-D solar and battery NPV sweeps side by side.
    """
    fig, (ax_pv, ax_batt) = plt.subplots(1, 2, figsize=(12, 4.5))
    if result.solar_sweep:
        ax_pv.plot([p.pv_kw for p in result.solar_sweep], [p.npv25 for p in result.solar_sweep], marker="o")
    ax_pv.set_xlabel("PV size [kW]")
    ax_pv.set_ylabel("NPV 25 years [CAD]")
    ax_pv.set_title("Solar sweep")
    ax_pv.grid(True, alpha=0.3)
    if result.battery_sweep:
        ax_batt.plot(
            [p.battery_kwh for p in result.battery_sweep], [p.npv25 for p in result.battery_sweep], marker="o"
        )
    ax_batt.set_xlabel("Battery energy [kWh]")
    ax_batt.set_title("Battery sweep")
    ax_batt.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _plot_npv_distribution(result: MonteCarloResult, save_path: Path) -> None:
    """
    Histogram of the NPV25 distribution with P10/P50/P90 markers.
    """
    data = np.asarray(result.distribution.get("npv25", []), dtype=float)
    if data.size == 0:
        return
    fig, ax = plt.subplots(figsize=(8, 4.5))
    ax.hist(data, bins=40, color="#1f77b4", alpha=0.8)
    for label, value in (("P10", result.p10.npv25), ("P50", result.p50.npv25), ("P90", result.p90.npv25)):
        ax.axvline(value, linestyle="--", linewidth=1, color="black")
        ax.text(value, ax.get_ylim()[1] * 0.95, label, rotation=90, va="top", fontsize=8)
    ax.set_xlabel("NPV 25 years [CAD]")
    ax.set_ylabel("Draws")
    ax.set_title(f"Monte Carlo NPV distribution ({result.iterations} draws)")
    ax.grid(True, alpha=0.2)
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


class ResultBuilder:
    """
    Write analysis deliverables (CSV tables, PNG charts, JSON summaries).
    """

    def __init__(self, output_root: str | Path = "results") -> None:
        """
        Args:
            output_root: Base directory for generated assets.
        """
        self.output_root = Path(output_root)

    def build_analysis(self, site_name: str, financials: ScenarioFinancials) -> Path:
        """
        Save the cashflow table, demand and profile charts of one scenario.
        """
        run_dir = _create_run_directory(site_name, self.output_root, "analysis")
        financials.to_cashflow_frame().to_csv(run_dir / "cashflows.csv", index=False)
        pd.DataFrame([p.__dict__ for p in financials.hourly_profile_summary]).to_csv(
            run_dir / "hourly_profile_summary.csv", index=False
        )
        if financials.simulation is not None:
            pd.DataFrame(
                {
                    "month": MONTH_LABELS,
                    "peak_before_kw": financials.simulation.monthly_peaks_before,
                    "peak_after_kw": financials.simulation.monthly_peaks_after,
                }
            ).to_csv(run_dir / "monthly_peaks.csv", index=False)
        _write_json(run_dir / "summary.json", financials.summary())

        _plot_cumulative_cashflow(financials, run_dir / "cashflow.png")
        _plot_monthly_peaks(financials, run_dir / "monthly_peaks.png")
        _plot_hourly_profile(financials, run_dir / "hourly_profile.png")
        return run_dir

    def build_sensitivity(self, site_name: str, result: SensitivityResult) -> Path:
        """
        Save the frontier, the sweeps and the optimal picks.
        """
        run_dir = _create_run_directory(site_name, self.output_root, "sensitivity")
        result.frontier_frame().to_csv(run_dir / "frontier.csv", index=False)
        result.solar_sweep_frame().to_csv(run_dir / "solar_sweep.csv", index=False)
        result.battery_sweep_frame().to_csv(run_dir / "battery_sweep.csv", index=False)

        optimal: Dict[str, Any] = {"optimal_scenario_id": result.optimal_scenario_id}
        for key, scenario in result.optimal_scenarios.items():
            if scenario is None:
                optimal[key] = None
                continue
            optimal[key] = {"id": scenario.point.id, **scenario.financials.summary()}
            picks_dir = run_dir / key
            picks_dir.mkdir(exist_ok=True)
            scenario.financials.to_cashflow_frame().to_csv(picks_dir / "cashflows.csv", index=False)
        _write_json(run_dir / "optimal_scenarios.json", optimal)

        _plot_frontier(result, run_dir / "frontier.png")
        _plot_sweeps(result, run_dir / "sweeps.png")
        return run_dir

    def build_monte_carlo(self, site_name: str, result: MonteCarloResult) -> Path:
        """
        Save the per-draw table, the percentile summary and the NPV histogram.
        """
        run_dir = _create_run_directory(site_name, self.output_root, "monte_carlo")
        result.draws.to_csv(run_dir / "draws.csv", index=False)
        result.summary_frame().to_csv(run_dir / "summary.csv", index_label="metric")
        _plot_npv_distribution(result, run_dir / "npv_distribution.png")
        return run_dir
