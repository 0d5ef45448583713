from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Sequence

from .application import RUN_KINDS, SiteAnalysisApplication
from .config import configure_logging, get_results_dir
from .db.session import init_db
from .persistence import PersistenceService
from .result_builder import ResultBuilder
from .simulation import ARCHETYPES, TARIFFS


def _add_site_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--site-file",
        type=str,
        default=None,
        help="Path to a JSON site payload (defaults to the bundled example site)",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write CSV/PNG outputs to the results directory",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    """
    Build the CLI argument parser used by entry points.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(description="Solar + storage site analysis CLI")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING...)")
    sub = parser.add_subparsers(dest="command")

    analyze = sub.add_parser("analyze", help="Simulate and price the configured sizing")
    _add_site_arguments(analyze)

    sensitivity = sub.add_parser("sensitivity", help="Sweep solar and battery sizes")
    _add_site_arguments(sensitivity)

    monte_carlo = sub.add_parser("monte-carlo", help="Run the Monte Carlo uncertainty analysis")
    _add_site_arguments(monte_carlo)
    monte_carlo.add_argument("--iterations", type=int, default=None, help="Number of draws")
    monte_carlo.add_argument("--seed", type=int, default=None, help="RNG seed")

    # Tariffs
    tariff = sub.add_parser("tariff", help="Hydro-Québec rate tools")
    tariff_sub = tariff.add_subparsers(dest="tariff_command")

    tariff_sub.add_parser("list", help="List the known rate schedules")

    detect = tariff_sub.add_parser("detect", help="Guess the rate schedule of a site")
    detect.add_argument("--peak-kw", type=float, required=True, dest="peak_kw")
    detect.add_argument("--annual-kwh", type=float, required=True, dest="annual_kwh")
    detect.add_argument(
        "--no-demand-meter",
        action="store_true",
        help="The site has no demand meter",
    )

    cost = tariff_sub.add_parser("cost", help="Estimate the annual bill under a schedule")
    cost.add_argument("--code", required=True, choices=sorted(TARIFFS))
    cost.add_argument("--peak-kw", type=float, required=True, dest="peak_kw")
    cost.add_argument("--annual-kwh", type=float, required=True, dest="annual_kwh")
    cost.add_argument("--single-phase", action="store_true", help="Use the single-phase minimum bill")

    # Synthetic load profile
    profile = sub.add_parser("profile", help="Generate a synthetic load profile")
    profile.add_argument("--archetype", required=True, choices=sorted(ARCHETYPES))
    profile.add_argument("--annual-kwh", type=float, dest="annual_kwh", help="Annual consumption")
    profile.add_argument("--floor-area-sqft", type=float, dest="floor_area_sqft")
    profile.add_argument("--monthly-bill", type=float, dest="monthly_bill")
    profile.add_argument("--tariff-code", default="M", dest="tariff_code")
    profile.add_argument("--schedule", choices=["standard", "extended", "24/7"], default=None)
    profile.add_argument("--output", type=str, default=None, help="Write the 8,760 hourly readings to this CSV")

    # Saved configurations
    config = sub.add_parser("config", help="Manage saved site configurations")
    config_sub = config.add_subparsers(dest="config_command")

    config_list = config_sub.add_parser("list", help="List saved configurations")
    config_list.add_argument(
        "--json",
        action="store_true",
        help="Print the full payloads as JSON",
    )

    config_save = config_sub.add_parser("save", help="Save or update a site payload from a JSON file")
    config_save.add_argument("--name", required=True, help="Configuration name")
    config_save.add_argument("--file", required=True, help="Path to the JSON file")

    config_run = config_sub.add_parser("run", help="Run a saved configuration")
    run_group = config_run.add_mutually_exclusive_group(required=True)
    run_group.add_argument("--name", help="Saved configuration name")
    run_group.add_argument("--id", type=int, help="Saved configuration ID")
    config_run.add_argument("--kind", choices=RUN_KINDS, default="analysis")
    config_run.add_argument("--iterations", type=int, default=None)
    config_run.add_argument("--seed", type=int, default=None)
    config_run.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write CSV/PNG outputs to the results directory",
    )

    return parser


def _load_json_file(path: str | Path) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise SystemExit(f"File not found: {file_path}")
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON file ({file_path}): {exc}") from exc


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _site_payload(args: argparse.Namespace) -> dict[str, Any] | None:
    return _load_json_file(args.site_file) if getattr(args, "site_file", None) else None


def main(argv: Sequence[str] | None = None) -> None:
    """
    CLI entry point for site analyses, tariff tools and saved configurations.

    Args:
        argv: Optional sequence of CLI args (defaults to sys.argv).
    """
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    configure_logging(args.log_level.upper() if args.log_level else None)

    if args.command == "tariff":
        if not args.tariff_command:
            parser.error("Specify a tariff subcommand (list/detect/cost).")
        if args.tariff_command == "list":
            _print_json(SiteAnalysisApplication.list_tariffs())
        elif args.tariff_command == "detect":
            _print_json(
                SiteAnalysisApplication.detect_tariff(
                    args.peak_kw, args.annual_kwh, has_demand_meter=not args.no_demand_meter
                )
            )
        else:
            _print_json(
                SiteAnalysisApplication.estimate_tariff_cost(
                    args.code, args.annual_kwh, args.peak_kw, is_three_phase=not args.single_phase
                )
            )
        return

    if args.command == "profile":
        try:
            summary = SiteAnalysisApplication.generate_profile(
                args.archetype,
                args.annual_kwh,
                schedule=args.schedule,
                floor_area_sqft=args.floor_area_sqft,
                monthly_bill=args.monthly_bill,
                tariff_code=args.tariff_code,
                include_readings=bool(args.output),
            )
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc
        if args.output:
            readings = summary.pop("readings")
            Path(args.output).write_text(
                "timestamp,kwh,kw\n" + "".join(f"{r['timestamp']},{r['kwh']},{r['kw']}\n" for r in readings),
                encoding="utf-8",
            )
            summary["output"] = args.output
        _print_json(summary)
        return

    init_db()
    persistence = PersistenceService()

    save_outputs = not getattr(args, "no_save", False)
    app = SiteAnalysisApplication(
        save_outputs=save_outputs,
        persistence=persistence,
        result_builder=ResultBuilder(get_results_dir()) if save_outputs else None,
    )

    try:
        if args.command == "analyze":
            _print_json(app.run_analysis(_site_payload(args)))
            return

        if args.command == "sensitivity":
            _print_json(app.run_sensitivity(_site_payload(args)))
            return

        if args.command == "monte-carlo":
            _print_json(
                app.run_monte_carlo(_site_payload(args), iterations=args.iterations, seed=args.seed)
            )
            return
    except ValueError as exc:
        raise SystemExit(f"Invalid site payload: {exc}") from exc

    if args.command == "config":
        if not args.config_command:
            parser.error("Specify a config subcommand (list/save/run).")

        if args.config_command == "list":
            configs = persistence.list_configurations("site")
            if args.json:
                data = [{"id": cfg.id, "name": cfg.name, "data": cfg.data} for cfg in configs]
            else:
                data = [{"id": cfg.id, "name": cfg.name} for cfg in configs]
            _print_json(data)
            return

        if args.config_command == "save":
            data = _load_json_file(args.file)
            record = persistence.save_configuration(args.name, "site", data)
            print(f"Configuration '{record.name}' saved with ID {record.id}.")
            return

        if args.config_command == "run":
            config_id = args.id
            if config_id is None:
                record = persistence.get_configuration_by_name(args.name)
                if record is None:
                    raise SystemExit(f"Configuration not found (name '{args.name}').")
                config_id = record.id
            options: dict[str, Any] = {}
            if args.kind == "monte_carlo":
                options = {"iterations": args.iterations, "seed": args.seed}
            try:
                summary = app.run_saved_configuration(config_id, args.kind, **options)
            except LookupError as exc:
                raise SystemExit(str(exc)) from exc
            except ValueError as exc:
                raise SystemExit(f"Invalid site payload: {exc}") from exc
            _print_json(summary)
            return

        parser.error(f"Unknown config subcommand: {args.config_command}")

    parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
