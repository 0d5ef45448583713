from __future__ import annotations

import json

import pandas as pd
import pytest

from solar_site_sim.cli import build_argument_parser, main


def test_parser_accepts_saved_configuration_run():
    args = build_argument_parser().parse_args(["config", "run", "--id", "3", "--kind", "monte_carlo", "--seed", "4"])

    assert args.id == 3
    assert args.kind == "monte_carlo"
    assert args.seed == 4


def test_parser_rejects_unknown_tariff_code():
    with pytest.raises(SystemExit):
        build_argument_parser().parse_args(
            ["tariff", "cost", "--code", "Z", "--peak-kw", "10", "--annual-kwh", "1000"]
        )


def test_tariff_detect_prints_json(capsys):
    main(["tariff", "detect", "--peak-kw", "120", "--annual-kwh", "400000"])

    data = json.loads(capsys.readouterr().out)
    assert data["detected_tariff"] == "M"


def test_tariff_cost_prints_json(capsys):
    main(["tariff", "cost", "--code", "G", "--peak-kw", "40", "--annual-kwh", "60000", "--single-phase"])

    data = json.loads(capsys.readouterr().out)
    assert data["tariff_code"] == "G"
    assert len(data["monthly_breakdown"]) == 12


def test_profile_writes_csv(tmp_path, capsys):
    output = tmp_path / "profile.csv"

    main(["profile", "--archetype", "retail", "--annual-kwh", "300000", "--output", str(output)])

    data = json.loads(capsys.readouterr().out)
    assert data["output"] == str(output)
    assert "readings" not in data
    frame = pd.read_csv(output)
    assert len(frame) == 8760
    assert list(frame.columns) == ["timestamp", "kwh", "kw"]
