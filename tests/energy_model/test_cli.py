from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from energy_model.cli import cli

_MODEL = """\
- [Horizon, SequentialHorizon, H, {NumPeriods: 2, Period: 3600000}]
- [Commodity, BaseCommodity, Power, {Horizon: H}]
- [Balance, BaseBalance, B, {Commodity: Power}]
- [Flow, BaseFlow, Gen, {}]
- [Arrow, BaseArrow, GenArrow, {Flow: Gen, Balance: B, Conversion: 1.0, Direction: In}]
- [Capacity, PositiveCapacity, GenCap, {WhichConcept: Flow, WhichInstance: Gen, Param: 10.0, Bound: Upper}]
- [Cost, CostTerm, GenCost, {WhichConcept: Flow, WhichInstance: Gen, Param: 5.0, Direction: In}]
- [Param, MWToGWhParam, Demand, {Param: 1000.0}]
- [RHSTerm, BaseRHSTerm, Demand, {Balance: B, Param: Demand, Direction: Out}]
"""


def _write_config(tmp_path: Path, model: str = _MODEL) -> Path:
    (tmp_path / "model.yaml").write_text(model)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "datasets:\n"
        "  - model.yaml\n"
        "simulation:\n"
        "  start: 2025-01-01T00:00:00\n"
        "  step_hours: 1\n"
    )
    return config_path


def _invoke(config_path: Path, *args: str) -> tuple[int, str]:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "--log-level", "WARNING", *args])
    return result.exit_code, result.stdout


def test_compile_prints_summary(tmp_path: Path) -> None:
    exit_code, output = _invoke(_write_config(tmp_path), "compile")

    assert exit_code == 0
    summary = json.loads(output)
    assert summary["elements"] == 9
    assert summary["objects"] == ["Balance:B", "Flow:Gen"]
    assert summary["concepts"] == {"Balance": 1, "Flow": 1}
    assert "dependencies" not in summary


def test_compile_with_dependencies(tmp_path: Path) -> None:
    exit_code, output = _invoke(_write_config(tmp_path), "compile", "--deps")

    assert exit_code == 0
    dependencies = json.loads(output)["dependencies"]
    # The commodity (index 1) depends on the horizon (index 0).
    assert dependencies["1"] == [0]


def test_check_reports_missing_references(tmp_path: Path) -> None:
    model = _MODEL.replace("Balance: B, Conversion", "Balance: Nowhere, Conversion")

    exit_code, output = _invoke(_write_config(tmp_path, model), "check")

    assert exit_code == 1
    assert "references missing instance 'Nowhere'" in output


def test_check_accepts_consistent_dataset(tmp_path: Path) -> None:
    exit_code, output = _invoke(_write_config(tmp_path), "check")

    assert exit_code == 0
    assert "9 data elements from 1 dataset(s) look consistent" in output


def test_simulate_prints_step_results(tmp_path: Path) -> None:
    exit_code, output = _invoke(_write_config(tmp_path), "simulate", "--steps", "2")

    assert exit_code == 0
    results = json.loads(output)
    assert [result["step"] for result in results] == [0, 1]
    assert [result["time"] for result in results] == ["2025-01-01T00:00:00", "2025-01-01T01:00:00"]
    for result in results:
        assert result["status"] == "Optimal"
        assert abs(result["objective"] - 10.0) < 1e-6


def test_missing_config_fails(tmp_path: Path) -> None:
    exit_code, _ = _invoke(tmp_path / "missing.yaml", "compile")

    assert exit_code == 1
