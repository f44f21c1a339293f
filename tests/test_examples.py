"""Smoke tests running the example scripts in-process with --test-mode."""

import csv
import json
import runpy
import sys
from pathlib import Path

import pytest

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _run(script, argv, monkeypatch):
    monkeypatch.setattr(sys, "argv", [str(script)] + argv)
    runpy.run_path(str(script), run_name="__main__")


def test_estimate_pi_aggregate(tmp_path, monkeypatch, restore_root_logger):
    out = tmp_path / "estimate"
    _run(
        EXAMPLES / "01_estimate" / "estimate_pi.py",
        ["--test-mode", "--executor", "thread", "--workers", "2", "--output-dir", str(out)],
        monkeypatch,
    )
    data = json.loads((out / "results.json").read_text())
    assert data["config"]["batches"] == 4
    (run,) = data["runs"]
    assert run["total_samples"] == 40_000
    assert 2.9 < run["estimate"] < 3.4
    assert (out / "estimate.log").exists()


def test_estimate_pi_single(tmp_path, monkeypatch, restore_root_logger):
    out = tmp_path / "single"
    _run(
        EXAMPLES / "01_estimate" / "estimate_pi.py",
        ["-n", "5000", "-j", "1", "--radius", "2", "--output-dir", str(out)],
        monkeypatch,
    )
    (run,) = json.loads((out / "results.json").read_text())["runs"]
    assert run["total_samples"] == 5_000
    assert 0.0 <= run["estimate"] <= 16.0


def test_convergence_script(tmp_path, monkeypatch, restore_root_logger):
    out = tmp_path / "conv"
    _run(EXAMPLES / "02_convergence" / "convergence.py", ["--test-mode", "--output-dir", str(out)], monkeypatch)
    with (out / "convergence.csv").open() as handle:
        rows = list(csv.DictReader(handle))
    assert [int(r["n"]) for r in rows] == [100, 1_000, 10_000]
    summary = json.loads((out / "results.json").read_text())["summary"]
    assert summary["expected_ratio"] == pytest.approx(10.0)


def test_scaling_script(tmp_path, monkeypatch, restore_root_logger):
    out = tmp_path / "scaling"
    _run(
        EXAMPLES / "03_scaling" / "scaling.py",
        ["--test-mode", "--executor", "thread", "--output-dir", str(out)],
        monkeypatch,
    )
    with (out / "scaling.csv").open() as handle:
        rows = list(csv.DictReader(handle))
    assert [int(r["workers"]) for r in rows] == [1, 2]
    assert (out / "scaling_fitted_p.txt").exists()


def test_plot_scripts(tmp_path, monkeypatch, restore_root_logger):
    out = tmp_path / "plots"
    _run(EXAMPLES / "02_convergence" / "convergence.py", ["--test-mode", "--output-dir", str(out)], monkeypatch)
    _run(
        EXAMPLES / "02_convergence" / "plot_convergence.py",
        [str(out / "convergence.csv"), "--out", str(out / "convergence.png")],
        monkeypatch,
    )
    _run(
        EXAMPLES / "03_scaling" / "scaling.py",
        ["--test-mode", "--executor", "serial", "--output-dir", str(out)],
        monkeypatch,
    )
    _run(
        EXAMPLES / "03_scaling" / "plot_scaling.py",
        [str(out / "scaling.csv"), "--out", str(out / "scaling.png")],
        monkeypatch,
    )
    assert (out / "convergence.png").stat().st_size > 0
    assert (out / "scaling.png").stat().st_size > 0


def test_distributed_single_process(tmp_path, monkeypatch, restore_root_logger):
    for var in ("RANK", "WORLD_SIZE", "LOCAL_RANK", "SLURM_PROCID", "SLURM_NTASKS"):
        monkeypatch.delenv(var, raising=False)
    out = tmp_path / "dist"
    _run(
        EXAMPLES / "04_distributed" / "pi_distributed.py",
        ["--test-mode", "--output-dir", str(out)],
        monkeypatch,
    )
    (line,) = (out / "results.jsonl").read_text().splitlines()
    record = json.loads(line)
    assert record["world_size"] == 1
    assert record["samples"] == 10_000
    assert (out / "pi_rank0.log").exists()
