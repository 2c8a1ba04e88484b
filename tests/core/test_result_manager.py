"""Tests for ResultManager and run persistence."""

from __future__ import annotations

import os

import numpy as np
import pytest

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.schemes import RunResult
from cryst_pbm.core.utils import ResultManager, load_run, save_run


def _variable_grid_result():
    return RunResult(
        times=np.array([0.0, 1.0]),
        distributions=(
            Distribution([0.0, 1.0, 2.0], [0.0, 1.0, 0.5]),
            Distribution([0.5, 1.5, 2.5, 3.0], [0.2, 0.0, 1.0, 0.5]),
        ),
        concentrations=np.array([0.1, 0.09]),
        medium_mass=np.array([1000.0, 1000.0]),
        scheme="moving-pivot",
    )


def test_directories_created(tmp_path):
    rm = ResultManager("crystallization", "test_case", base_dir=str(tmp_path), timestamp="20240101_000000")
    assert os.path.isdir(rm.save_dir)
    assert os.path.isdir(os.path.join(rm.save_dir, "plots"))
    assert rm.get_plot_path("a.png").endswith(os.path.join("plots", "a.png"))


def test_save_run_numbers_files_without_overwriting(tmp_path):
    result = _variable_grid_result()
    first = save_run(result, str(tmp_path))
    second = save_run(result, str(tmp_path))
    assert os.path.basename(first) == "kitten_no1.npz"
    assert os.path.basename(second) == "kitten_no2.npz"


def test_run_round_trip_keeps_variable_grids(tmp_path):
    result = _variable_grid_result()
    path = save_run(result, str(tmp_path), name="mp", metadata={"rhoc": 1e-12})
    loaded = load_run(path)

    assert loaded.scheme == "moving-pivot"
    np.testing.assert_allclose(loaded.times, result.times)
    np.testing.assert_allclose(loaded.concentrations, result.concentrations)
    assert [len(d) for d in loaded.distributions] == [3, 4]
    np.testing.assert_allclose(loaded.distributions[1].grid, [0.5, 1.5, 2.5, 3.0])
    assert loaded.diagnostics["metadata"] == {"rhoc": 1e-12}


def test_load_run_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_run(str(tmp_path / "nothing.npz"))


def test_metadata_and_diagnostics(tmp_path):
    rm = ResultManager("crystallization", "case", base_dir=str(tmp_path))
    rm.save_metadata({"sol_method": "hr", "sol_time": np.array([0.0, 1.0])}, {"error": 0.1})
    meta = rm.load_metadata()
    assert meta["config"]["sol_time"] == [0.0, 1.0]
    assert meta["metrics"]["error"] == 0.1

    rm.save_diagnostics({"times": [1.0, 2.0], "nfev": [10, 12]})
    diag = rm.load_diagnostics()
    np.testing.assert_array_equal(diag["nfev"], [10, 12])

    rm.save_run(_variable_grid_result(), name="case")
    files = rm.list_saved_files()
    assert "case_no1.npz" in files and "metadata.json" in files


def test_list_all_runs_newest_first(tmp_path):
    for stamp in ("20240101_000000", "20240102_000000"):
        ResultManager("crystallization", "case", base_dir=str(tmp_path), timestamp=stamp)
    runs = ResultManager.list_all_runs("crystallization", "case", base_dir=str(tmp_path))
    assert runs == ["20240102_000000", "20240101_000000"]
    assert ResultManager.list_all_runs("crystallization", "other", base_dir=str(tmp_path)) == []


def test_missing_metadata_raises(tmp_path):
    rm = ResultManager("crystallization", "case", base_dir=str(tmp_path))
    with pytest.raises(FileNotFoundError):
        rm.load_metadata()
