"""Tests for YAML configuration loading and translation."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import yaml

from cryst_pbm.core.errors import ConfigurationError
from cryst_pbm.core.utils import config_loader as cl


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(content))
    return str(path)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        cl.load_config(str(tmp_path / "missing.yaml"))


def test_load_config_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    with pytest.raises(ConfigurationError):
        cl.load_config(str(path))


def test_load_config_missing_required_field(tmp_path):
    path = _write(tmp_path, "c.yaml", {"problem_type": "crystallization"})
    with pytest.raises(ConfigurationError, match="case_name"):
        cl.load_config(path)


def test_nested_values_and_merge():
    config = {"process": {"rhoc": 1e-12}}
    assert cl.get_config_value(config, "process.rhoc") == 1e-12
    assert cl.get_config_value(config, "process.kv", default=1.0) == 1.0

    merged = cl.merge_configs({"solver": {"sol_method": "cd", "sol_time": 100}},
                              {"solver": {"sol_method": "mp"}})
    assert merged["solver"] == {"sol_method": "mp", "sol_time": 100}


def test_save_config_refuses_overwrite(tmp_path):
    path = str(tmp_path / "out" / "c.yaml")
    cl.save_config({"a": 1}, path)
    with pytest.raises(FileExistsError):
        cl.save_config({"a": 2}, path)
    cl.save_config({"a": 2}, path, overwrite=True)
    assert cl.load_config(path, validate=False) == {"a": 2}


def test_load_case_config_merges_defaults(tmp_path):
    _write(tmp_path, "cooling_config.yaml", {
        "problem_type": "crystallization",
        "case_name": "cooling",
        "process": {"rhoc": "1e-12", "temperature": [[0, 100], [40, 20]]},
        "solver": {"sol_method": "hr"},
    })
    config = cl.load_case_config("cooling", config_dir=str(tmp_path))
    assert config["solver"]["sol_method"] == "hr"
    assert config["solver"]["sol_time"] == [0.0, 100.0]
    assert config["process"]["kv"] == 1.0


def test_shipped_cooling_config_builds_crystallizer():
    from cryst_pbm import Crystallizer

    config_dir = Path(__file__).resolve().parents[2] / "configs" / "crystallization"
    config = cl.load_case_config("cooling", config_dir=str(config_dir))
    cryst = Crystallizer.from_config(config)

    assert cryst.sol_method == "high-resolution"
    assert cryst.init_conc == "sat"
    assert cryst.temperature_profile(25.0) == pytest.approx(32.5)
    assert cryst.sol_time.size == 11


def test_invalid_crystallization_config():
    config = cl.get_default_crystallization_config()
    config["process"]["rhoc"] = -1.0
    with pytest.raises(ConfigurationError, match="rhoc"):
        cl.validate_crystallization_config(config)

    config = cl.get_default_crystallization_config()
    config["solver"]["sol_time"] = [0.0, 5.0, 5.0]
    with pytest.raises(ConfigurationError, match="increasing"):
        cl.validate_crystallization_config(config)

    config = cl.get_default_crystallization_config()
    config["output"]["plot_dpi"] = 0
    with pytest.raises(ConfigurationError, match="plot_dpi"):
        cl.validate_crystallization_config(config)

    config = cl.get_default_crystallization_config()
    config["problem_type"] = "breakage"
    with pytest.raises(ConfigurationError):
        cl.validate_crystallization_config(config)


def test_build_distribution_kinds():
    dist = cl.build_distribution({
        "grid": {"start": 0.0, "stop": 2.0, "num": 50},
        "density": {"kind": "normal", "mean": 1.0, "std": 0.1, "total": 3.0},
    })
    assert len(dist) == 50
    assert dist.value_at().max() == pytest.approx(3.0 / (0.1 * np.sqrt(2 * np.pi)), rel=5e-2)

    values = cl.build_distribution({"grid": [0.0, 1.0, 2.0], "density": {"kind": "values", "values": [0, 1, 0]}})
    np.testing.assert_array_equal(values.value_at(), [0.0, 1.0, 0.0])

    with pytest.raises(ConfigurationError, match="Unsupported density kind"):
        cl.build_distribution({"density": {"kind": "weibull"}})


def test_crystallizer_properties_translation():
    config = cl.get_default_crystallization_config()
    config["solver"]["sol_time"] = {"start": 0.0, "stop": 10.0, "num": 11}
    config["process"]["rhoc"] = "2e-12"
    props = cl.crystallizer_properties(config)

    assert list(props)[0] == "init_dist"
    np.testing.assert_allclose(props["sol_time"], np.linspace(0.0, 10.0, 11))
    assert props["rhoc"] == 2e-12
    assert props["temperature_profile"] == 25.0
    assert props["sol_options"]["method"] == "BDF"
    assert props["sol_method"] == "central-difference"
