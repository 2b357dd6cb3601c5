"""Tests for configuration defaults, environment setup and YAML schemas."""
import logging

import numpy as np
import pytest
from pydantic import ValidationError

from vecroot.config import ConfigDict, get_config, get_default_config, init_environment, solver_settings
from vecroot.core.config import (
    AppConfig,
    ConfigValidationError,
    SolverSettings,
    collect_and_validate,
    discover_config_files,
    load_config,
    load_solver_settings,
)
from vecroot.solver.newton import BroydenVectorRootFinder, ShermanMorrisonVectorRootFinder, create_root_finder


class TestDefaults:
    def test_default_config_mirrors_solver_settings(self):
        cfg = get_default_config()
        assert isinstance(cfg, ConfigDict)
        assert cfg.jax.enable_x64 is True
        assert cfg.solver.absolute_tolerance == SolverSettings().absolute_tolerance
        assert solver_settings(cfg) == SolverSettings()

    def test_overrides_are_merged(self):
        cfg = get_config({"seed": 7, "solver": {"max_iterations": 12, "updater": "sherman_morrison"}})
        assert cfg.seed == 7
        assert cfg.solver.max_iterations == 12
        assert cfg.solver.norm == "euclidean"

        finder = create_root_finder(solver_settings(cfg))
        assert isinstance(finder, ShermanMorrisonVectorRootFinder)
        assert finder.max_iterations == 12

    def test_invalid_solver_section(self):
        cfg = get_config({"solver": {"absolute_tolerance": -1.0}})
        with pytest.raises(ValidationError):
            solver_settings(cfg)

    def test_init_environment(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

        cfg = init_environment({"seed": 3, "logging": {"level": "debug"}})

        assert cfg.runtime.seed == 3
        assert calls["level"] == logging.DEBUG
        first = np.random.rand()
        init_environment({"seed": 3})
        assert np.random.rand() == first


class TestSolverSettings:
    def test_defaults(self):
        settings = SolverSettings()
        assert settings.absolute_tolerance == 1e-9
        assert settings.max_iterations == 100
        assert settings.updater == "broyden"
        assert settings.decomposition == "lu"

    def test_choices_are_normalised(self):
        settings = SolverSettings(updater="Sherman-Morrison", norm="MAX_ABS", decomposition="SV")
        assert settings.updater == "sherman_morrison"
        assert settings.norm == "max_abs"
        assert settings.decomposition == "sv"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"absolute_tolerance": 0.0},
            {"max_iterations": 0},
            {"updater": "newton"},
            {"jacobian_refresh_interval": 0},
            {"unknown": 1},
            {"updater": "exact", "jacobian_refresh_interval": 3},
        ],
    )
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            SolverSettings(**kwargs)


class TestYamlLoading:
    def test_load_config(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text(
            "seed: 5\n"
            "solver:\n"
            "  absolute_tolerance: 1.0e-10\n"
            "  norm: max_abs\n"
            "  finite_difference:\n"
            "    scheme: central\n"
            "calibration:\n"
            "  recovery: 0.35\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert isinstance(config, AppConfig)
        assert config.seed == 5
        assert config.solver.finite_difference.scheme == "central"
        assert config.calibration.recovery == 0.35

        finder = create_root_finder(config.solver)
        assert isinstance(finder, BroydenVectorRootFinder)
        assert finder.absolute_tolerance == 1e-10

    def test_load_solver_settings(self, tmp_path):
        path = tmp_path / "solver.yml"
        path.write_text("max_iterations: 25\nline_search: true\n", encoding="utf-8")
        settings = load_solver_settings(path)
        assert settings.max_iterations == 25
        assert settings.line_search is True

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)

    def test_collect_and_validate(self, tmp_path):
        (tmp_path / "nested").mkdir()
        (tmp_path / "good.yaml").write_text("seed: 1\n", encoding="utf-8")
        (tmp_path / "nested" / "other.yml").write_text("seed: 2\n", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("ignored\n", encoding="utf-8")

        assert len(discover_config_files([tmp_path, tmp_path / "good.yaml"])) == 2
        configs = collect_and_validate([tmp_path])
        assert sorted(config.seed for config in configs) == [1, 2]

        (tmp_path / "broken.yaml").write_text("solver:\n  max_iterations: 0\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError) as excinfo:
            collect_and_validate([tmp_path])
        assert len(excinfo.value.errors) == 1
