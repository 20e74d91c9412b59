"""
Tests for configuration loading and validation.
"""

import sys
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

sys.path.append(str(Path(__file__).parent.parent / "src"))

from gradsmooth.exceptions import ConfigurationError
from gradsmooth.utils.config import AppConfig, SmoothingConfig, load_config

CONFIG_DIR = Path(__file__).parent.parent / "config"


def test_defaults_match_command_line_tool():
    cfg = SmoothingConfig()
    assert cfg.num_neighbors == 5
    assert cfg.codimension == 1
    assert cfg.iterations == 10
    assert cfg.step_size_normal == pytest.approx(0.10)
    assert cfg.step_size_tangent == 0.0
    assert cfg.normal_projection is False
    assert cfg.lock_neighbors is False
    assert cfg.num_threads == 1
    assert cfg.max_leaf_size == 10
    assert cfg.index_backend == "kd_tree"
    assert cfg.dimension is None


def test_default_yaml_loads():
    cfg = load_config(CONFIG_DIR / "default.yaml")
    assert isinstance(cfg, AppConfig)
    assert cfg.smoothing == SmoothingConfig()
    assert cfg.paths.input is None
    assert cfg.logging.level == "INFO"


def test_load_without_path_uses_repo_default():
    cfg = load_config()
    assert cfg.smoothing.num_neighbors == 5


def test_profile_loads():
    cfg = load_config(CONFIG_DIR / "profiles" / "denoise_locked.yaml")
    assert cfg.smoothing.num_neighbors == 10
    assert cfg.smoothing.lock_neighbors is True
    assert cfg.smoothing.normal_projection is True
    assert cfg.smoothing.num_threads == 4


def test_missing_file(tmp_path):
    missing = tmp_path / "nope.yaml"
    assert load_config(missing) == AppConfig()
    with pytest.raises(FileNotFoundError):
        load_config(missing, allow_missing=False)


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == AppConfig()


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("smoothing:\n  num_neighbours: 8\n")
    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_config(path)


def test_invalid_value_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("smoothing:\n  num_neighbors: 0\n")
    with pytest.raises(ConfigurationError, match="num_neighbors"):
        load_config(path)


def test_malformed_yaml_rejected(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("smoothing: [unclosed\n")
    with pytest.raises(ConfigurationError, match="Could not parse YAML") as excinfo:
        load_config(path)
    assert isinstance(excinfo.value.__cause__, yaml.YAMLError)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_config(path)


def test_config_is_frozen():
    cfg = SmoothingConfig()
    with pytest.raises(ValidationError):
        cfg.num_neighbors = 7


class TestCheck:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"num_neighbors": 0},
            {"codimension": 0},
            {"dimension": 3, "codimension": 3},
            {"iterations": -1},
            {"num_threads": 0},
            {"max_leaf_size": 0},
            {"step_size_normal": float("nan")},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            SmoothingConfig(**kwargs).check()

    def test_valid(self):
        SmoothingConfig(dimension=3, codimension=2, iterations=0).check()

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SmoothingConfig(num_neighbors=-1).check()


class TestValidateFor:
    def test_resolves_dimension(self):
        assert SmoothingConfig().validate_for(100, 4) == 4

    def test_k_must_be_smaller_than_n(self):
        with pytest.raises(ConfigurationError, match="num_neighbors"):
            SmoothingConfig(num_neighbors=10).validate_for(10, 3)

    def test_codimension_must_be_smaller_than_d(self):
        with pytest.raises(ConfigurationError, match="codimension"):
            SmoothingConfig(codimension=3).validate_for(100, 3)

    def test_dimension_must_match(self):
        with pytest.raises(ConfigurationError, match="does not match"):
            SmoothingConfig(dimension=2).validate_for(100, 3)


class TestOverrides:
    def test_none_values_ignored(self):
        cfg = SmoothingConfig(num_neighbors=8)
        assert cfg.with_overrides(num_neighbors=None, iterations=None) is cfg

    def test_values_replaced(self):
        cfg = SmoothingConfig().with_overrides(num_neighbors=12, lock_neighbors=True, index_backend="brute")
        assert cfg.num_neighbors == 12
        assert cfg.lock_neighbors is True
        assert cfg.index_backend == "brute"
        assert cfg.iterations == 10

    def test_invalid_override(self):
        with pytest.raises(ConfigurationError):
            SmoothingConfig().with_overrides(index_backend="octree")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
