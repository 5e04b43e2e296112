"""Tests for VOConfig."""

from pathlib import Path

import pytest

from monovo.camera import ConfigurationError
from monovo.config import VOConfig


class TestVOConfig:
    """Test suite for VOConfig."""

    def test_defaults(self):
        config = VOConfig()

        assert config.pool_size == 5
        assert config.min_matches == 20
        assert config.ratio_threshold == 0.75
        assert config.max_steps is None
        assert config.camera_matrix_path is None

    def test_from_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "pool_size: 3\n"
            "min_matches: 50\n"
            "n_features: 1000\n"
            "max_steps: 10\n"
            "visualize: false\n"
        )

        config = VOConfig.from_yaml(path)

        assert config.pool_size == 3
        assert config.min_matches == 50
        assert config.n_features == 1000
        assert config.max_steps == 10
        assert config.visualize is False
        assert config.ratio_threshold == 0.75

    def test_relative_paths_resolve_against_config_dir(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "camera_matrix_path: calib/K.txt\n"
            "video_path: /data/drive.mp4\n"
        )

        config = VOConfig.from_yaml(path)

        assert Path(config.camera_matrix_path) == tmp_path / "calib" / "K.txt"
        assert config.video_path == "/data/drive.mp4"

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert VOConfig.from_yaml(path) == VOConfig()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            VOConfig.from_yaml(tmp_path / "missing.yaml")

    def test_unknown_keys(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("pool_size: 3\nwindow: 7\n")

        with pytest.raises(ConfigurationError, match="Unknown config keys.*window"):
            VOConfig.from_yaml(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            VOConfig.from_yaml(path)

    def test_wrong_type(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("pool_size: five\n")

        with pytest.raises(ConfigurationError):
            VOConfig.from_yaml(path)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"pool_size": 0},
            {"min_matches": 0},
            {"ratio_threshold": 0.0},
            {"ratio_threshold": 1.5},
            {"n_features": 0},
            {"ransac_prob": 1.0},
            {"ransac_threshold": -1.0},
            {"max_steps": -1},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigurationError):
            VOConfig(**overrides)

    def test_to_dict(self):
        data = VOConfig(pool_size=2).to_dict()
        assert data["pool_size"] == 2
        assert VOConfig(**data) == VOConfig(pool_size=2)
