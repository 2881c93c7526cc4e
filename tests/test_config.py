"""
Tests for the configuration module.
"""

import pytest

from cascade_detect.config import (
    AppConfig,
    CascadeParams,
    DetectionConfig,
    ModelConfig,
    OutputConfig,
    load_config,
    validate_config,
)


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.model.backend == "auto"
    assert config.model.face_cascade == "haarcascade_frontalface_alt.xml"
    assert config.model.eye_cascade == "haarcascade_eye.xml"
    assert config.detection.face.scale_factor == 1.1
    assert config.detection.face.min_neighbors == 10
    assert config.detection.eye.min_size == (20, 20)
    assert config.preprocess.equalize_hist is True


def test_validation_failure():
    """Test fail-fast validation."""
    bad_config = AppConfig(
        detection=DetectionConfig(face=CascadeParams(scale_factor=1.0))
    )
    with pytest.raises(ValueError, match="scale_factor"):
        validate_config(bad_config)

    bad_config = AppConfig(
        detection=DetectionConfig(eye=CascadeParams(min_neighbors=-1))
    )
    with pytest.raises(ValueError, match="min_neighbors"):
        validate_config(bad_config)

    bad_config = AppConfig(model=ModelConfig(backend="invalid"))
    with pytest.raises(ValueError, match="backend"):
        validate_config(bad_config)

    bad_config = AppConfig(output=OutputConfig(mode="display,save_video"))
    with pytest.raises(ValueError, match="output.mode"):
        validate_config(bad_config)


def test_yaml_config(tmp_path):
    """Nested YAML sections map onto the typed configs."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "model:\n"
        "  backend: CPU\n"
        "detection:\n"
        "  eye:\n"
        "    scale_factor: 1.2\n"
        "    min_neighbors: 3\n"
        "    min_size: [12, 8]\n"
        "preprocess:\n"
        "  equalize_hist: false\n"
        "visualization:\n"
        "  eye_color: [0, 255, 0]\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert config.model.backend == "cpu"
    assert config.detection.eye == CascadeParams(scale_factor=1.2, min_neighbors=3, min_size=(12, 8))
    assert config.detection.face == CascadeParams()
    assert config.preprocess.equalize_hist is False
    assert config.visualization.eye_color == (0, 255, 0)


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("CASCADE_DETECT_DETECTION_FACE_MIN_NEIGHBORS", "4")
    monkeypatch.setenv("CASCADE_DETECT_MODEL_BACKEND", "cuda")
    monkeypatch.setenv("CASCADE_DETECT_PREPROCESS_EQUALIZE_HIST", "false")

    config = load_config(None)

    assert config.detection.face.min_neighbors == 4
    assert config.detection.eye.min_neighbors == 10
    assert config.model.backend == "cuda"
    assert config.preprocess.equalize_hist is False
