"""
Tests for the configuration module.
"""

import pytest

from yolov4_detector.config import (
    AppConfig,
    DetectionConfig,
    ModelConfig,
    OutputConfig,
    _validate,
    load_config,
    parse_output_modes,
)


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.model.backend == "cpu"
    assert config.model.input_size is None
    assert config.detection.confidence_threshold == 0.25
    assert config.detection.nms_threshold == 0.45


def test_validation_failure():
    """Test fail-fast validation."""
    with pytest.raises(ValueError, match="confidence_threshold"):
        _validate(AppConfig(detection=DetectionConfig(confidence_threshold=1.5)))

    with pytest.raises(ValueError, match="nms_threshold"):
        _validate(AppConfig(detection=DetectionConfig(nms_threshold=-0.1)))

    with pytest.raises(ValueError, match="backend"):
        _validate(AppConfig(model=ModelConfig(backend="invalid")))

    with pytest.raises(ValueError, match="input_size"):
        _validate(AppConfig(model=ModelConfig(input_size=(416, 0))))

    with pytest.raises(ValueError, match="output.mode"):
        _validate(AppConfig(output=OutputConfig(mode="display,hologram")))


def test_output_modes_are_split_and_trimmed():
    assert parse_output_modes("display, save_json ,") == {"display", "save_json"}


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("YOLO_DETECT_DETECTION_CONFIDENCE_THRESHOLD", "0.6")
    monkeypatch.setenv("YOLO_DETECT_DETECTION_NMS_THRESHOLD", "0.3")
    monkeypatch.setenv("YOLO_DETECT_MODEL_BACKEND", "cuda")
    monkeypatch.setenv("YOLO_DETECT_INPUT_ROTATE_LANDSCAPE", "true")

    config = load_config(None)

    assert config.detection.confidence_threshold == 0.6
    assert config.detection.nms_threshold == 0.3
    assert config.model.backend == "cuda"
    assert config.input.rotate_landscape is True


def test_yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "model:\n"
        "  input_size: [320, 256]\n"
        "detection:\n"
        "  confidence_threshold: 0.4\n"
        "output:\n"
        "  mode: save_json,save_csv\n"
        "storage:\n"
        "  selected_model_id: abc\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert config.model.input_size == (320, 256)
    assert config.detection.confidence_threshold == 0.4
    assert config.output.mode == "save_json,save_csv"
    assert config.storage.selected_model_id == "abc"


def test_missing_yaml_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))
