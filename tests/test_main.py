"""
Tests for the CLI wiring that does not need a model or a display.
"""

import pytest

import main
from yolov4_detector.config import AppConfig, ModelConfig, StorageConfig
from yolov4_detector.model_store import ModelStore


def test_cli_overrides_are_validated():
    args = main.parse_args(["--confidence", "0.7", "--nms", "0.3", "--source", "clip.mp4"])

    config = main.apply_cli_overrides(AppConfig(), args)

    assert config.detection.confidence_threshold == 0.7
    assert config.detection.nms_threshold == 0.3
    assert config.input.source == "clip.mp4"

    with pytest.raises(ValueError):
        main.apply_cli_overrides(AppConfig(), main.parse_args(["--nms", "2"]))


def test_configure_model_uses_store_selection(tmp_path, model_files):
    store = ModelStore(tmp_path / "models")
    model = store.import_model("tiny", *model_files)
    config = AppConfig(storage=StorageConfig(selected_model_id=model.id))

    configured = main.configure_model(config, store)

    assert configured.model.weights_path == str(store.get_model_paths(model)[0])
    assert store.selected_model_id == model.id


def test_configure_model_keeps_explicit_paths(tmp_path, model_files):
    weights, cfg, names = model_files
    config = AppConfig(model=ModelConfig(
        weights_path=str(weights), config_path=str(cfg), names_path=str(names),
    ))

    assert main.configure_model(config, ModelStore(tmp_path / "models")) is config


def test_import_and_list_models(tmp_path, model_files, monkeypatch, capsys):
    weights, cfg, names = model_files
    monkeypatch.setenv("YOLO_DETECT_STORAGE_MODELS_DIR", str(tmp_path / "models"))

    assert main.main([
        "--import-model", "tiny", "--weights", str(weights),
        "--cfg", str(cfg), "--names", str(names),
    ]) == 0
    model_id = capsys.readouterr().out.strip()

    assert main.main(["--list-models"]) == 0
    listing = capsys.readouterr().out
    assert "yolov4-tiny-coco [built-in]" in listing
    assert model_id in listing

    assert main.main(["--delete-model", model_id]) == 0
    assert main.main(["--delete-model", model_id]) == 1


def test_import_requires_all_files(tmp_path, monkeypatch):
    monkeypatch.setenv("YOLO_DETECT_STORAGE_MODELS_DIR", str(tmp_path / "models"))
    assert main.main(["--import-model", "tiny", "--weights", "a.weights"]) == 1


def test_missing_model_files_fail_initialization(tmp_path, monkeypatch):
    monkeypatch.setenv("YOLO_DETECT_STORAGE_MODELS_DIR", str(tmp_path / "models"))
    assert main.main(["--source", str(tmp_path)]) == 1


def test_list_models_survives_malformed_metadata(tmp_path, monkeypatch, capsys):
    metadata = tmp_path / "models" / "custom" / "models.json"
    metadata.parent.mkdir(parents=True)
    metadata.write_text('{"models": [{"id": "abc"}]}', encoding="utf-8")
    monkeypatch.setenv("YOLO_DETECT_STORAGE_MODELS_DIR", str(tmp_path / "models"))

    assert main.main(["--list-models"]) == 0
    assert "yolov4-tiny-coco [built-in]" in capsys.readouterr().out
