"""
Tests for the model store.
"""

import json

import pytest

from yolov4_detector.model_files import ModelValidationError
from yolov4_detector.model_store import BUILT_IN_MODEL_ID, ModelStore, YOLOModel


@pytest.fixture
def store(tmp_path):
    built_in = tmp_path / "models" / "yolov4-tiny-coco"
    built_in.mkdir(parents=True)
    (built_in / "coco.names").write_text("person\nbicycle\n", encoding="utf-8")
    return ModelStore(tmp_path / "models")


def test_built_in_model_always_listed_first(store):
    models = store.load_models()

    assert len(models) == 1
    built_in = models[0]
    assert built_in.id == BUILT_IN_MODEL_ID
    assert built_in.is_built_in
    assert built_in.input_size_description == "416x416"
    assert built_in.class_names == ["person", "bicycle"]


def test_default_selection_is_built_in(store):
    assert store.selected_model_id == BUILT_IN_MODEL_ID
    assert store.resolve_selected().is_built_in


def test_import_model_copies_files_and_metadata(store, model_files):
    weights, cfg, names = model_files

    model = store.import_model("tiny", weights, cfg, names)

    assert model.name == "tiny"
    assert (model.input_width, model.input_height) == (416, 416)
    assert model.class_count == 3
    assert not model.is_built_in

    paths = store.get_model_paths(model)
    assert [p.name for p in paths] == ["tiny.weights", "tiny.cfg", "tiny.names"]
    assert all(p.is_file() for p in paths)
    assert paths[0].read_bytes() == weights.read_bytes()

    reloaded = ModelStore(store.models_dir).load_models()
    assert [m.id for m in reloaded] == [BUILT_IN_MODEL_ID, model.id]


def test_import_rejects_invalid_files(store, model_files, tmp_path):
    weights, cfg, _ = model_files
    empty_names = tmp_path / "empty.names"
    empty_names.write_text("\n" * 20, encoding="utf-8")

    with pytest.raises(ModelValidationError):
        store.import_model("bad", weights, cfg, empty_names)

    assert len(store.load_models()) == 1


def test_import_missing_file(store, model_files, tmp_path):
    weights, cfg, _ = model_files
    with pytest.raises(FileNotFoundError):
        store.import_model("bad", weights, cfg, tmp_path / "nope.names")


def test_select_and_resolve(store, model_files):
    model = store.import_model("tiny", *model_files)

    store.selected_model_id = model.id

    assert store.resolve_selected().id == model.id
    assert ModelStore(store.models_dir).selected_model_id == model.id


def test_legacy_id_maps_to_built_in(store):
    assert store.resolve_selected("yolov4-tiny-coco").is_built_in


def test_unknown_id_falls_back_and_rewrites_selection(store):
    store.selected_model_id = "does-not-exist"

    model = store.resolve_selected()

    assert model.is_built_in
    assert store.selected_model_id == BUILT_IN_MODEL_ID


def test_delete_model_resets_selection(store, model_files):
    model = store.import_model("tiny", *model_files)
    store.selected_model_id = model.id
    model_dir = store.get_model_paths(model)[0].parent

    store.delete_model(model)

    assert not model_dir.exists()
    assert [m.id for m in store.load_models()] == [BUILT_IN_MODEL_ID]
    assert store.selected_model_id == BUILT_IN_MODEL_ID


def test_built_in_cannot_be_deleted(store):
    store.delete_model(store.built_in_model())
    assert store.load_models()[0].is_built_in


def test_corrupt_metadata_is_ignored(store):
    metadata = store.models_dir / "custom" / "models.json"
    metadata.parent.mkdir(parents=True)
    metadata.write_text("{not json", encoding="utf-8")

    assert len(store.load_models()) == 1


@pytest.mark.parametrize("metadata", [
    {"models": [{"id": "abc"}]},
    {"models": {"id": "abc"}},
    {"models": ["abc", {"id": "x", "input_width": "wide"}]},
])
def test_malformed_model_entries_are_skipped(store, model_files, metadata):
    path = store.models_dir / "custom" / "models.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps(metadata), encoding="utf-8")

    assert [m.id for m in store.load_models()] == [BUILT_IN_MODEL_ID]
    assert store.resolve_selected().is_built_in

    model = store.import_model("tiny", *model_files)
    assert [m.id for m in store.load_models()] == [BUILT_IN_MODEL_ID, model.id]


def test_import_rejects_duplicate_file_names(store, model_files, tmp_path):
    weights, cfg, names = model_files
    other = tmp_path / "other"
    other.mkdir()
    clashing_cfg = other / weights.name
    clashing_cfg.write_bytes(cfg.read_bytes())

    with pytest.raises(ModelValidationError, match="distinct file names"):
        store.import_model("clash", weights, clashing_cfg, names)

    assert len(store.load_models()) == 1


def test_failed_import_removes_model_directory(store, model_files, monkeypatch):
    def fail_write(metadata):
        raise OSError("disk full")

    monkeypatch.setattr(store, "_write_metadata", fail_write)

    with pytest.raises(OSError, match="disk full"):
        store.import_model("tiny", *model_files)

    custom = store.models_dir / "custom"
    assert not custom.exists() or not any(p.is_dir() for p in custom.iterdir())


def test_model_dict_round_trip():
    model = YOLOModel(
        id="abc", name="", weights_file_name="w", config_file_name="c",
        names_file_name="n", input_width=608, input_height=608, class_count=1,
        class_names=["x"], date_imported="2024-01-01T00:00:00+00:00",
    )

    assert YOLOModel.from_dict(json.loads(json.dumps(model.to_dict()))) == model
    assert model.display_name == "Unnamed Model"
