"""
Model store for built-in and imported YOLO models.

Responsibility:
    Keep track of the models available to the detector: the bundled
    yolov4-tiny COCO model plus any weights/cfg/names triples imported by
    the user. Persist their metadata and the current selection, and
    resolve a model to the three file paths the Detector needs.

Layout under models_dir:
    yolov4-tiny-coco/            bundled model files
    custom/models.json           metadata + selected model id
    custom/<model id>/           imported model files

Non-goals:
    - No downloading of model files.
    - No concurrent writers (single-process CLI).
"""

import json
import logging
import shutil
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple, Union

from yolov4_detector.model_files import (
    ModelValidationError,
    parse_names_file,
    validate_model_files,
)

logger = logging.getLogger(__name__)

BUILT_IN_MODEL_ID = "00000000-0000-0000-0000-000000000000"
BUILT_IN_MODEL_NAME = "yolov4-tiny-coco"

# Selection value written by early releases before models had ids
_LEGACY_BUILT_IN_ID = "yolov4-tiny-coco"

_BUILT_IN_WEIGHTS = "yolov4-tiny.weights"
_BUILT_IN_CONFIG = "yolov4-tiny.cfg"
_BUILT_IN_NAMES = "coco.names"

_METADATA_FILE = "models.json"


@dataclass(frozen=True)
class YOLOModel:
    """Metadata describing one stored model.

    Attributes:
        id: UUID string identifying the model.
        name: User-chosen name.
        weights_file_name: File name of the .weights file.
        config_file_name: File name of the .cfg file.
        names_file_name: File name of the .names file.
        input_width: Network input width read from the cfg.
        input_height: Network input height read from the cfg.
        class_count: Number of classes in the names file.
        class_names: Class-name table.
        date_imported: ISO-8601 UTC import timestamp.
    """

    id: str
    name: str
    weights_file_name: str
    config_file_name: str
    names_file_name: str
    input_width: int
    input_height: int
    class_count: int
    class_names: List[str] = field(default_factory=list)
    date_imported: str = ""

    @property
    def display_name(self) -> str:
        return self.name if self.name.strip() else "Unnamed Model"

    @property
    def input_size_description(self) -> str:
        return f"{self.input_width}x{self.input_height}"

    @property
    def is_built_in(self) -> bool:
        return self.id == BUILT_IN_MODEL_ID

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "YOLOModel":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            weights_file_name=str(data["weights_file_name"]),
            config_file_name=str(data["config_file_name"]),
            names_file_name=str(data["names_file_name"]),
            input_width=int(data["input_width"]),
            input_height=int(data["input_height"]),
            class_count=int(data.get("class_count", len(data.get("class_names", [])))),
            class_names=[str(n) for n in data.get("class_names", [])],
            date_imported=str(data.get("date_imported", "")),
        )


def _model_entries(metadata: dict) -> List[dict]:
    """Return the dict entries of the metadata "models" list."""
    entries = metadata.get("models", [])
    if not isinstance(entries, list):
        logger.error("Ignoring malformed models list in model metadata")
        return []
    return [entry for entry in entries if isinstance(entry, dict)]


class ModelStore:
    """File-backed registry of YOLO models.

    Usage:
        store = ModelStore("models/")
        model = store.import_model("my-model", "a.weights", "a.cfg", "a.names")
        store.selected_model_id = model.id
        weights, cfg, names = store.get_model_paths(store.resolve_selected())
    """

    def __init__(self, models_dir: Union[str, Path]) -> None:
        self._models_dir = Path(models_dir)
        self._custom_dir = self._models_dir / "custom"
        self._metadata_path = self._custom_dir / _METADATA_FILE
        self._built_in_dir = self._models_dir / BUILT_IN_MODEL_NAME

    @property
    def models_dir(self) -> Path:
        return self._models_dir

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def built_in_model(self) -> YOLOModel:
        """Return the bundled yolov4-tiny COCO model."""
        names_path = self._built_in_dir / _BUILT_IN_NAMES
        class_names: List[str] = []
        if names_path.is_file():
            class_names = parse_names_file(names_path.read_text(encoding="utf-8"))

        return YOLOModel(
            id=BUILT_IN_MODEL_ID,
            name=BUILT_IN_MODEL_NAME,
            weights_file_name=_BUILT_IN_WEIGHTS,
            config_file_name=_BUILT_IN_CONFIG,
            names_file_name=_BUILT_IN_NAMES,
            input_width=416,
            input_height=416,
            class_count=80,
            class_names=class_names,
            date_imported=datetime.fromtimestamp(0, tz=timezone.utc).isoformat(),
        )

    def load_models(self) -> List[YOLOModel]:
        """Return the built-in model followed by imported models.

        Entries that cannot be parsed are logged and skipped.
        """
        models = [self.built_in_model()]
        for entry in _model_entries(self._read_metadata()):
            try:
                models.append(YOLOModel.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.error("Skipping malformed model entry %r: %s", entry.get("id"), e)
        return models

    def get_model(self, model_id: str) -> Optional[YOLOModel]:
        for model in self.load_models():
            if model.id == model_id:
                return model
        return None

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def selected_model_id(self) -> str:
        return self._read_metadata().get("selected_model_id") or BUILT_IN_MODEL_ID

    @selected_model_id.setter
    def selected_model_id(self, model_id: str) -> None:
        metadata = self._read_metadata()
        metadata["selected_model_id"] = model_id
        self._write_metadata(metadata)
        logger.info("Selected model: %s", model_id)

    def resolve_selected(self, model_id: Optional[str] = None) -> YOLOModel:
        """Return the model for model_id (default: the stored selection).

        The legacy 'yolov4-tiny-coco' id maps to the built-in model. An id
        with no matching model falls back to the built-in model and the
        stored selection is rewritten to point at it.
        """
        requested = model_id if model_id is not None else self.selected_model_id
        effective = BUILT_IN_MODEL_ID if requested == _LEGACY_BUILT_IN_ID else requested

        model = self.get_model(effective)
        if model is not None:
            logger.info("Found model: %s", model.display_name)
            return model

        logger.warning(
            "Model '%s' not found, falling back to built-in model.", requested
        )
        built_in = self.built_in_model()
        self.selected_model_id = built_in.id
        return built_in

    # ------------------------------------------------------------------
    # Import / delete
    # ------------------------------------------------------------------

    def import_model(
        self,
        name: str,
        weights_path: Union[str, Path],
        config_path: Union[str, Path],
        names_path: Union[str, Path],
    ) -> YOLOModel:
        """Validate and copy a model into the store.

        Raises:
            FileNotFoundError: If any of the source files is missing.
            ModelValidationError: If the files fail validation.
            OSError: If the files cannot be copied.
        """
        sources = [Path(weights_path), Path(config_path), Path(names_path)]
        for source in sources:
            if not source.is_file():
                raise FileNotFoundError(f"Model file not found: {source}")
        if len({source.name for source in sources}) != len(sources):
            raise ModelValidationError(
                "Weights, config and names files must have distinct file names, "
                f"got {[source.name for source in sources]}."
            )

        weights_data, config_data, names_data = (s.read_bytes() for s in sources)
        (width, height), class_names = validate_model_files(
            weights_data, config_data, names_data
        )

        model = YOLOModel(
            id=str(uuid.uuid4()),
            name=name,
            weights_file_name=sources[0].name,
            config_file_name=sources[1].name,
            names_file_name=sources[2].name,
            input_width=width,
            input_height=height,
            class_count=len(class_names),
            class_names=class_names,
            date_imported=datetime.now(timezone.utc).isoformat(),
        )

        model_dir = self._custom_dir / model.id
        model_dir.mkdir(parents=True, exist_ok=True)
        try:
            for source, data in zip(sources, (weights_data, config_data, names_data)):
                (model_dir / source.name).write_bytes(data)

            metadata = self._read_metadata()
            metadata["models"] = _model_entries(metadata) + [model.to_dict()]
            self._write_metadata(metadata)
        except OSError:
            shutil.rmtree(model_dir, ignore_errors=True)
            raise

        logger.info(
            "Imported model '%s' (%s, %d classes) as %s",
            model.display_name, model.input_size_description, model.class_count, model.id,
        )
        return model

    def delete_model(self, model: YOLOModel) -> None:
        """Remove an imported model. The built-in model cannot be deleted.

        If the deleted model was selected, the selection moves to the
        built-in model.
        """
        if model.is_built_in:
            logger.warning("Refusing to delete the built-in model.")
            return

        model_dir = self._custom_dir / model.id
        if model_dir.is_dir():
            shutil.rmtree(model_dir)

        metadata = self._read_metadata()
        metadata["models"] = [
            entry for entry in _model_entries(metadata) if entry.get("id") != model.id
        ]
        if metadata.get("selected_model_id") == model.id:
            metadata["selected_model_id"] = BUILT_IN_MODEL_ID
        self._write_metadata(metadata)

        logger.info("Deleted model '%s' (%s)", model.display_name, model.id)

    def get_model_paths(self, model: YOLOModel) -> Tuple[Path, Path, Path]:
        """Return (weights, cfg, names) paths for a model."""
        base = self._built_in_dir if model.is_built_in else self._custom_dir / model.id
        return (
            base / model.weights_file_name,
            base / model.config_file_name,
            base / model.names_file_name,
        )

    # ------------------------------------------------------------------
    # Metadata persistence
    # ------------------------------------------------------------------

    def _read_metadata(self) -> dict:
        if not self._metadata_path.is_file():
            return {}
        try:
            with open(self._metadata_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Ignoring unreadable model metadata %s: %s", self._metadata_path, e)
            return {}
        if not isinstance(data, dict):
            logger.error("Ignoring malformed model metadata %s", self._metadata_path)
            return {}
        return data

    def _write_metadata(self, metadata: dict) -> None:
        self._custom_dir.mkdir(parents=True, exist_ok=True)
        with open(self._metadata_path, "w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=2)
