"""
Configuration management for the YOLOv4 detector.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# yolov4_detector/config.py → project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def resolve_path(path: str) -> Path:
    """Resolve a configured path, anchoring relative paths at the project root."""
    resolved = Path(path).expanduser()
    if not resolved.is_absolute():
        resolved = _PROJECT_ROOT / resolved
    return resolved


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        weights_path: Darknet .weights file (relative to project root).
        config_path: Darknet .cfg network definition.
        names_path: Class-name table, one label per line.
        backend: Compute backend — 'cpu' or 'cuda'.
        input_size: Network input (width, height). None reads it from the
                    [net] section of the .cfg file.
        scale_factor: Pixel value scale factor applied during blob creation.
        pad_value: Grey level used to fill the letterbox border.
    """

    weights_path: str = "models/yolov4-tiny-coco/yolov4-tiny.weights"
    config_path: str = "models/yolov4-tiny-coco/yolov4-tiny.cfg"
    names_path: str = "models/yolov4-tiny-coco/coco.names"
    backend: str = "cpu"
    input_size: Optional[Tuple[int, int]] = None
    scale_factor: float = 1.0 / 255.0
    pad_value: int = 128


@dataclass(frozen=True)
class DetectionConfig:
    """Default detection thresholds.

    Attributes:
        confidence_threshold: Minimum class score to keep a detection.
        nms_threshold: IoU threshold for non-maximum suppression.
    """

    confidence_threshold: float = 0.25
    nms_threshold: float = 0.45


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Input source — file path, directory path, video path,
                or integer device index (as string or int).
        resize_width: Optional width to downscale input frames before detection.
                      None means no resizing.
        rotate_landscape: Rotate landscape live frames to portrait before
                          detection (phone cameras deliver sensor-landscape
                          buffers).
    """

    source: str = "0"
    resize_width: Optional[int] = None
    rotate_landscape: bool = False


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s). Supports multiple comma-separated values:
              'display', 'save_image', 'save_video', 'save_json', 'save_csv',
              'save_preprocessed'.
              Example: "display,save_image,save_json"
        save_path: Directory where output artifacts are written.
        show_stats: Render the FPS / latency / count overlay.
    """

    mode: str = "display"
    save_path: str = "output/"
    show_stats: bool = True


@dataclass(frozen=True)
class VisualizationConfig:
    """Visualization rendering parameters.

    Attributes:
        thickness: Box line thickness in pixels.
        show_labels: Whether to render the class name and confidence label.
    """

    thickness: int = 2
    show_labels: bool = True


@dataclass(frozen=True)
class StorageConfig:
    """Model store location.

    Attributes:
        models_dir: Directory holding the built-in model and imported models.
        selected_model_id: Model to load. None keeps the stored selection.
    """

    models_dir: str = "models/"
    selected_model_id: Optional[str] = None


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"cpu", "cuda"}
_VALID_OUTPUT_MODES = {
    "display",
    "save_image",
    "save_video",
    "save_json",
    "save_csv",
    "save_preprocessed",
}


def parse_output_modes(mode: str) -> set:
    """Split a comma-separated output mode string into a set of modes."""
    return {m.strip() for m in mode.split(",") if m.strip()}


def validate_threshold(name: str, value: float) -> None:
    """Raise ValueError unless value lies in [0.0, 1.0]."""
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be in [0.0, 1.0], got {value}.")


def _validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    invalid_modes = parse_output_modes(config.output.mode) - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )

    validate_threshold("detection.confidence_threshold", config.detection.confidence_threshold)
    validate_threshold("detection.nms_threshold", config.detection.nms_threshold)

    if config.model.input_size is not None:
        if len(config.model.input_size) != 2:
            raise ValueError(
                f"model.input_size must be a (width, height) tuple, "
                f"got {config.model.input_size}."
            )
        if any(d <= 0 for d in config.model.input_size):
            raise ValueError(
                f"model.input_size dimensions must be positive, "
                f"got {config.model.input_size}."
            )

    if config.model.scale_factor <= 0:
        raise ValueError(
            f"model.scale_factor must be positive, "
            f"got {config.model.scale_factor}."
        )

    if not (0 <= config.model.pad_value <= 255):
        raise ValueError(
            f"model.pad_value must be in [0, 255], got {config.model.pad_value}."
        )

    if config.input.resize_width is not None and config.input.resize_width <= 0:
        raise ValueError(
            f"input.resize_width must be positive or None, "
            f"got {config.input.resize_width}."
        )

    if config.visualization.thickness <= 0:
        raise ValueError(
            f"visualization.thickness must be positive, "
            f"got {config.visualization.thickness}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_bool(value) -> bool:
    """Interpret YAML booleans and environment strings alike."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    for key in ("weights_path", "config_path", "names_path"):
        if key in raw:
            kwargs[key] = str(raw[key])
    if "backend" in raw:
        kwargs["backend"] = str(raw["backend"]).lower()
    if "input_size" in raw and raw["input_size"] is not None:
        kwargs["input_size"] = _parse_tuple(raw["input_size"], 2, int)
    if "scale_factor" in raw:
        kwargs["scale_factor"] = float(raw["scale_factor"])
    if "pad_value" in raw:
        kwargs["pad_value"] = int(raw["pad_value"])
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "confidence_threshold" in raw:
        kwargs["confidence_threshold"] = float(raw["confidence_threshold"])
    if "nms_threshold" in raw:
        kwargs["nms_threshold"] = float(raw["nms_threshold"])
    return DetectionConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    if "resize_width" in raw:
        val = raw["resize_width"]
        kwargs["resize_width"] = int(val) if val is not None else None
    if "rotate_landscape" in raw:
        kwargs["rotate_landscape"] = _parse_bool(raw["rotate_landscape"])
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    if "show_stats" in raw:
        kwargs["show_stats"] = _parse_bool(raw["show_stats"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_labels" in raw:
        kwargs["show_labels"] = _parse_bool(raw["show_labels"])
    return VisualizationConfig(**kwargs)


def _build_storage_config(raw: dict) -> StorageConfig:
    """Build StorageConfig from a raw YAML dict."""
    kwargs = {}
    if "models_dir" in raw:
        kwargs["models_dir"] = str(raw["models_dir"])
    if raw.get("selected_model_id") is not None:
        kwargs["selected_model_id"] = str(raw["selected_model_id"])
    return StorageConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "YOLO_DETECT_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        YOLO_DETECT_MODEL_BACKEND=cuda
        YOLO_DETECT_DETECTION_CONFIDENCE_THRESHOLD=0.4
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_WEIGHTS_PATH": ("model", "weights_path"),
        f"{_ENV_PREFIX}MODEL_CONFIG_PATH": ("model", "config_path"),
        f"{_ENV_PREFIX}MODEL_NAMES_PATH": ("model", "names_path"),
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}DETECTION_CONFIDENCE_THRESHOLD": ("detection", "confidence_threshold"),
        f"{_ENV_PREFIX}DETECTION_NMS_THRESHOLD": ("detection", "nms_threshold"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}INPUT_RESIZE_WIDTH": ("input", "resize_width"),
        f"{_ENV_PREFIX}INPUT_ROTATE_LANDSCAPE": ("input", "rotate_landscape"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
        f"{_ENV_PREFIX}STORAGE_MODELS_DIR": ("storage", "models_dir"),
        f"{_ENV_PREFIX}STORAGE_SELECTED_MODEL_ID": ("storage", "selected_model_id"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = resolve_path(config_path)

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model", {})),
        detection=_build_detection_config(raw.get("detection", {})),
        input=_build_input_config(raw.get("input", {})),
        output=_build_output_config(raw.get("output", {})),
        visualization=_build_visualization_config(raw.get("visualization", {})),
        storage=_build_storage_config(raw.get("storage", {})),
    )

    validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config


def validate(config: AppConfig) -> AppConfig:
    """Validate an AppConfig built or modified outside load_config.

    Returns the same config so CLI overrides can be chained.
    """
    _validate(config)
    return config
