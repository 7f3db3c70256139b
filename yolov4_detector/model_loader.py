"""
Model loading for the YOLOv4 detector.

Responsibility:
    Load the Darknet network from disk, configure the compute backend,
    and return a ready-to-infer cv2.dnn.Net object. Also loads the
    class-name table and resolves the network input size.

Non-goals:
    - No preprocessing, inference, or frame-level logic.
    - No automatic model downloading.
    - No fallback to alternative models (the model store handles selection).

Failure behavior:
    - Missing model files raise FileNotFoundError with the exact
      missing path and expected location.
    - Unparsable networks and incompatible backends raise RuntimeError.
"""

import logging
from pathlib import Path
from typing import List, Tuple

import cv2

from yolov4_detector.config import ModelConfig, resolve_path
from yolov4_detector.model_files import parse_config_file, parse_names_file

logger = logging.getLogger(__name__)

# Used when neither the config nor the .cfg file specify an input size
DEFAULT_INPUT_SIZE: Tuple[int, int] = (416, 416)


def _require_file(path: Path, description: str, config_key: str) -> None:
    if not path.is_file():
        raise FileNotFoundError(
            f"Model {description} not found.\n"
            f"  Expected: {path}\n"
            f"  Provide the file or update '{config_key}' in your config."
        )


def load_model(config: ModelConfig) -> cv2.dnn.Net:
    """Load and configure the YOLO Darknet network.

    Args:
        config: ModelConfig containing file paths and backend preference.

    Returns:
        A configured cv2.dnn.Net ready for inference.

    Raises:
        FileNotFoundError: If the cfg or weights file does not exist.
        RuntimeError: If OpenCV cannot parse the network or the requested
                      backend is unavailable.
    """
    cfg = resolve_path(config.config_path)
    weights = resolve_path(config.weights_path)

    _require_file(cfg, "config", "model.config_path")
    _require_file(weights, "weights", "model.weights_path")

    logger.info("Loading model: cfg=%s, weights=%s", cfg, weights)
    try:
        net = cv2.dnn.readNetFromDarknet(str(cfg), str(weights))
    except cv2.error as e:
        raise RuntimeError(
            f"OpenCV failed to load the Darknet network.\n"
            f"  cfg: {cfg}\n"
            f"  weights: {weights}\n"
            f"  OpenCV error: {e}"
        ) from e

    if config.backend == "cuda":
        logger.info("Setting CUDA backend and target.")
        try:
            net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
            net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
        except cv2.error as e:
            raise RuntimeError(
                f"Failed to set CUDA backend. Ensure OpenCV was built with "
                f"CUDA support.\n"
                f"  OpenCV error: {e}"
            ) from e
    else:
        logger.info("Using CPU backend.")
        net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)

    logger.info("Model loaded successfully.")
    return net


def load_class_names(config: ModelConfig) -> List[str]:
    """Read the class-name table.

    Raises:
        FileNotFoundError: If the names file does not exist.
    """
    names_path = resolve_path(config.names_path)
    _require_file(names_path, "names", "model.names_path")

    names = parse_names_file(names_path.read_text(encoding="utf-8"))
    if not names:
        logger.warning(
            "Names file %s is empty; detections will be labelled by class id.",
            names_path,
        )
    else:
        logger.info("Loaded %d class names from %s", len(names), names_path)
    return names


def resolve_input_size(config: ModelConfig) -> Tuple[int, int]:
    """Return the network input (width, height).

    An explicit model.input_size wins; otherwise the [net] section of the
    cfg file is used, then DEFAULT_INPUT_SIZE.
    """
    if config.input_size is not None:
        return tuple(config.input_size)

    cfg = resolve_path(config.config_path)
    if cfg.is_file():
        dimensions = parse_config_file(cfg.read_text(encoding="utf-8", errors="replace"))
        if dimensions is not None:
            return dimensions
        logger.warning("No width/height in [net] section of %s", cfg)

    logger.warning("Falling back to default input size %s", DEFAULT_INPUT_SIZE)
    return DEFAULT_INPUT_SIZE
