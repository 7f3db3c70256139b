"""
Darknet model file parsing and validation.

Responsibility:
    Read the network input dimensions from a Darknet .cfg file, read the
    class-name table from a .names file, and sanity-check a weights/cfg/names
    triple before it is imported into the model store.

Non-goals:
    - No network construction (that belongs in model_loader).
    - No verification that the weights actually match the cfg; OpenCV
      reports that when the network is loaded.
"""

import logging
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

# Sanity limits on the raw file sizes (bytes)
_MIN_WEIGHTS_BYTES = 1000
_MIN_CONFIG_BYTES = 100
_MIN_NAMES_BYTES = 10

# Accepted network input dimensions
_MIN_DIMENSION = 32
_MAX_DIMENSION = 2048

_NET_SECTIONS = {"[net]", "[network]"}


class ModelValidationError(ValueError):
    """Raised when a set of model files fails validation."""


def parse_config_file(text: str) -> Optional[Tuple[int, int]]:
    """Extract (width, height) from the [net] section of a Darknet cfg.

    Args:
        text: Contents of the .cfg file.

    Returns:
        The (width, height) tuple, or None if either value is missing
        or not an integer.
    """
    width: Optional[int] = None
    height: Optional[int] = None
    in_net_section = False

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", ";")):
            continue

        if stripped.startswith("["):
            if in_net_section:
                break
            in_net_section = stripped in _NET_SECTIONS
            continue

        if not in_net_section or "=" not in stripped:
            continue

        key, _, value = stripped.partition("=")
        key = key.strip()
        try:
            if key == "width":
                width = int(value.strip())
            elif key == "height":
                height = int(value.strip())
        except ValueError:
            logger.debug("Ignoring non-integer %s value in cfg: %r", key, value)

        if width is not None and height is not None:
            return width, height

    return None


def parse_names_file(text: str) -> List[str]:
    """Return the class names in file order, skipping blank lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def validate_model_files(
    weights: bytes,
    config: bytes,
    names: bytes,
) -> Tuple[Tuple[int, int], List[str]]:
    """Validate a weights/cfg/names triple.

    Args:
        weights: Raw contents of the .weights file.
        config: Raw contents of the .cfg file.
        names: Raw contents of the .names file.

    Returns:
        ((width, height), class_names) parsed from the cfg and names files.

    Raises:
        ModelValidationError: If any file is implausibly small, the cfg has
            no usable input dimensions, or the names file is empty.
    """
    if len(weights) < _MIN_WEIGHTS_BYTES:
        raise ModelValidationError("Weights file appears to be too small")

    if len(config) < _MIN_CONFIG_BYTES:
        raise ModelValidationError("Config file appears to be too small")

    if len(names) < _MIN_NAMES_BYTES:
        raise ModelValidationError("Names file appears to be too small")

    dimensions = parse_config_file(_decode(config, "config"))
    if dimensions is None:
        raise ModelValidationError(
            "Failed to parse network dimensions from config file"
        )

    width, height = dimensions
    if not all(_MIN_DIMENSION <= d <= _MAX_DIMENSION for d in dimensions):
        raise ModelValidationError(
            f"Invalid network dimensions: {width}x{height}"
        )

    class_names = parse_names_file(_decode(names, "names"))
    if not class_names:
        raise ModelValidationError("No class names found in names file")

    return dimensions, class_names


def _decode(data: bytes, label: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ModelValidationError(
            f"{label.capitalize()} file is not valid UTF-8 text"
        ) from e
