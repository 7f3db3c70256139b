"""
Preprocessing for the YOLOv4 detection pipeline.

Responsibility:
    Letterbox a BGR image to the network input size and convert it into a
    4D DNN-compatible input blob using cv2.dnn.blobFromImage.

Non-goals:
    - No frame acquisition or I/O.
    - No inference or coordinate mapping of detections.

Hard-coded:
    - Input images are BGR; swapRB is True because Darknet models
      are trained on RGB.
    - The letterboxed image already has the network size, so
      blobFromImage never resizes or crops.
"""

from dataclasses import dataclass
from typing import NamedTuple, Tuple

import cv2
import numpy as np

from yolov4_detector.config import ModelConfig


@dataclass(frozen=True)
class LetterboxTransform:
    """Mapping from network-input pixels back to source-image pixels.

    Attributes:
        scale: Resize factor applied to the source image.
        pad_x: Left padding in network-input pixels.
        pad_y: Top padding in network-input pixels.
    """

    scale: float
    pad_x: int
    pad_y: int

    def to_source(self, x: float, y: float) -> Tuple[float, float]:
        """Map a network-input point to source-image coordinates."""
        return (x - self.pad_x) / self.scale, (y - self.pad_y) / self.scale


class PreprocessedInput(NamedTuple):
    blob: np.ndarray
    image: np.ndarray
    transform: LetterboxTransform


def letterbox(
    image: np.ndarray,
    input_size: Tuple[int, int],
    pad_value: int = 128,
) -> Tuple[np.ndarray, LetterboxTransform]:
    """Resize preserving aspect ratio and pad to input_size.

    Args:
        image: BGR image (H, W, 3).
        input_size: Target (width, height).
        pad_value: Grey level for the border.

    Returns:
        The padded image of shape (height, width, 3) and the transform
        that undoes it.
    """
    target_w, target_h = input_size
    h, w = image.shape[:2]

    scale = min(target_w / w, target_h / h)
    new_w = min(target_w, max(1, int(round(w * scale))))
    new_h = min(target_h, max(1, int(round(h * scale))))

    if (new_w, new_h) != (w, h):
        interpolation = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR
        resized = cv2.resize(image, (new_w, new_h), interpolation=interpolation)
    else:
        resized = image

    pad_x = (target_w - new_w) // 2
    pad_y = (target_h - new_h) // 2

    padded = cv2.copyMakeBorder(
        resized,
        top=pad_y,
        bottom=target_h - new_h - pad_y,
        left=pad_x,
        right=target_w - new_w - pad_x,
        borderType=cv2.BORDER_CONSTANT,
        value=(pad_value, pad_value, pad_value),
    )

    return padded, LetterboxTransform(scale=scale, pad_x=pad_x, pad_y=pad_y)


def preprocess(
    image: np.ndarray,
    input_size: Tuple[int, int],
    config: ModelConfig,
) -> PreprocessedInput:
    """Convert a BGR image into a DNN input blob.

    Args:
        image: Input image as a BGR numpy array (H, W, 3).
        input_size: Network input (width, height).
        config: ModelConfig providing scale_factor and pad_value.

    Returns:
        PreprocessedInput holding the (1, 3, H, W) float32 blob, the
        letterboxed BGR image and its LetterboxTransform.

    Raises:
        ValueError: If the image is empty.
    """
    if image is None or image.size == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the input source is providing valid frames."
        )

    boxed, transform = letterbox(image, input_size, config.pad_value)

    blob = cv2.dnn.blobFromImage(
        image=boxed,
        scalefactor=config.scale_factor,
        size=tuple(input_size),
        mean=(0.0, 0.0, 0.0),
        swapRB=True,
        crop=False,
    )

    return PreprocessedInput(blob=blob, image=boxed, transform=transform)
