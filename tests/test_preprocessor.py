"""
Tests for the preprocessing module.
"""

import numpy as np
import pytest

from yolov4_detector.config import ModelConfig
from yolov4_detector.preprocessor import LetterboxTransform, letterbox, preprocess


def test_preprocess_valid_input():
    """Test standard preprocessing on a valid frame."""
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    frame[:, :, 1] = 255

    prepared = preprocess(frame, (416, 416), ModelConfig())

    assert isinstance(prepared.blob, np.ndarray)
    assert prepared.blob.shape == (1, 3, 416, 416)
    assert prepared.blob.dtype == np.float32
    assert prepared.image.shape == (416, 416, 3)
    assert float(prepared.blob.max()) <= 1.0


def test_letterbox_pads_short_side():
    frame = np.full((480, 640, 3), 255, dtype=np.uint8)

    boxed, transform = letterbox(frame, (416, 416), pad_value=128)

    assert boxed.shape == (416, 416, 3)
    assert transform.scale == pytest.approx(0.65)
    assert transform.pad_x == 0
    assert transform.pad_y == 52
    # Padding above the image, content in the middle
    assert (boxed[0:52] == 128).all()
    assert (boxed[52:364] == 255).all()
    assert (boxed[364:] == 128).all()


def test_letterbox_non_square_input():
    frame = np.zeros((100, 100, 3), dtype=np.uint8)
    boxed, transform = letterbox(frame, (320, 160))
    assert boxed.shape == (160, 320, 3)
    assert transform.pad_x == 80
    assert transform.pad_y == 0


def test_transform_maps_back_to_source():
    transform = LetterboxTransform(scale=0.5, pad_x=10, pad_y=20)
    assert transform.to_source(60, 70) == (100.0, 100.0)


def test_preprocess_swaps_to_rgb():
    frame = np.zeros((416, 416, 3), dtype=np.uint8)
    frame[:, :, 0] = 255  # blue in BGR

    blob = preprocess(frame, (416, 416), ModelConfig()).blob

    assert blob[0, 2].mean() == pytest.approx(1.0)  # blue lands in channel 2
    assert blob[0, 0].mean() == pytest.approx(0.0)


def test_preprocess_empty_frame():
    """Test that preprocessing rejects empty frames."""
    with pytest.raises(ValueError):
        preprocess(np.array([]), (416, 416), ModelConfig())


def test_preprocess_none_frame():
    """Test that preprocessing rejects None."""
    with pytest.raises(ValueError):
        preprocess(None, (416, 416), ModelConfig())
