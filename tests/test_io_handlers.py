"""
Tests for the input and output handlers (file-based sources and sinks only).
"""

import json

import cv2
import numpy as np
import pytest

from yolov4_detector.config import AppConfig, OutputConfig
from yolov4_detector.detection import BoundingBox, DetectionResult
from yolov4_detector.input_handler import InputHandler
from yolov4_detector.output_handler import OutputHandler


def _write_image(path, width=64, height=48):
    cv2.imwrite(str(path), np.zeros((height, width, 3), dtype=np.uint8))


def test_directory_source_yields_sorted_frames(tmp_path):
    _write_image(tmp_path / "b.png")
    _write_image(tmp_path / "a.png")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    with InputHandler(str(tmp_path)) as handler:
        frames = list(handler)

    assert handler.mode == "directory"
    assert not handler.is_live
    assert [frame_id for frame_id, _ in frames] == [0, 1]


def test_resize_width_preserves_aspect(tmp_path):
    path = tmp_path / "big.png"
    _write_image(path, width=200, height=100)

    handler = InputHandler(str(path), resize_width=100)
    (_, frame), = list(handler)

    assert frame.shape[:2] == (50, 100)


def test_invalid_sources(tmp_path):
    with pytest.raises(FileNotFoundError):
        InputHandler(str(tmp_path / "missing.png"))

    bad = tmp_path / "file.xyz"
    bad.write_text("x", encoding="utf-8")
    with pytest.raises(ValueError, match="extension"):
        InputHandler(str(bad))

    empty = tmp_path / "empty"
    empty.mkdir()
    with pytest.raises(ValueError, match="No image files"):
        InputHandler(str(empty))


def test_output_handler_writes_files(tmp_path):
    config = AppConfig(output=OutputConfig(
        mode="save_image,save_json,save_csv,save_preprocessed",
        save_path=str(tmp_path / "out"),
    ))
    handler = OutputHandler(config)
    frame = np.zeros((48, 64, 3), dtype=np.uint8)
    det = DetectionResult(0, "person", 0.9, BoundingBox(1, 2, 10, 10))

    assert handler.process_frame(0, frame, [det], preprocessed=frame) is True
    handler.finalize()

    out = tmp_path / "out"
    assert (out / "frame_000000.jpg").is_file()
    assert (out / "preprocessed_000000.png").is_file()
    assert (out / "detections.csv").is_file()
    payload = json.loads((out / "detections.json").read_text(encoding="utf-8"))
    assert payload["total_detections"] == 1
