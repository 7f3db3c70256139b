"""
Tests for the rendering helpers.
"""

import numpy as np

from yolov4_detector.config import VisualizationConfig
from yolov4_detector.detection import BoundingBox, DetectionResult, DetectionStats
from yolov4_detector.visualizer import (
    CLASS_COLORS,
    class_color,
    draw_detections,
    draw_stats,
    format_stats,
)


def test_class_colors_cycle():
    assert class_color(0) == CLASS_COLORS[0]
    assert class_color(len(CLASS_COLORS) + 3) == CLASS_COLORS[3]


def test_draw_detections_returns_annotated_copy():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    det = DetectionResult(1, "bicycle", 0.5, BoundingBox(50, 50, 100, 100))

    annotated = draw_detections(frame, [det], VisualizationConfig())

    assert frame.sum() == 0
    assert annotated.shape == frame.shape
    assert tuple(annotated[150, 100]) == class_color(1)  # bottom edge


def test_draw_without_labels_only_draws_box():
    frame = np.zeros((200, 200, 3), dtype=np.uint8)
    det = DetectionResult(0, "person", 0.5, BoundingBox(50, 50, 100, 100))

    annotated = draw_detections(frame, [det], VisualizationConfig(show_labels=False))

    assert annotated[40:48, 50:120].sum() == 0


def test_stats_overlay():
    stats = DetectionStats(fps=14.6, inference_time=35.2, detection_count=3)
    assert format_stats(stats) == "15 FPS | 35 ms | 3 objects"

    frame = np.full((100, 300, 3), 200, dtype=np.uint8)
    annotated = draw_stats(frame, stats)
    assert (annotated[0, 0] == 0).all()
    assert (frame == 200).all()
