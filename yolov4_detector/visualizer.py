"""
Visualization for the YOLOv4 detection pipeline.

Responsibility:
    Draw bounding boxes with class/confidence labels and the stats overlay
    onto a frame. This is a pure rendering module — it produces an
    annotated copy of the frame and performs no I/O.

Non-goals:
    - No file writing, window management beyond show_frame, or detection logic.
"""

from typing import List, Optional, Tuple

import cv2
import numpy as np

from yolov4_detector.config import VisualizationConfig
from yolov4_detector.detection import DetectionResult, DetectionStats

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4
_WINDOW_NAME = "YOLOv4 Detector"

# BGR palette indexed by class_id % len(CLASS_COLORS)
CLASS_COLORS: Tuple[Tuple[int, int, int], ...] = (
    (59, 48, 255),    # red
    (89, 199, 52),    # green
    (255, 122, 0),    # blue
    (0, 149, 255),    # orange
    (222, 82, 175),   # purple
    (85, 45, 255),    # pink
    (0, 204, 255),    # yellow
    (230, 200, 50),   # cyan
    (190, 199, 0),    # mint
    (214, 86, 88),    # indigo
    (94, 132, 162),   # brown
    (176, 173, 48),   # teal
    (147, 142, 142),  # gray
    (47, 38, 204),
    (71, 159, 42),
    (204, 98, 0),
    (0, 119, 204),
    (178, 66, 140),
    (68, 36, 204),
    (0, 163, 204),
)


def class_color(class_id: int) -> Tuple[int, int, int]:
    """Return the BGR color assigned to a class."""
    return CLASS_COLORS[class_id % len(CLASS_COLORS)]


def draw_detections(
    frame: np.ndarray,
    detections: List[DetectionResult],
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw bounding boxes and class labels onto a frame.

    Args:
        frame: Input BGR image (not modified — a copy is returned).
        detections: DetectionResult objects to render.
        config: Visualization parameters (thickness, labels).

    Returns:
        A new BGR numpy array with detections drawn.
    """
    annotated = frame.copy()

    for det in detections:
        box = det.bounding_box
        color = class_color(det.class_id)

        cv2.rectangle(
            annotated,
            (box.x, box.y),
            (box.x2, box.y2),
            color=color,
            thickness=config.thickness,
        )

        if not config.show_labels:
            continue

        label = f"{det.class_name} {det.confidence_percentage}"
        (text_w, text_h), _ = cv2.getTextSize(
            label, _FONT, _FONT_SCALE, _FONT_THICKNESS
        )

        # Label sits above the box, pushed down when it would leave the frame
        top = max(0, box.y - text_h - 2 * _LABEL_PADDING)
        bottom = top + text_h + 2 * _LABEL_PADDING

        cv2.rectangle(
            annotated,
            (box.x, top),
            (box.x + text_w + 2 * _LABEL_PADDING, bottom),
            color=color,
            thickness=cv2.FILLED,
        )

        cv2.putText(
            annotated,
            label,
            (box.x + _LABEL_PADDING, bottom - _LABEL_PADDING),
            _FONT,
            _FONT_SCALE,
            (255, 255, 255),
            _FONT_THICKNESS,
            cv2.LINE_AA,
        )

    return annotated


def format_stats(stats: DetectionStats) -> str:
    """Render stats as 'FPS | ms | count' text."""
    return (
        f"{stats.fps:.0f} FPS | {stats.inference_time:.0f} ms | "
        f"{stats.detection_count} objects"
    )


def draw_stats(frame: np.ndarray, stats: DetectionStats) -> np.ndarray:
    """Draw the stats overlay in the top-left corner (returns a copy)."""
    annotated = frame.copy()
    text = format_stats(stats)
    (text_w, text_h), baseline = cv2.getTextSize(
        text, _FONT, _FONT_SCALE, _FONT_THICKNESS
    )

    cv2.rectangle(
        annotated,
        (0, 0),
        (text_w + 2 * _LABEL_PADDING, text_h + baseline + 2 * _LABEL_PADDING),
        color=(0, 0, 0),
        thickness=cv2.FILLED,
    )
    cv2.putText(
        annotated,
        text,
        (_LABEL_PADDING, text_h + _LABEL_PADDING),
        _FONT,
        _FONT_SCALE,
        (255, 255, 255),
        _FONT_THICKNESS,
        cv2.LINE_AA,
    )
    return annotated


def render(
    frame: np.ndarray,
    detections: List[DetectionResult],
    config: VisualizationConfig,
    stats: Optional[DetectionStats] = None,
) -> np.ndarray:
    """Draw detections and, when given, the stats overlay."""
    annotated = draw_detections(frame, detections, config)
    if stats is not None:
        annotated = draw_stats(annotated, stats)
    return annotated


def show_frame(annotated: np.ndarray) -> int:
    """Show an already annotated frame in a window and return key press.

    Returns:
        The key code (int) pressed during waitKey, or 255 if no key.
    """
    cv2.imshow(_WINDOW_NAME, annotated)
    return cv2.waitKey(1) & 0xFF
