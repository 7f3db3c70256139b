"""
Postprocessing for the YOLOv4 detection pipeline.

Responsibility:
    Decode the raw YOLO output tensors into DetectionResult objects.
    Apply confidence thresholding, undo the letterbox, clamp to the frame
    and run per-class non-maximum suppression.

Non-goals:
    - No drawing, saving, or display logic.
    - No model loading or inference.

Hard-coded:
    - YOLO output layout: one (N, 5 + num_classes) array per output layer,
      each row [cx, cy, w, h, objectness, class scores...] with box values
      normalized to the network input size. OpenCV's Darknet region layer
      already folds objectness into the class scores.
"""

from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np

from yolov4_detector.detection import BoundingBox, DetectionResult
from yolov4_detector.preprocessor import LetterboxTransform


def class_label(class_names: Sequence[str], class_id: int) -> str:
    """Return the name for class_id, or 'class_<id>' if the table lacks it."""
    if 0 <= class_id < len(class_names):
        return class_names[class_id]
    return f"class_{class_id}"


def postprocess(
    outputs: Sequence[np.ndarray],
    transform: LetterboxTransform,
    input_size: Tuple[int, int],
    frame_width: int,
    frame_height: int,
    class_names: Sequence[str],
    confidence_threshold: float,
    nms_threshold: float,
) -> List[DetectionResult]:
    """Parse raw YOLO output into a list of DetectionResult objects.

    Args:
        outputs: Arrays returned by net.forward(output_layer_names).
        transform: Letterbox transform used to build the network input.
        input_size: Network input (width, height).
        frame_width: Source frame width in pixels (for clamping).
        frame_height: Source frame height in pixels (for clamping).
        class_names: Class-name table.
        confidence_threshold: Minimum class score to keep a detection.
        nms_threshold: IoU above which a lower-scoring box of the same
                       class is suppressed.

    Returns:
        List of DetectionResult objects, sorted by confidence (descending).
        Empty list if no detections meet the threshold.
    """
    input_w, input_h = input_size

    # class_id -> ([x, y, w, h] boxes, scores)
    candidates: Dict[int, Tuple[List[List[int]], List[float]]] = {}

    for output in outputs:
        output = np.asarray(output)
        rows = output.reshape(-1, output.shape[-1])
        if rows.shape[1] <= 5:
            continue

        scores = rows[:, 5:]
        class_ids = np.argmax(scores, axis=1)
        confidences = scores[np.arange(rows.shape[0]), class_ids]

        for row, class_id, confidence in zip(rows, class_ids, confidences):
            if confidence < confidence_threshold:
                continue

            cx, cy, bw, bh = (
                row[0] * input_w,
                row[1] * input_h,
                row[2] * input_w,
                row[3] * input_h,
            )
            x1, y1 = transform.to_source(cx - bw / 2, cy - bh / 2)
            x2, y2 = transform.to_source(cx + bw / 2, cy + bh / 2)

            # Clamp to frame boundaries
            x1 = max(0, min(int(round(x1)), frame_width))
            y1 = max(0, min(int(round(y1)), frame_height))
            x2 = max(0, min(int(round(x2)), frame_width))
            y2 = max(0, min(int(round(y2)), frame_height))

            # Skip degenerate boxes
            if x2 <= x1 or y2 <= y1:
                continue

            boxes, box_scores = candidates.setdefault(int(class_id), ([], []))
            boxes.append([x1, y1, x2 - x1, y2 - y1])
            box_scores.append(float(confidence))

    detections: List[DetectionResult] = []

    for class_id, (boxes, box_scores) in candidates.items():
        keep = cv2.dnn.NMSBoxes(boxes, box_scores, 0.0, nms_threshold)
        name = class_label(class_names, class_id)
        for i in np.array(keep, dtype=int).flatten():
            x, y, w, h = boxes[i]
            detections.append(DetectionResult(
                class_id=class_id,
                class_name=name,
                confidence=box_scores[i],
                bounding_box=BoundingBox(x=x, y=y, width=w, height=h),
            ))

    # Sort by confidence descending for consistent output ordering
    detections.sort(key=lambda d: d.confidence, reverse=True)

    return detections
