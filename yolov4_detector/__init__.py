"""
YOLOv4 Detector — object detection library using OpenCV DNN.

Public API:
    - Detector: The single entry point for object detection.
    - DetectionResult: Data transfer object for one detected object.
    - BoundingBox: Pixel rectangle carried by DetectionResult.

All other modules in this package are internal implementation details
and should not be imported directly by consumers.

Usage:
    from yolov4_detector import Detector

    detector = Detector.from_paths("yolov4-tiny.weights", "yolov4-tiny.cfg", "coco.names")
    results = detector.detect_frame(frame, confidence_threshold=0.25, nms_threshold=0.45)
"""

from yolov4_detector.detection import BoundingBox, DetectionResult
from yolov4_detector.detector import Detector

__all__ = ["Detector", "DetectionResult", "BoundingBox"]
