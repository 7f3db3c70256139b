"""
Detection data transfer objects.

This module defines DetectionResult — the single output type returned by
Detector.detect_frame() and Detector.detect_image() — together with its
BoundingBox and the per-second DetectionStats snapshot. They are frozen,
serializable containers with no behavior beyond data access.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No coordinate transformation methods (that belongs in postprocessor).
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned rectangle in absolute pixel coordinates.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Box width in pixels.
        height: Box height in pixels.
    """

    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        """Right edge (exclusive)."""
        return self.x + self.width

    @property
    def y2(self) -> int:
        """Bottom edge (exclusive)."""
        return self.y + self.height

    @property
    def area(self) -> int:
        """Box area in pixels."""
        return self.width * self.height

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """A single detected object.

    Attributes:
        class_id: Index into the model's class-name table.
        class_name: Human-readable label for class_id.
        confidence: Class score reported by the network, nominally in [0, 1].
        bounding_box: Object location in the coordinate space of the image
                      handed to the detector.
    """

    class_id: int
    class_name: str
    confidence: float
    bounding_box: BoundingBox

    @property
    def confidence_percentage(self) -> str:
        """Confidence formatted for display, e.g. '87.5%'."""
        return f"{self.confidence * 100:.1f}%"

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "class_id": self.class_id,
            "class_name": self.class_name,
            "confidence": round(self.confidence, 4),
            **self.bounding_box.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class DetectionStats:
    """Rolling throughput figures.

    Attributes:
        fps: Frames run through the detector per second.
        inference_time: Latency of the most recent detection call (ms).
        detection_count: Number of detections in the most recent frame.
    """

    fps: float = 0.0
    inference_time: float = 0.0
    detection_count: int = 0
