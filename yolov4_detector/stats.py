"""
Throughput statistics for the detection loop.

Counts frames actually run through the detector and publishes a
DetectionStats snapshot once per window (one second by default).
"""

import time
from typing import Callable

from yolov4_detector.detection import DetectionStats


class StatsTracker:
    """Per-window FPS, latest inference time and detection count.

    Usage:
        tracker = StatsTracker()
        detections = detector.detect_frame(frame)
        tracker.record(detector.last_inference_time, len(detections))
        overlay(tracker.stats)
    """

    def __init__(
        self,
        window: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}.")
        self._window = window
        self._clock = clock
        self._window_start = clock()
        self._frames = 0
        self._stats = DetectionStats()

    @property
    def stats(self) -> DetectionStats:
        """Most recently published snapshot."""
        return self._stats

    def record(self, inference_time: float, detection_count: int) -> DetectionStats:
        """Count one processed frame; publish a new snapshot if the window elapsed."""
        self._frames += 1
        now = self._clock()
        elapsed = now - self._window_start

        if elapsed >= self._window:
            self._stats = DetectionStats(
                fps=self._frames / elapsed,
                inference_time=inference_time,
                detection_count=detection_count,
            )
            self._frames = 0
            self._window_start = now

        return self._stats

    def reset(self) -> None:
        """Drop counted frames, e.g. while detection is paused."""
        self._frames = 0
        self._window_start = self._clock()
        self._stats = DetectionStats()
