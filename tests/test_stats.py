"""
Tests for the stats tracker.
"""

import pytest

from yolov4_detector.detection import DetectionStats
from yolov4_detector.stats import StatsTracker


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_no_snapshot_before_window_elapses():
    clock = FakeClock()
    tracker = StatsTracker(clock=clock)

    clock.now += 0.5
    assert tracker.record(12.0, 3) == DetectionStats()


def test_snapshot_after_window():
    clock = FakeClock()
    tracker = StatsTracker(clock=clock)

    for _ in range(7):
        clock.now += 0.125
        tracker.record(20.0, 1)
    clock.now += 0.125
    stats = tracker.record(25.0, 4)

    assert stats.fps == pytest.approx(8.0)
    assert stats.inference_time == 25.0
    assert stats.detection_count == 4
    assert tracker.stats == stats


def test_reset_clears_counters():
    clock = FakeClock()
    tracker = StatsTracker(clock=clock)
    clock.now += 2.0
    tracker.record(5.0, 1)

    tracker.reset()

    assert tracker.stats == DetectionStats()


def test_invalid_window():
    with pytest.raises(ValueError):
        StatsTracker(window=0)
