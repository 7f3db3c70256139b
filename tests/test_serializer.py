"""
Tests for JSON/CSV export.
"""

import csv
import json

from yolov4_detector.detection import BoundingBox, DetectionResult
from yolov4_detector.serializer import CSV_FIELDS, save_csv, save_json


def _detections():
    return {
        1: [DetectionResult(2, "car", 0.75, BoundingBox(5, 6, 7, 8))],
        0: [
            DetectionResult(0, "person", 0.9, BoundingBox(1, 2, 3, 4)),
            DetectionResult(0, "person", 0.6, BoundingBox(10, 20, 30, 40)),
        ],
    }


def test_save_json(tmp_path):
    path = tmp_path / "out" / "detections.json"

    save_json(_detections(), str(path))

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["total_frames"] == 2
    assert payload["total_detections"] == 3
    assert payload["class_counts"] == {"person": 2, "car": 1}
    assert [f["frame_id"] for f in payload["frames"]] == [0, 1]
    assert payload["frames"][1]["detections"][0]["class_name"] == "car"


def test_save_csv(tmp_path):
    path = tmp_path / "detections.csv"

    save_csv(_detections(), str(path))

    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert list(rows[0].keys()) == CSV_FIELDS
    assert len(rows) == 3
    assert rows[2]["class_name"] == "car"
    assert rows[2]["frame_id"] == "1"
    assert rows[0]["width"] == "3"
