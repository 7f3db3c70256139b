"""
Serialization for the YOLOv4 detection pipeline.

Responsibility:
    Export detection results to structured file formats (JSON, CSV)
    for downstream consumption or offline analysis.

Non-goals:
    - No rendering, display, or detection logic.
    - No streaming output — writes complete files on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List

from yolov4_detector.detection import DetectionResult

logger = logging.getLogger(__name__)

CSV_FIELDS = ["frame_id", "class_id", "class_name", "confidence", "x", "y", "width", "height"]


def save_json(
    detections_by_frame: Dict[int, List[DetectionResult]],
    output_path: str,
) -> None:
    """Export all detections to a JSON file.

    Output schema:
        {
            "frames": [
                {
                    "frame_id": 0,
                    "detections": [
                        {"class_id": ..., "class_name": ..., "confidence": ...,
                         "x": ..., "y": ..., "width": ..., "height": ...}
                    ]
                }
            ],
            "total_frames": N,
            "total_detections": M,
            "class_counts": {"person": K, ...}
        }

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    frames = []
    total_detections = 0
    class_counts: Dict[str, int] = {}

    for frame_id in sorted(detections_by_frame.keys()):
        dets = detections_by_frame[frame_id]
        total_detections += len(dets)
        for det in dets:
            class_counts[det.class_name] = class_counts.get(det.class_name, 0) + 1
        frames.append({
            "frame_id": frame_id,
            "detections": [d.to_dict() for d in dets],
        })

    payload = {
        "frames": frames,
        "total_frames": len(frames),
        "total_detections": total_detections,
        "class_counts": class_counts,
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(
        "JSON output saved: %s (%d frames, %d detections)",
        output_path, len(frames), total_detections,
    )


def save_csv(
    detections_by_frame: Dict[int, List[DetectionResult]],
    output_path: str,
) -> None:
    """Export all detections to a CSV file, one row per detection.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()

        total = 0
        for frame_id in sorted(detections_by_frame.keys()):
            for det in detections_by_frame[frame_id]:
                writer.writerow({"frame_id": frame_id, **det.to_dict()})
                total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
