"""
Output handling for the YOLOv4 detection pipeline.

Responsibility:
    Route detection results to configured output sinks:
    display window, saved images, video files, JSON, CSV, or the
    letterboxed network input for debugging.
    Supports multiple orthogonal outputs simultaneously.

Non-goals:
    - No detection logic.
    - No input acquisition.
"""

import logging
from typing import Dict, List, Optional

import cv2
import numpy as np

from yolov4_detector.config import AppConfig, parse_output_modes, resolve_path
from yolov4_detector.detection import DetectionResult, DetectionStats
from yolov4_detector.serializer import save_csv, save_json
from yolov4_detector.visualizer import render, show_frame

logger = logging.getLogger(__name__)

_FILE_MODES = {"save_image", "save_video", "save_json", "save_csv", "save_preprocessed"}
_QUIT_KEYS = {ord("q"), 27}  # 'q' or ESC


class OutputHandler:
    """Routes detection results to configured output sinks.

    Modes (any combination):
        - 'display': Show annotated frames in an OpenCV window.
        - 'save_image': Write annotated frames to JPEG files.
        - 'save_video': Write annotated frames to a video file.
        - 'save_json': Accumulate detections, write JSON on finalize.
        - 'save_csv': Accumulate detections, write CSV on finalize.
        - 'save_preprocessed': Write the letterboxed network input per frame.

    Usage:
        handler = OutputHandler(config, fps=input_handler.fps)
        handler.process_frame(frame_id, frame, detections, stats=..., preprocessed=...)
        ...
        handler.finalize()  # Flush any buffered output
    """

    def __init__(self, config: AppConfig, fps: float = 20.0) -> None:
        """Initialize the output handler.

        Args:
            config: Application configuration (output mode, paths, vis params).
            fps: Frame rate for the saved video.
        """
        self._config = config
        self._fps = fps
        self._video_writer: Optional[cv2.VideoWriter] = None
        self._modes = parse_output_modes(config.output.mode)
        self._detections_buffer: Dict[int, List[DetectionResult]] = {}
        self._save_path = resolve_path(config.output.save_path)

        if self._modes & _FILE_MODES:
            self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    sorted(self._modes), self._save_path)

    @property
    def modes(self) -> set:
        return set(self._modes)

    def process_frame(
        self,
        frame_id: int,
        frame: np.ndarray,
        detections: List[DetectionResult],
        stats: Optional[DetectionStats] = None,
        preprocessed: Optional[np.ndarray] = None,
    ) -> bool:
        """Process a single frame's detections through the output pipeline.

        Args:
            frame_id: Frame index.
            frame: BGR frame the detections refer to.
            detections: DetectionResult objects for this frame.
            stats: Optional stats overlay (only drawn when output.show_stats).
            preprocessed: Letterboxed network input, for 'save_preprocessed'.

        Returns:
            True to continue processing, False to signal the caller
            should stop (user pressed 'q' or ESC in display mode).
        """
        if not self._config.output.show_stats:
            stats = None

        should_continue = True
        annotated: Optional[np.ndarray] = None

        if self._modes & {"display", "save_image", "save_video"}:
            annotated = render(frame, detections, self._config.visualization, stats)

        if "display" in self._modes:
            key = show_frame(annotated)
            if key in _QUIT_KEYS:
                logger.info("Quit signal received (key press).")
                should_continue = False

        if "save_image" in self._modes:
            output_file = self._save_path / f"frame_{frame_id:06d}.jpg"
            cv2.imwrite(str(output_file), annotated)
            logger.debug("Saved frame %d to %s", frame_id, output_file)

        if "save_video" in self._modes:
            self._write_video_frame(annotated)

        if "save_preprocessed" in self._modes and preprocessed is not None:
            output_file = self._save_path / f"preprocessed_{frame_id:06d}.png"
            cv2.imwrite(str(output_file), preprocessed)

        if self._modes & {"save_json", "save_csv"}:
            self._detections_buffer[frame_id] = list(detections)

        return should_continue

    def _write_video_frame(self, annotated: np.ndarray) -> None:
        if self._video_writer is None:
            output_file = str(self._save_path / "output.avi")
            h, w = annotated.shape[:2]
            fourcc = cv2.VideoWriter_fourcc(*"XVID")
            self._video_writer = cv2.VideoWriter(output_file, fourcc, self._fps, (w, h))
            logger.info("Video writer opened: %s (%dx%d @ %.1f FPS)", output_file, w, h, self._fps)

        self._video_writer.write(annotated)

    def finalize(self) -> None:
        """Flush buffered output and release resources.

        Must be called after all frames have been processed.
        """
        if "save_json" in self._modes and self._detections_buffer:
            save_json(self._detections_buffer, str(self._save_path / "detections.json"))

        if "save_csv" in self._modes and self._detections_buffer:
            save_csv(self._detections_buffer, str(self._save_path / "detections.csv"))

        if self._video_writer is not None:
            self._video_writer.release()
            self._video_writer = None
            logger.info("Video writer released.")

        if "display" in self._modes:
            cv2.destroyAllWindows()

        self._detections_buffer.clear()
        logger.info("OutputHandler finalized.")
