"""
Input handling for the YOLOv4 detection pipeline.

Responsibility:
    Abstract away frame acquisition from images, video files, image
    directories, and webcam streams. Provides a uniform iterator
    interface yielding (frame_id, frame) tuples of BGR frames.

Non-goals:
    - No detection, drawing, or output writing.
    - No infinite retry on bad sources.
    - No implicit fallback between source types.

Robustness:
    - Validates the source at initialization time.
    - Logs and skips unreadable frames (never crashes the pipeline).
    - Releases resources on cleanup.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}
VIDEO_EXTENSIONS = {".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".m4v"}

# A webcam that fails this many reads in a row is treated as gone
_MAX_CONSECUTIVE_FAILURES = 30

_DEFAULT_FPS = 20.0


class InputHandler:
    """Uniform frame iterator for images, videos, and webcam streams.

    The source type is auto-detected at initialization:
        - Integer or digit string  → webcam device index
        - File with image extension → single image
        - File with video extension → video file
        - Directory path → all images in directory (sorted)

    Usage:
        with InputHandler(source="path/to/video.mp4") as handler:
            for frame_id, frame in handler:
                ...

    Invalid frames are logged and skipped. The iterator never raises
    on a single bad frame.
    """

    def __init__(
        self,
        source: Union[str, int],
        resize_width: Optional[int] = None,
    ) -> None:
        """Initialize the input handler and validate the source.

        Args:
            source: File path, directory path, video path, or integer
                    device index (or digit string like "0").
            resize_width: Optional width to downscale frames. Aspect ratio
                          is preserved. None means no resizing.

        Raises:
            FileNotFoundError: If a file/directory source does not exist.
            ValueError: If the source type cannot be determined.
            RuntimeError: If a video/webcam source cannot be opened.
        """
        self._resize_width = resize_width
        self._cap: Optional[cv2.VideoCapture] = None
        self._image_paths: List[Path] = []

        source_str = str(source).strip()
        path = Path(source_str)

        if source_str.isdigit():
            self._mode = "webcam"
            self._open_video_capture(int(source_str))
        elif path.is_file():
            ext = path.suffix.lower()
            if ext in IMAGE_EXTENSIONS:
                self._mode = "image"
                self._image_paths = [path]
            elif ext in VIDEO_EXTENSIONS:
                self._mode = "video"
                self._open_video_capture(source_str)
            else:
                raise ValueError(
                    f"Unrecognized file extension: '{ext}' for source '{source_str}'. "
                    f"Supported images: {sorted(IMAGE_EXTENSIONS)}. "
                    f"Supported videos: {sorted(VIDEO_EXTENSIONS)}."
                )
        elif path.is_dir():
            self._mode = "directory"
            self._image_paths = sorted(
                p for p in path.iterdir() if p.suffix.lower() in IMAGE_EXTENSIONS
            )
            if not self._image_paths:
                raise ValueError(
                    f"No image files found in directory: '{source_str}'. "
                    f"Supported extensions: {sorted(IMAGE_EXTENSIONS)}."
                )
            logger.info("Found %d images in directory: %s", len(self._image_paths), source_str)
        else:
            raise FileNotFoundError(
                f"Input source not found: '{source_str}'. "
                f"Provide a valid file path, directory, or device index."
            )

        logger.info("InputHandler initialized: mode=%s, source=%s", self._mode, source_str)

    @property
    def mode(self) -> str:
        """Source type: 'image', 'directory', 'video' or 'webcam'."""
        return self._mode

    @property
    def is_live(self) -> bool:
        """True for camera and video sources, whose frames go to detect_frame."""
        return self._mode in ("video", "webcam")

    @property
    def fps(self) -> float:
        """Frame rate reported by the capture device, or a 20 FPS default."""
        if self._cap is not None:
            reported = self._cap.get(cv2.CAP_PROP_FPS)
            if reported and reported > 0:
                return float(reported)
        return _DEFAULT_FPS

    def _open_video_capture(self, source: Union[str, int]) -> None:
        """Open a VideoCapture and validate it.

        Raises:
            RuntimeError: If the source cannot be opened.
        """
        self._cap = cv2.VideoCapture(source)
        if not self._cap.isOpened():
            source_desc = (
                f"webcam device {source}" if isinstance(source, int)
                else f"video file '{source}'"
            )
            raise RuntimeError(
                f"Failed to open {source_desc}. "
                f"Ensure the source exists and is accessible."
            )

    def __iter__(self) -> Iterator[Tuple[int, np.ndarray]]:
        """Yield (frame_id, frame) pairs; frame_id is 0-based."""
        if self.is_live:
            yield from self._iterate_video()
        else:
            yield from self._iterate_images()

    def _iterate_images(self) -> Iterator[Tuple[int, np.ndarray]]:
        for idx, path in enumerate(self._image_paths):
            frame = cv2.imread(str(path))
            if frame is None:
                logger.warning(
                    "Skipping unreadable image (frame_id=%d): %s", idx, path
                )
                continue
            yield idx, self._maybe_resize(frame)

    def _iterate_video(self) -> Iterator[Tuple[int, np.ndarray]]:
        frame_id = 0
        consecutive_failures = 0

        while self._cap is not None:
            ret, frame = self._cap.read()

            if not ret or frame is None:
                if self._mode == "video":
                    logger.info("End of video reached at frame %d.", frame_id)
                    break
                consecutive_failures += 1
                if consecutive_failures >= _MAX_CONSECUTIVE_FAILURES:
                    logger.error(
                        "Webcam produced %d consecutive failed reads. "
                        "Stopping to avoid infinite loop.",
                        _MAX_CONSECUTIVE_FAILURES,
                    )
                    break
                logger.warning(
                    "Failed to read frame %d from webcam, skipping.", frame_id
                )
                frame_id += 1
                continue

            consecutive_failures = 0
            yield frame_id, self._maybe_resize(frame)
            frame_id += 1

    def _maybe_resize(self, frame: np.ndarray) -> np.ndarray:
        """Downscale to resize_width if the frame is wider, preserving aspect ratio."""
        if self._resize_width is None:
            return frame

        h, w = frame.shape[:2]
        if w <= self._resize_width:
            return frame

        new_h = max(1, int(h * self._resize_width / w))
        return cv2.resize(frame, (self._resize_width, new_h), interpolation=cv2.INTER_AREA)

    def release(self) -> None:
        """Release any held resources (video capture handles)."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.debug("VideoCapture released.")

    def __enter__(self) -> "InputHandler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __del__(self) -> None:
        if getattr(self, "_cap", None) is not None:
            self.release()
