"""
Detector — the single public API for YOLOv4 object detection.

This module is the ONLY intended programmatic entry point for consumers
of the detection library. All other modules are internal.

Public contract:
    Detector.detect_frame(frame: np.ndarray, ...) -> list[DetectionResult]
    Detector.detect_image(image: np.ndarray | path, ...) -> list[DetectionResult]

Diagnostics (read-only):
    last_inference_time, input_size, last_preprocessed_image

Constraints:
    - Live frames are BGR or BGRA numpy arrays (OpenCV / camera buffers).
    - Still images are decoded bitmaps (grayscale, RGB or RGBA) or paths.
    - Thread-safety is not guaranteed (single-threaded design).

Non-goals:
    - No camera access, visualization or output writing.
    - No tracking or temporal state beyond the diagnostics above.
"""

import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np

from yolov4_detector.config import AppConfig, load_config, validate_threshold
from yolov4_detector.detection import DetectionResult
from yolov4_detector.model_loader import load_class_names, load_model, resolve_input_size
from yolov4_detector.postprocessor import postprocess
from yolov4_detector.preprocessor import preprocess

logger = logging.getLogger(__name__)

_IMAGE_CONVERSIONS = {
    ("rgb", 3): cv2.COLOR_RGB2BGR,
    ("rgb", 4): cv2.COLOR_RGBA2BGR,
    ("bgr", 4): cv2.COLOR_BGRA2BGR,
}


class Detector:
    """YOLOv4 object detector using OpenCV DNN.

    This is the single public API for the detection system. The internal
    modules (preprocessor, postprocessor, model_loader) are wired together
    here and should not be used directly.

    Usage:
        detector = Detector()                           # Built-in model
        detector = Detector(config=my_config)           # Custom config
        detector = Detector.from_paths(weights, cfg, names)
        results = detector.detect_frame(bgr_frame)
        results = detector.detect_image(rgb_image, confidence_threshold=0.4)

    The constructor loads the model once. Subsequent detection calls
    reuse the loaded network — there is no per-frame setup cost
    beyond preprocessing and inference.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        """Initialize the detector and load the model.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).

        Raises:
            FileNotFoundError: If model files are missing.
            RuntimeError: If the network cannot be loaded or the requested
                          backend is unavailable.
            ValueError: If configuration values are invalid.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._net = load_model(config.model)
        self._output_names = list(self._net.getUnconnectedOutLayersNames())
        self._class_names = load_class_names(config.model)
        self._input_size = resolve_input_size(config.model)

        self._last_inference_time = 0.0
        self._last_preprocessed_image: Optional[np.ndarray] = None

        logger.info(
            "Detector initialized (backend=%s, input_size=%dx%d, classes=%d)",
            config.model.backend,
            self._input_size[0],
            self._input_size[1],
            len(self._class_names),
        )

    @classmethod
    def from_paths(
        cls,
        model_path: Union[str, Path],
        config_path: Union[str, Path],
        names_path: Union[str, Path],
        backend: str = "cpu",
        config: Optional[AppConfig] = None,
    ) -> "Detector":
        """Create a detector from explicit weights, cfg and names files."""
        base = config if config is not None else load_config()
        model = replace(
            base.model,
            weights_path=str(model_path),
            config_path=str(config_path),
            names_path=str(names_path),
            backend=backend,
        )
        return cls(replace(base, model=model))

    # ------------------------------------------------------------------
    # Detection entry points
    # ------------------------------------------------------------------

    def detect_frame(
        self,
        frame: np.ndarray,
        confidence_threshold: Optional[float] = None,
        nms_threshold: Optional[float] = None,
    ) -> List[DetectionResult]:
        """Detect objects in a live camera or video frame.

        Args:
            frame: BGR (H, W, 3) or BGRA (H, W, 4) uint8 array.
            confidence_threshold: Minimum class score. Defaults to config.
            nms_threshold: NMS IoU threshold. Defaults to config.

        Returns:
            DetectionResult list sorted by confidence (descending); empty
            if nothing passes the thresholds. Boxes are in the coordinate
            space of the frame after optional portrait rotation.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame is empty, has the wrong shape, or a
                        threshold is outside [0, 1].
        """
        self._validate_array(frame, allowed_channels=(3, 4))

        return self._run(self.orient_frame(frame), confidence_threshold, nms_threshold)

    def orient_frame(self, frame: np.ndarray) -> np.ndarray:
        """Return the BGR frame detect_frame actually runs on.

        Drops the alpha channel and, when input.rotate_landscape is set,
        rotates landscape frames 90 degrees clockwise. Callers drawing the
        returned boxes should draw on this frame.
        """
        bgr = frame if frame.shape[2] == 3 else cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)

        h, w = bgr.shape[:2]
        if self._config.input.rotate_landscape and w > h:
            bgr = cv2.rotate(bgr, cv2.ROTATE_90_CLOCKWISE)
        return bgr

    def detect_image(
        self,
        image: Union[np.ndarray, str, Path],
        confidence_threshold: Optional[float] = None,
        nms_threshold: Optional[float] = None,
        channel_order: str = "rgb",
    ) -> List[DetectionResult]:
        """Detect objects in a still image.

        Args:
            image: Decoded bitmap, either grayscale (H, W), RGB (H, W, 3) or
                   RGBA (H, W, 4), or a path readable by cv2.imread.
            confidence_threshold: Minimum class score. Defaults to config.
            nms_threshold: NMS IoU threshold. Defaults to config.
            channel_order: 'rgb' for bitmaps from PIL and similar decoders,
                           'bgr' for arrays produced by OpenCV. Ignored
                           for paths.

        Returns:
            DetectionResult list sorted by confidence (descending).

        Raises:
            FileNotFoundError: If a path cannot be read as an image.
            TypeError: If image is neither an ndarray nor a path.
            ValueError: On an empty or malformed array, an unknown
                        channel_order, or a threshold outside [0, 1].
        """
        if isinstance(image, (str, Path)):
            bgr = cv2.imread(str(image), cv2.IMREAD_COLOR)
            if bgr is None:
                raise FileNotFoundError(f"Could not read image: '{image}'.")
            return self._run(bgr, confidence_threshold, nms_threshold)

        if channel_order not in ("rgb", "bgr"):
            raise ValueError(
                f"channel_order must be 'rgb' or 'bgr', got '{channel_order}'."
            )

        self._validate_array(image, allowed_channels=(1, 3, 4), allow_2d=True)

        if image.ndim == 2 or image.shape[2] == 1:
            bgr = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        else:
            conversion = _IMAGE_CONVERSIONS.get((channel_order, image.shape[2]))
            bgr = image if conversion is None else cv2.cvtColor(image, conversion)

        return self._run(bgr, confidence_threshold, nms_threshold)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def last_inference_time(self) -> float:
        """Latency of the most recent detection call in milliseconds."""
        return self._last_inference_time

    @property
    def input_size(self) -> Tuple[int, int]:
        """Network input (width, height)."""
        return self._input_size

    @property
    def last_preprocessed_image(self) -> Optional[np.ndarray]:
        """Letterboxed BGR network input of the most recent call, if any."""
        return self._last_preprocessed_image

    @property
    def class_names(self) -> List[str]:
        return list(self._class_names)

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self,
        bgr: np.ndarray,
        confidence_threshold: Optional[float],
        nms_threshold: Optional[float],
    ) -> List[DetectionResult]:
        if confidence_threshold is None:
            confidence_threshold = self._config.detection.confidence_threshold
        if nms_threshold is None:
            nms_threshold = self._config.detection.nms_threshold
        validate_threshold("confidence_threshold", confidence_threshold)
        validate_threshold("nms_threshold", nms_threshold)

        start = time.perf_counter()

        # Preprocess: frame → letterboxed blob
        prepared = preprocess(bgr, self._input_size, self._config.model)

        # Inference
        self._net.setInput(prepared.blob)
        outputs = self._net.forward(self._output_names)

        # Postprocess: raw output → DetectionResult list
        h, w = bgr.shape[:2]
        detections = postprocess(
            outputs=outputs,
            transform=prepared.transform,
            input_size=self._input_size,
            frame_width=w,
            frame_height=h,
            class_names=self._class_names,
            confidence_threshold=confidence_threshold,
            nms_threshold=nms_threshold,
        )

        self._last_inference_time = (time.perf_counter() - start) * 1000.0
        self._last_preprocessed_image = prepared.image

        logger.debug(
            "Detected %d objects in %.1f ms", len(detections), self._last_inference_time
        )
        return detections

    @staticmethod
    def _validate_array(
        array: np.ndarray,
        allowed_channels: Tuple[int, ...],
        allow_2d: bool = False,
    ) -> None:
        """Validate that the input array meets the API contract.

        Raises:
            TypeError: If array is not a uint8 numpy ndarray.
            ValueError: If array is empty or has wrong dimensions.
        """
        if not isinstance(array, np.ndarray):
            raise TypeError(
                f"Expected a numpy ndarray, got {type(array).__name__}. "
                f"Use cv2.imread() or VideoCapture.read() to obtain frames."
            )

        if array.size == 0:
            raise ValueError(
                "Frame is empty (zero size). "
                "Ensure the input source is providing valid frames."
            )

        if array.dtype != np.uint8:
            raise TypeError(
                f"Expected a uint8 frame, got dtype {array.dtype}. "
                f"Convert with array.astype(np.uint8) after scaling to 0-255."
            )

        if array.ndim == 2 and allow_2d:
            return

        if array.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional frame (H, W, C), "
                f"got {array.ndim} dimensions with shape {array.shape}."
            )

        if array.shape[2] not in allowed_channels:
            raise ValueError(
                f"Expected {' or '.join(map(str, allowed_channels))} channels, "
                f"got {array.shape[2]} channels."
            )
