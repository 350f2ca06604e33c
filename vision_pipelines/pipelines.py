"""Concrete pipeline implementations."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np

from .apriltag import AprilTagDetectorAdapter, BaseTagDetector, DetectionFailure
from .base import NO_TARGET, Detection, PipelineResult, VisionPipeline

# Tags mounted on the amp; their center is published separately.
AMP_TAG_IDS = frozenset({5, 6})

OUTLINE_COLOR = (0, 0, 255)
OUTLINE_THICKNESS = 3
DEBUG_MARKER_CENTER = (5, 5)
DEBUG_MARKER_RADIUS = 4
DEBUG_MARKER_COLOR = (0, 255, 0)


def to_grayscale(frame: np.ndarray) -> np.ndarray:
    """Return a single-channel view of ``frame`` suitable for the detector."""
    if not isinstance(frame, np.ndarray) or frame.size == 0:
        raise DetectionFailure("malformed frame")
    if frame.ndim == 2:
        return frame
    if frame.ndim == 3 and frame.shape[2] == 1:
        return np.ascontiguousarray(frame[:, :, 0])
    if frame.ndim == 3 and frame.shape[2] in (3, 4):
        code = cv2.COLOR_BGR2GRAY if frame.shape[2] == 3 else cv2.COLOR_BGRA2GRAY
        try:
            return cv2.cvtColor(frame, code)
        except cv2.error as exc:
            raise DetectionFailure(f"cannot convert {frame.dtype} frame to grayscale") from exc
    raise DetectionFailure(f"unsupported frame shape {frame.shape}")


def annotation_canvas(frame: np.ndarray, gray: np.ndarray) -> np.ndarray:
    """Return the BGR image overlays are drawn on.

    Color frames are annotated in place; single-channel frames are expanded
    to BGR so the colored overlays stay visible.
    """
    if frame.ndim == 3 and frame.shape[2] in (3, 4):
        return frame
    try:
        return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)
    except cv2.error as exc:
        raise DetectionFailure(f"cannot annotate {gray.dtype} frame") from exc


def draw_tag_outline(frame: np.ndarray, detection: Detection) -> None:
    """Outline a detection as a closed polygon through its four corners."""
    points = np.array(
        [[int(round(x)), int(round(y))] for x, y in detection.corners],
        dtype=np.int32,
    ).reshape((-1, 1, 2))
    cv2.polylines(frame, [points], True, OUTLINE_COLOR, OUTLINE_THICKNESS)


def draw_debug_marker(frame: np.ndarray) -> None:
    cv2.circle(frame, DEBUG_MARKER_CENTER, DEBUG_MARKER_RADIUS, DEBUG_MARKER_COLOR)


class AmpTagPipeline(VisionPipeline):
    """Outline every AprilTag in view and report where the amp is.

    The target count covers every detection. The amp center comes from the
    last detection in detector order whose id is an amp tag; when no amp
    tag is visible it falls back to ``NO_TARGET`` unless
    ``hold_last_amp_center`` is enabled, in which case the previous
    position is kept.
    """

    pipeline_type = "amp_tags"

    def __init__(
        self,
        camera_name: str,
        config: Optional[Dict[str, Any]] = None,
        detector: Optional[BaseTagDetector] = None,
    ):
        super().__init__(camera_name, config)
        self.hold_last_amp_center = bool(self.config.get("hold_last_amp_center", False))
        self.detector = detector or AprilTagDetectorAdapter(
            family=self.config.get("tag_family", "tag36h11")
        )
        self._last_amp_center: Tuple[float, float] = (NO_TARGET, NO_TARGET)

    def process(self, frame: np.ndarray, timestamp: float) -> PipelineResult:
        if not self.detector.initialized and not self.detector.initialize():
            raise DetectionFailure("detector not initialized")

        # Detection runs before any drawing so a failure leaves the frame untouched.
        gray = to_grayscale(frame)
        detections: List[Detection] = self.detector.detect(gray)
        canvas = annotation_canvas(frame, gray)

        if self.hold_last_amp_center:
            amp_x, amp_y = self._last_amp_center
        else:
            amp_x, amp_y = NO_TARGET, NO_TARGET

        for detection in detections:
            draw_tag_outline(canvas, detection)
            if detection.tag_id in AMP_TAG_IDS:
                amp_x, amp_y = detection.center_x, detection.center_y

        draw_debug_marker(canvas)
        self._last_amp_center = (amp_x, amp_y)

        return PipelineResult(
            annotated_frame=canvas,
            target_count=len(detections),
            amp_center_x=amp_x,
            amp_center_y=amp_y,
            timestamp=timestamp,
            detections=tuple(detections),
        )

    def reset(self) -> None:
        self._last_amp_center = (NO_TARGET, NO_TARGET)
        self.detector.reset()


__all__ = [
    "AMP_TAG_IDS",
    "AmpTagPipeline",
    "annotation_canvas",
    "draw_debug_marker",
    "draw_tag_outline",
    "to_grayscale",
]
