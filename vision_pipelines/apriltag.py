"""
AprilTag detection adapter.

Wraps ``robotpy_apriltag.AprilTagDetector`` and converts its detections
into plain :class:`~vision_pipelines.base.Detection` records.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

import numpy as np

from utils.logging_utils import log_message

from .base import Detection

DEFAULT_TAG_FAMILY = "tag36h11"


class DetectionFailure(RuntimeError):
    """The detector could not process the supplied frame."""


class BaseTagDetector(ABC):
    """Abstract interface for fiducial detectors"""

    def __init__(self):
        self.initialized = False

    @abstractmethod
    def initialize(self) -> bool:
        """Create the underlying detector and register tag families"""
        pass

    @abstractmethod
    def detect(self, gray: np.ndarray) -> List[Detection]:
        """
        Detect tags in a single-channel image

        Args:
            gray: 2-D uint8 intensity image

        Returns:
            Detections in the order the detector reports them

        Raises:
            DetectionFailure: malformed frame, uninitialized detector or
                an internal detector fault
        """
        pass

    @abstractmethod
    def reset(self):
        """Drop detector state between sessions"""
        pass

    @abstractmethod
    def cleanup(self):
        """Release resources"""
        pass


class AprilTagDetectorAdapter(BaseTagDetector):
    """AprilTag detector for a single tag family"""

    def __init__(self, family: str = DEFAULT_TAG_FAMILY, detector: Optional[Any] = None):
        """
        Args:
            family: Tag family registered with the detector
            detector: Pre-built detector exposing ``addFamily``/``detect``;
                a ``robotpy_apriltag.AprilTagDetector`` is created when omitted
        """
        super().__init__()
        self.family = family
        self._detector = detector

    def initialize(self) -> bool:
        if self.initialized:
            return True
        if self._detector is None:
            import robotpy_apriltag

            self._detector = robotpy_apriltag.AprilTagDetector()
        if not self._detector.addFamily(self.family):
            log_message(f"[APRILTAG] Could not add tag family '{self.family}'", level="error")
            return False
        self.initialized = True
        log_message(f"[APRILTAG] Detector ready for family {self.family}")
        return True

    def detect(self, gray: np.ndarray) -> List[Detection]:
        if not self.initialized or self._detector is None:
            raise DetectionFailure("detector not initialized")
        if not isinstance(gray, np.ndarray) or gray.ndim != 2 or gray.size == 0:
            shape = getattr(gray, "shape", None)
            raise DetectionFailure(f"expected a single-channel image, got shape {shape}")
        if gray.dtype != np.uint8:
            raise DetectionFailure(f"expected uint8 pixels, got {gray.dtype}")

        try:
            raw = self._detector.detect(gray)
            return [self._convert(tag) for tag in raw]
        except DetectionFailure:
            raise
        except Exception as exc:
            raise DetectionFailure(f"detector fault: {exc}") from exc

    @staticmethod
    def _convert(tag: Any) -> Detection:
        corners = []
        for index in range(4):
            point = tag.getCorner(index)
            corners.append((float(point.x), float(point.y)))
        center = tag.getCenter()
        return Detection(
            tag_id=int(tag.getId()),
            corners=tuple(corners),
            center_x=float(center.x),
            center_y=float(center.y),
        )

    def reset(self):
        """The AprilTag detector keeps no per-frame state."""

    def cleanup(self):
        if self._detector is not None and self.initialized:
            self._detector.clearFamilies()
        self.initialized = False


__all__ = [
    "AprilTagDetectorAdapter",
    "BaseTagDetector",
    "DEFAULT_TAG_FAMILY",
    "DetectionFailure",
]
