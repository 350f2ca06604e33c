"""Base classes and dataclasses for vision pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import numpy as np

# Sentinel published while no amp tag is in view.
NO_TARGET = -1.0


@dataclass(frozen=True)
class Detection:
    """A single fiducial detection in image pixel coordinates.

    ``corners`` wrap counter-clockwise around the tag, starting with the
    bottom-left corner.
    """

    tag_id: int
    corners: Tuple[Tuple[float, float], ...]
    center_x: float
    center_y: float


@dataclass
class PipelineResult:
    """Per-frame output of a vision pipeline."""

    annotated_frame: np.ndarray
    target_count: int = 0
    amp_center_x: float = NO_TARGET
    amp_center_y: float = NO_TARGET
    timestamp: float = 0.0
    detections: Tuple[Detection, ...] = ()

    def scalars(self) -> Dict[str, Any]:
        return {
            "target_count": self.target_count,
            "amp_center_x": self.amp_center_x,
            "amp_center_y": self.amp_center_y,
        }


class VisionPipeline:
    """Abstract base class for camera pipelines."""

    pipeline_type: str = "base"

    def __init__(self, camera_name: str, config: Dict[str, Any] | None = None):
        self.camera_name = camera_name
        self.config = dict(config or {})

    def process(self, frame: np.ndarray, timestamp: float) -> PipelineResult:
        """Process a frame and return a :class:`PipelineResult`.

        Subclasses should override this method. The default implementation
        returns the frame untouched with no targets.
        """

        return PipelineResult(annotated_frame=frame, timestamp=timestamp)

    def reset(self) -> None:
        """Forget any state carried between frames."""


__all__ = ["Detection", "NO_TARGET", "PipelineResult", "VisionPipeline"]
