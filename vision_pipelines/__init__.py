"""Vision pipeline runtime for AprilTag processing on the coprocessor."""

from .apriltag import AprilTagDetectorAdapter, DetectionFailure
from .base import NO_TARGET, Detection, PipelineResult, VisionPipeline
from .events import VisionEventBus
from .manager import VisionPipelineManager
from .pipelines import AMP_TAG_IDS, AmpTagPipeline
from .publisher import DataSink, ResultPublisher

__all__ = [
    "AMP_TAG_IDS",
    "AmpTagPipeline",
    "AprilTagDetectorAdapter",
    "DataSink",
    "Detection",
    "DetectionFailure",
    "NO_TARGET",
    "PipelineResult",
    "ResultPublisher",
    "VisionEventBus",
    "VisionPipeline",
    "VisionPipelineManager",
]
