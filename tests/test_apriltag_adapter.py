import sys
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from vision_pipelines.apriltag import AprilTagDetectorAdapter, DetectionFailure


class FakeTag:
    """Looks like a ``robotpy_apriltag.AprilTagDetection``."""

    def __init__(self, tag_id, corners, center):
        self._id = tag_id
        self._corners = corners
        self._center = center

    def getId(self):  # noqa: N802
        return self._id

    def getCorner(self, index):  # noqa: N802
        x, y = self._corners[index]
        return SimpleNamespace(x=x, y=y)

    def getCenter(self):  # noqa: N802
        x, y = self._center
        return SimpleNamespace(x=x, y=y)


class FakeAprilTagDetector:
    def __init__(self, tags=(), error=None, accept_family=True):
        self.tags = list(tags)
        self.error = error
        self.accept_family = accept_family
        self.families = []
        self.images = []

    def addFamily(self, family):  # noqa: N802
        if self.accept_family:
            self.families.append(family)
        return self.accept_family

    def clearFamilies(self):  # noqa: N802
        self.families.clear()

    def detect(self, image):
        self.images.append(image)
        if self.error is not None:
            raise self.error
        return self.tags


GRAY = np.zeros((48, 64), dtype=np.uint8)


def test_initialize_registers_single_family():
    raw = FakeAprilTagDetector()
    adapter = AprilTagDetectorAdapter(detector=raw)

    assert adapter.initialize()
    assert adapter.initialize()
    assert raw.families == ["tag36h11"]


def test_initialize_reports_unknown_family():
    adapter = AprilTagDetectorAdapter("tag99", detector=FakeAprilTagDetector(accept_family=False))
    assert not adapter.initialize()
    assert not adapter.initialized


def test_detect_converts_tags_in_detector_order():
    corners = [(1.0, 9.0), (9.0, 9.0), (9.0, 1.0), (1.0, 1.0)]
    raw = FakeAprilTagDetector(
        [
            FakeTag(6, corners, (5.0, 5.0)),
            FakeTag(2, [(x + 20, y) for x, y in corners], (25.0, 5.0)),
        ]
    )
    adapter = AprilTagDetectorAdapter(detector=raw)
    adapter.initialize()

    detections = adapter.detect(GRAY)

    assert [d.tag_id for d in detections] == [6, 2]
    assert detections[0].corners == tuple(corners)
    assert (detections[1].center_x, detections[1].center_y) == (25.0, 5.0)
    assert raw.images[0] is GRAY


def test_detect_before_initialize_fails():
    with pytest.raises(DetectionFailure):
        AprilTagDetectorAdapter(detector=FakeAprilTagDetector()).detect(GRAY)


@pytest.mark.parametrize(
    "image",
    [
        None,
        np.zeros((48, 64, 3), dtype=np.uint8),
        np.zeros((48, 64), dtype=np.float32),
        np.zeros((0, 0), dtype=np.uint8),
    ],
)
def test_detect_rejects_malformed_frames(image):
    adapter = AprilTagDetectorAdapter(detector=FakeAprilTagDetector())
    adapter.initialize()
    with pytest.raises(DetectionFailure):
        adapter.detect(image)


def test_detector_faults_become_detection_failures():
    adapter = AprilTagDetectorAdapter(detector=FakeAprilTagDetector(error=RuntimeError("boom")))
    adapter.initialize()

    with pytest.raises(DetectionFailure) as info:
        adapter.detect(GRAY)
    assert isinstance(info.value.__cause__, RuntimeError)


def test_cleanup_clears_families():
    raw = FakeAprilTagDetector()
    adapter = AprilTagDetectorAdapter(detector=raw)
    adapter.initialize()
    adapter.cleanup()

    assert raw.families == []
    assert not adapter.initialized
