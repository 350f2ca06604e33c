import sys
from pathlib import Path

import numpy as np

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.config import CameraConfig
from tests.fakes import FakeCameraServer
from utils.camera_hub import CameraRegistry, CvSinkFrameSource, CvSourceFrameSink, start_cameras


def test_start_cameras_builds_registry_in_declaration_order():
    configs = [CameraConfig("left", "/dev/video0"), CameraConfig("right", "/dev/video2")]
    started = []

    def starter(config):
        started.append(config.name)
        return f"usb:{config.path}"

    registry = start_cameras(configs, starter)

    assert started == ["left", "right"]
    assert len(registry) == 2
    assert registry.names == ("left", "right")
    assert registry.source(1) == "usb:/dev/video2"
    assert registry.config(0) is configs[0]
    assert registry.index_of("right") == 1
    assert registry.index_of("RIGHT") is None
    assert [config.name for config, _ in registry] == ["left", "right"]


def test_empty_registry():
    registry = CameraRegistry()
    assert len(registry) == 0
    assert registry.names == ()
    assert registry.index_of("left") is None


def test_frame_source_returns_frames_and_none_on_error():
    frame = np.full((4, 6, 3), 7, dtype=np.uint8)
    server = FakeCameraServer(frames=[frame, None])
    source = CvSinkFrameSource("camera-0", width=6, height=4, camera_server=server)

    assert server.video_requests == ["camera-0"]
    assert source.next_frame() is frame
    assert source.next_frame() is None


def test_frame_sink_forwards_to_output_stream():
    server = FakeCameraServer()
    sink = CvSourceFrameSink("Goal Vision Stream (Buddy)", 1280, 720, camera_server=server)
    frame = np.zeros((2, 2, 3), dtype=np.uint8)

    sink.put_frame(frame)

    output = server.outputs["Goal Vision Stream (Buddy)"]
    assert (output.width, output.height) == (1280, 720)
    assert output.source.frames == [frame]
