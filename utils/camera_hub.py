"""
Camera sources shared by the vision pipeline and the switched streams.

cscore owns the physical devices: every configured camera is opened once,
served over MJPEG, and recorded in a :class:`CameraRegistry`.  The
registry is built a single time at startup and handed by reference to
everything that needs camera lookups, so the list never changes while
switched-camera callbacks and the pipeline worker read it from other
threads.

The frame source and sink adapters bridge cscore's ``CvSink``/``CvSource``
to the plain ``next_frame``/``put_frame`` calls the pipeline worker uses.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from app.config import CameraConfig
from utils.logging_utils import log_message


def _camera_server(camera_server: Optional[Any]) -> Any:
    if camera_server is not None:
        return camera_server
    from cscore import CameraServer

    return CameraServer


class CameraRegistry:
    """Immutable, index-addressed list of started cameras."""

    def __init__(self, entries: Iterable[Tuple[CameraConfig, Any]] = ()) -> None:
        pairs = tuple(entries)
        self._configs: Tuple[CameraConfig, ...] = tuple(config for config, _ in pairs)
        self._sources: Tuple[Any, ...] = tuple(source for _, source in pairs)

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[Tuple[CameraConfig, Any]]:
        return iter(zip(self._configs, self._sources))

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(config.name for config in self._configs)

    def config(self, index: int) -> CameraConfig:
        return self._configs[index]

    def source(self, index: int) -> Any:
        return self._sources[index]

    def index_of(self, name: str) -> Optional[int]:
        """Index of the first camera called ``name`` (case-sensitive)."""
        for index, config in enumerate(self._configs):
            if config.name == name:
                return index
        return None


def start_camera(config: CameraConfig, camera_server: Optional[Any] = None) -> Any:
    """Open a USB camera, serve it over MJPEG and apply its JSON settings."""
    from cscore import UsbCamera, VideoSource

    server_api = _camera_server(camera_server)
    log_message(f"Starting camera '{config.name}' on {config.path}")
    camera = UsbCamera(config.name, config.path)
    server = server_api.startAutomaticCapture(camera=camera)

    camera.setConfigJson(json.dumps(config.raw_config))
    camera.setConnectionStrategy(VideoSource.ConnectionStrategy.kConnectionKeepOpen)

    if config.stream_config is not None:
        server.setConfigJson(json.dumps(config.stream_config))

    return camera


def start_cameras(
    configs: Sequence[CameraConfig],
    starter=start_camera,
) -> CameraRegistry:
    """Start every configured camera and freeze them into a registry."""
    return CameraRegistry((config, starter(config)) for config in configs)


class CvSinkFrameSource:
    """Blocking frame reader for one camera."""

    def __init__(
        self,
        camera: Any,
        width: int = 1280,
        height: int = 720,
        camera_server: Optional[Any] = None,
    ) -> None:
        self._sink = _camera_server(camera_server).getVideo(camera=camera)
        self._buffer = np.zeros((height, width, 3), dtype=np.uint8)

    def next_frame(self) -> Optional[np.ndarray]:
        frame_time, frame = self._sink.grabFrame(self._buffer)
        if frame_time == 0:
            log_message(f"[CAMERA] Frame grab failed: {self._sink.getError()}", level="warning")
            return None
        self._buffer = frame
        return frame


class CvSourceFrameSink:
    """MJPEG output stream for annotated frames."""

    def __init__(
        self,
        name: str,
        width: int,
        height: int,
        camera_server: Optional[Any] = None,
    ) -> None:
        self.name = name
        self._output = _camera_server(camera_server).putVideo(name, width, height)

    def put_frame(self, frame: np.ndarray) -> None:
        self._output.putFrame(frame)


__all__ = [
    "CameraRegistry",
    "CvSinkFrameSource",
    "CvSourceFrameSink",
    "start_camera",
    "start_cameras",
]
