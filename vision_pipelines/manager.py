"""Runtime manager running the vision pipeline on its camera."""

from __future__ import annotations

import threading
import time
from typing import Optional, Protocol

import numpy as np

from utils.logging_utils import log_exception, log_message

from .apriltag import DetectionFailure
from .base import PipelineResult, VisionPipeline
from .events import VisionEventBus
from .publisher import ResultPublisher


class FrameSource(Protocol):
    def next_frame(self) -> Optional[np.ndarray]:
        """Block until the next frame is captured; None when the grab failed."""


class FrameSink(Protocol):
    def put_frame(self, frame: np.ndarray) -> None:
        ...


class VisionPipelineManager:
    """Run a pipeline on a dedicated worker thread.

    The worker is the only caller of the pipeline and the publisher, so
    frames are processed strictly one at a time.
    """

    def __init__(
        self,
        pipeline: VisionPipeline,
        frame_source: FrameSource,
        frame_sink: FrameSink,
        publisher: ResultPublisher,
        camera_name: Optional[str] = None,
        bus: Optional[VisionEventBus] = None,
    ):
        self._pipeline = pipeline
        self._source = frame_source
        self._sink = frame_sink
        self._publisher = publisher
        self.camera_name = camera_name or pipeline.camera_name
        self._bus = bus
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self.frames_processed = 0
        self.frames_failed = 0

        # Subscribers must see defined values before the first frame lands.
        self._publisher.initialize_defaults()

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._camera_loop,
            name=f"vision_{self.camera_name}",
            daemon=True,
        )
        self._thread.start()
        log_message(f"[VISION] Processing started on camera '{self.camera_name}'")

    def stop(self) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.5)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Processing loop

    def _camera_loop(self) -> None:
        while not self._stop.is_set():
            frame = self._source.next_frame()
            if frame is None or self._stop.is_set():
                continue
            try:
                self.process_single_frame(frame)
            except DetectionFailure as exc:
                # Skip this frame and wait for the next one.
                log_exception(f"[VISION] Frame skipped on '{self.camera_name}'", exc, level="warning")
            except Exception as exc:  # safety net
                self.frames_failed += 1
                log_exception(f"[VISION] Frame cycle crashed on '{self.camera_name}'", exc, stack=True)

    def process_single_frame(self, frame: np.ndarray) -> PipelineResult:
        """Run one capture-to-publish cycle synchronously.

        Raises:
            DetectionFailure: the frame could not be processed; nothing was
                published for it.
        """

        try:
            result = self._pipeline.process(frame, time.time())
        except DetectionFailure:
            self.frames_failed += 1
            raise

        self._sink.put_frame(result.annotated_frame)
        self._publisher.publish(result)
        self.frames_processed += 1
        if self._bus is not None:
            self._bus.pipelineResult.emit(self.camera_name, result.scalars())
        return result


__all__ = ["FrameSink", "FrameSource", "VisionPipelineManager"]
