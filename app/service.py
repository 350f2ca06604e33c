"""Coprocessor service - wires configuration, cameras, NetworkTables and vision."""

from __future__ import annotations

import signal
import sys
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from PySide6.QtCore import Qt

from app.bootstrap import parse_args
from app.config import CONFIG_PATH, ConfigError, CoprocessorConfig, load_config
from utils.camera_hub import (
    CameraRegistry,
    CvSinkFrameSource,
    CvSourceFrameSink,
    start_camera,
    start_cameras,
)
from utils.camera_switch import SwitchedCameraSelector, start_switched_camera
from utils.logging_utils import configure_logging, log_exception, log_message
from utils.network_tables import NetworkTablesSink, start_network_tables, subscribe_value
from vision_pipelines import AmpTagPipeline, ResultPublisher, VisionEventBus, VisionPipelineManager
from vision_pipelines.apriltag import BaseTagDetector

IDLE_INTERVAL_S = 10.0


class CoprocessorService:
    """Main coprocessor process"""

    def __init__(
        self,
        config_path: Path = CONFIG_PATH,
        *,
        network_instance: Optional[Any] = None,
        camera_server: Optional[Any] = None,
        camera_starter: Optional[Callable] = None,
        subscribe: Optional[Callable[[str, Callable[[Any], None]], Any]] = None,
        detector: Optional[BaseTagDetector] = None,
        bus: Optional[VisionEventBus] = None,
    ):
        """
        Args:
            config_path: Path to frc.json
            network_instance: NetworkTables instance (default instance when omitted)
            camera_server: cscore ``CameraServer`` replacement
            camera_starter: Callable opening one camera from its config
            subscribe: ``subscribe(key, handler)`` delivering selector values
            detector: Tag detector for the pipeline
            bus: Event hub for results and source selections
        """
        self.config_path = Path(config_path)
        self.config: Optional[CoprocessorConfig] = None
        self.registry = CameraRegistry()
        self.selectors: List[SwitchedCameraSelector] = []
        self.vision: Optional[VisionPipelineManager] = None

        self._network_instance = network_instance
        self._camera_server = camera_server
        self._camera_starter = camera_starter
        self._subscribe = subscribe
        self._detector = detector
        self._bus = bus or VisionEventBus.instance()
        self._sink: Optional[NetworkTablesSink] = None
        self._stop_event = threading.Event()

        self._bus.pipelineResult.connect(self._on_pipeline_result, type=Qt.ConnectionType.DirectConnection)
        self._bus.sourceSelected.connect(self._on_source_selected, type=Qt.ConnectionType.DirectConnection)

    # ------------------------------------------------------------------
    # Startup

    def initialize(self) -> bool:
        """Initialize all service components"""
        try:
            self.config = load_config(self.config_path)
        except ConfigError as exc:
            log_message(str(exc), level="error")
            return False

        try:
            inst = start_network_tables(self.config, self._network_instance)
            self._network_instance = inst
            if self._subscribe is None:
                self._subscribe = lambda key, handler: subscribe_value(inst, key, handler)

            self.registry = start_cameras(self.config.cameras, self._start_camera)

            for switched in self.config.switched_cameras:
                _, selector = start_switched_camera(
                    switched,
                    self.registry,
                    self._subscribe,
                    camera_server=self._camera_server,
                    bus=self._bus,
                )
                self.selectors.append(selector)

            self._start_vision(inst)
        except Exception as exc:
            log_exception("CoprocessorService: initialization error", exc, stack=True)
            return False

        log_message("[SERVICE] All components initialized")
        return True

    def _start_camera(self, camera_config):
        if self._camera_starter is not None:
            return self._camera_starter(camera_config)
        return start_camera(camera_config, self._camera_server)

    def _start_vision(self, inst: Any) -> None:
        settings = self.config.vision
        if len(self.registry) == 0:
            log_message("[VISION] No cameras configured; vision processing disabled", level="warning")
            return
        if not 0 <= settings.camera_index < len(self.registry):
            log_message(
                f"[VISION] camera_index {settings.camera_index} is out of range for "
                f"{len(self.registry)} camera(s); vision processing disabled",
                level="error",
            )
            return

        camera_config = self.registry.config(settings.camera_index)
        pipeline = AmpTagPipeline(
            camera_config.name,
            {
                "hold_last_amp_center": settings.hold_last_amp_center,
                "tag_family": settings.tag_family,
            },
            detector=self._detector,
        )
        if not pipeline.detector.initialize():
            log_message("[VISION] Tag detector failed to initialize", level="error")
            return

        self._sink = NetworkTablesSink(inst)
        self.vision = VisionPipelineManager(
            pipeline,
            CvSinkFrameSource(
                self.registry.source(settings.camera_index),
                camera_config.width or settings.stream_width,
                camera_config.height or settings.stream_height,
                camera_server=self._camera_server,
            ),
            CvSourceFrameSink(
                settings.stream_name,
                settings.stream_width,
                settings.stream_height,
                camera_server=self._camera_server,
            ),
            ResultPublisher(self._sink, settings.table),
            camera_name=camera_config.name,
            bus=self._bus,
        )
        self.vision.start()

    # ------------------------------------------------------------------
    # Main loop

    def run(self) -> int:
        """Start everything and idle until asked to stop"""
        if not self.initialize():
            log_message("[SERVICE] Initialization failed, exiting", level="error")
            return 1

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        try:
            while not self._stop_event.wait(IDLE_INTERVAL_S):
                if self.vision is not None:
                    log_message(
                        f"[SERVICE] Stats: {self.vision.frames_processed} frames, "
                        f"{self.vision.frames_failed} failed",
                        level="debug",
                    )
            return 0
        finally:
            self.cleanup()

    def _signal_handler(self, signum, frame):
        log_message(f"[SERVICE] Received signal {signum}, shutting down...")
        self.stop()

    def stop(self) -> None:
        self._stop_event.set()

    def cleanup(self) -> None:
        if self.vision is not None:
            self.vision.stop()
        if self._sink is not None:
            self._sink.close()
        log_message("[SERVICE] Cleanup complete")

    # ------------------------------------------------------------------
    # Event hooks

    def _on_pipeline_result(self, camera_name: str, scalars: dict) -> None:
        log_message(f"[VISION] {camera_name}: {scalars}", level="debug")

    def _on_source_selected(self, switched_name: str, index: int) -> None:
        log_message(f"[SWITCH] {switched_name} -> source {index}", level="debug")


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    configure_logging(args.log_level)
    service = CoprocessorService(args.config)
    return service.run()


if __name__ == "__main__":
    sys.exit(main())
