"""Configuration loading for the vision coprocessor.

The coprocessor reads the same ``frc.json`` document the FRC Raspberry Pi
image writes from its web dashboard::

    {
        "team": <team number>,
        "ntmode": <"client" or "server", "client" if unspecified>,
        "cameras": [
            {
                "name": <camera name>,
                "path": <path, e.g. "/dev/video0">,
                "pixel format": <"MJPEG", "YUYV", etc>,     // optional
                "width": <video mode width>,                // optional
                "height": <video mode height>,              // optional
                "fps": <video mode fps>,                    // optional
                "brightness": <percentage brightness>,      // optional
                "white balance": <"auto", "hold", value>,   // optional
                "exposure": <"auto", "hold", value>,        // optional
                "properties": [{"name": ..., "value": ...}],  // optional
                "stream": {"properties": [{"name": ..., "value": ...}]}  // optional
            }
        ],
        "switched cameras": [
            {"name": <virtual camera name>, "key": <network table key used for selection>}
        ],
        "vision": { ... }                                 // optional, see DEFAULT_VISION_SETTINGS
    }

Camera entries are parsed into typed records. The verbatim JSON object is
kept on each record because the capture device consumes the same keys.
"""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from utils.logging_utils import log_message

CONFIG_PATH = Path("/boot/frc.json")

DEFAULT_VISION_SETTINGS: Dict[str, Any] = {
    "camera_index": 0,
    "stream_name": "Goal Vision Stream (Buddy)",
    "stream_width": 1280,
    "stream_height": 720,
    "table": "/datatable",
    "hold_last_amp_center": False,
    "tag_family": "tag36h11",
}


class ConfigError(ValueError):
    """Raised when the configuration document cannot be used."""


@dataclass(frozen=True)
class CameraConfig:
    """A physical camera entry."""

    name: str
    path: str
    pixel_format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[int] = None
    brightness: Optional[int] = None
    white_balance: Optional[Union[str, int]] = None
    exposure: Optional[Union[str, int]] = None
    properties: Tuple[Tuple[str, Any], ...] = ()
    raw_config: Dict[str, Any] = field(default_factory=dict, compare=False)
    stream_config: Optional[Dict[str, Any]] = field(default=None, compare=False)


@dataclass(frozen=True)
class SwitchedCameraConfig:
    """A virtual stream whose source is chosen through ``selector_key``."""

    name: str
    selector_key: str


@dataclass(frozen=True)
class VisionSettings:
    camera_index: int = 0
    stream_name: str = "Goal Vision Stream (Buddy)"
    stream_width: int = 1280
    stream_height: int = 720
    table: str = "/datatable"
    hold_last_amp_center: bool = False
    tag_family: str = "tag36h11"


@dataclass(frozen=True)
class CoprocessorConfig:
    """Everything the service needs to start."""

    team: int
    server: bool = False
    cameras: Tuple[CameraConfig, ...] = ()
    switched_cameras: Tuple[SwitchedCameraConfig, ...] = ()
    vision: VisionSettings = field(default_factory=VisionSettings)
    path: Optional[Path] = None


class _Parser:
    """Parses one configuration document, reporting errors against its path."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def error(self, detail: str) -> ConfigError:
        return ConfigError(f"config error in '{self.path}': {detail}")

    # ------------------------------------------------------------------
    # Field helpers

    def _optional(self, obj: Dict[str, Any], key: str, types: tuple, context: str) -> Any:
        value = obj.get(key)
        if value is None:
            return None
        # bool is an int subclass; a JSON true/false is never a valid number here.
        if isinstance(value, bool) and bool not in types:
            raise self.error(f"{context}: '{key}' has invalid value {value!r}")
        if not isinstance(value, types):
            raise self.error(f"{context}: '{key}' has invalid value {value!r}")
        return value

    def _properties(self, items: Any, context: str) -> Tuple[Tuple[str, Any], ...]:
        if items is None:
            return ()
        if not isinstance(items, list):
            raise self.error(f"{context}: 'properties' must be a list")
        parsed = []
        for item in items:
            if not isinstance(item, dict) or "name" not in item or "value" not in item:
                raise self.error(f"{context}: property entries need 'name' and 'value'")
            parsed.append((str(item["name"]), item["value"]))
        return tuple(parsed)

    # ------------------------------------------------------------------
    # Sections

    def camera(self, obj: Any) -> CameraConfig:
        if not isinstance(obj, dict):
            raise self.error("camera entries must be JSON objects")
        name = obj.get("name")
        if not isinstance(name, str) or not name:
            raise self.error("could not read camera name")
        path = obj.get("path")
        if path is None:
            raise self.error(f"camera '{name}': could not read path")

        context = f"camera '{name}'"
        stream = obj.get("stream")
        if stream is not None and not isinstance(stream, dict):
            raise self.error(f"{context}: 'stream' must be a JSON object")
        if stream is not None:
            self._properties(stream.get("properties"), f"{context} stream")

        return CameraConfig(
            name=name,
            path=str(path),
            pixel_format=self._optional(obj, "pixel format", (str,), context),
            width=self._optional(obj, "width", (int,), context),
            height=self._optional(obj, "height", (int,), context),
            fps=self._optional(obj, "fps", (int,), context),
            brightness=self._optional(obj, "brightness", (int,), context),
            white_balance=self._optional(obj, "white balance", (str, int), context),
            exposure=self._optional(obj, "exposure", (str, int), context),
            properties=self._properties(obj.get("properties"), context),
            raw_config=deepcopy(obj),
            stream_config=deepcopy(stream),
        )

    def switched_camera(self, obj: Any) -> SwitchedCameraConfig:
        if not isinstance(obj, dict):
            raise self.error("switched camera entries must be JSON objects")
        name = obj.get("name")
        if not isinstance(name, str) or not name:
            raise self.error("could not read switched camera name")
        key = obj.get("key")
        if not isinstance(key, str) or not key:
            raise self.error(f"switched camera '{name}': could not read key")
        return SwitchedCameraConfig(name=name, selector_key=key)

    def vision(self, obj: Any) -> VisionSettings:
        merged = deepcopy(DEFAULT_VISION_SETTINGS)
        if obj is not None:
            if not isinstance(obj, dict):
                raise self.error("'vision' must be a JSON object")
            unknown = sorted(set(obj) - set(merged))
            if unknown:
                log_message(
                    f"config warning in '{self.path}': ignoring unknown vision keys {unknown}",
                    level="warning",
                )
            merged.update({k: v for k, v in obj.items() if k in merged})

        for key, default in DEFAULT_VISION_SETTINGS.items():
            value = merged[key]
            expected = type(default)
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise self.error(f"vision: '{key}' must be an integer")
            if expected is not int and not isinstance(value, expected):
                raise self.error(f"vision: '{key}' must be a {expected.__name__}")
        return VisionSettings(**merged)

    def document(self, top: Any) -> CoprocessorConfig:
        if not isinstance(top, dict):
            raise self.error("must be JSON object")

        team = top.get("team")
        if team is None:
            raise self.error("could not read team number")
        try:
            team = int(team)
        except (TypeError, ValueError) as exc:
            raise self.error(f"could not read team number: {team!r}") from exc

        server = False
        if "ntmode" in top:
            mode = str(top["ntmode"])
            if mode.lower() == "client":
                server = False
            elif mode.lower() == "server":
                server = True
            else:
                # Not fatal: the coprocessor keeps running as a client.
                log_message(
                    f"config error in '{self.path}': could not understand ntmode value '{mode}'",
                    level="error",
                )

        cameras_raw = top.get("cameras")
        if cameras_raw is None:
            raise self.error("could not read cameras")
        if not isinstance(cameras_raw, list):
            raise self.error("'cameras' must be a list")
        cameras = tuple(self.camera(item) for item in cameras_raw)

        seen = set()
        for camera in cameras:
            if camera.name in seen:
                raise self.error(f"duplicate camera name '{camera.name}'")
            seen.add(camera.name)

        switched_raw = top.get("switched cameras", [])
        if not isinstance(switched_raw, list):
            raise self.error("'switched cameras' must be a list")
        switched = tuple(self.switched_camera(item) for item in switched_raw)

        return CoprocessorConfig(
            team=team,
            server=server,
            cameras=cameras,
            switched_cameras=switched,
            vision=self.vision(top.get("vision")),
            path=self.path,
        )


def parse_config(document: Any, path: Path = CONFIG_PATH) -> CoprocessorConfig:
    """Validate an already-decoded JSON document."""
    return _Parser(Path(path)).document(document)


def load_config(path: Path = CONFIG_PATH) -> CoprocessorConfig:
    """Read and validate the configuration file at ``path``."""
    path = Path(path)
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"could not open '{path}': {exc}") from exc

    try:
        document = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config error in '{path}': must be JSON object ({exc})") from exc
    return parse_config(document, path)


__all__ = [
    "CONFIG_PATH",
    "DEFAULT_VISION_SETTINGS",
    "CameraConfig",
    "ConfigError",
    "CoprocessorConfig",
    "SwitchedCameraConfig",
    "VisionSettings",
    "load_config",
    "parse_config",
]
