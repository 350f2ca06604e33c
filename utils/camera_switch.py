"""Switched-camera source selection.

A switched camera is an MJPEG stream whose physical source is picked at
runtime by a remote controller writing to a data-store key:

* an integer (or a float, truncated toward zero) selects a camera index;
* a string selects the first camera with exactly that name.

Anything else, including out-of-range indexes and unknown names, leaves
the current selection untouched.
"""

from __future__ import annotations

import math
import threading
from typing import Any, Callable, Optional

from app.config import SwitchedCameraConfig
from utils.camera_hub import CameraRegistry
from utils.logging_utils import log_message

Selection = Optional[int]


def resolve_index(value: Any, registry: CameraRegistry) -> Selection:
    """Map a selector value to a valid source index, or None if it maps to nothing."""
    # bool is an int subclass but a boolean key is not an index.
    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        index = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        index = int(value)
    elif isinstance(value, str):
        index = registry.index_of(value)
        if index is None:
            return None
    else:
        return None

    if 0 <= index < len(registry):
        return index
    return None


def next_selection(current: Selection, value: Any, registry: CameraRegistry) -> Selection:
    """Return the source index selected by ``value``, or ``current`` if rejected."""
    index = resolve_index(value, registry)
    return current if index is None else index


class SwitchedCameraSelector:
    """Tracks and applies the active source of one switched camera."""

    def __init__(
        self,
        config: SwitchedCameraConfig,
        registry: CameraRegistry,
        bind_source: Callable[[Any], None],
        bus=None,
    ) -> None:
        self.config = config
        self._registry = registry
        self._bind_source = bind_source
        self._bus = bus
        self._lock = threading.Lock()
        self._state: Selection = None

        if len(registry) == 0:
            log_message(
                f"[SWITCH] '{config.name}' has no cameras to select from; stream stays empty",
                level="warning",
            )

    @property
    def state(self) -> Selection:
        """Currently bound source index, or None before the first valid value."""
        return self._state

    def handle_value(self, value: Any) -> Selection:
        """Apply one change notification and return the resulting state."""
        with self._lock:
            previous = self._state
            selected = resolve_index(value, self._registry)
            if selected is None:
                log_message(
                    f"[SWITCH] '{self.config.name}' ignored {value!r} from {self.config.selector_key}",
                    level="debug",
                )
                return previous

            self._bind_source(self._registry.source(selected))
            self._state = selected
            if selected != previous:
                log_message(
                    f"[SWITCH] '{self.config.name}' now showing "
                    f"'{self._registry.config(selected).name}' ({selected})"
                )
        if self._bus is not None:
            self._bus.sourceSelected.emit(self.config.name, selected)
        return selected


def start_switched_camera(
    config: SwitchedCameraConfig,
    registry: CameraRegistry,
    subscribe: Callable[[str, Callable[[Any], None]], Any],
    camera_server: Optional[Any] = None,
    bus=None,
):
    """Create the switched MJPEG server and drive it from ``config.selector_key``.

    ``subscribe(key, handler)`` must invoke ``handler`` once with the
    current value and again on every change, serially for this key.
    """

    if camera_server is None:
        from cscore import CameraServer as camera_server

    log_message(f"Starting switched camera '{config.name}' on {config.selector_key}")
    server = camera_server.addSwitchedCamera(config.name)
    selector = SwitchedCameraSelector(config, registry, server.setSource, bus=bus)
    subscribe(config.selector_key, selector.handle_value)
    return server, selector


__all__ = [
    "SwitchedCameraSelector",
    "next_selection",
    "resolve_index",
    "start_switched_camera",
]
