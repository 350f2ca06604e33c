"""Centralized Qt event bus for the vision coprocessor."""

from __future__ import annotations

from PySide6.QtCore import QObject, Signal


class VisionEventBus(QObject):
    """Singleton Qt signal hub for cross-component communication."""

    _instance: "VisionEventBus" | None = None

    # camera name, scalar outputs of one processed frame
    pipelineResult = Signal(str, dict)
    # switched camera name, newly bound source index
    sourceSelected = Signal(str, int)

    def __init__(self) -> None:
        super().__init__()

    @classmethod
    def instance(cls) -> "VisionEventBus":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance


__all__ = ["VisionEventBus"]
