"""Publish per-frame pipeline outputs to the shared data store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Union

from .base import NO_TARGET, PipelineResult

Number = Union[int, float]

TARGET_COUNT_FIELD = "num_targets_detected"
AMP_CENTER_X_FIELD = "center_of_amp_X"
AMP_CENTER_Y_FIELD = "center_of_amp_Y"


class DataSink(ABC):
    """Write side of the shared data store.

    The value's Python type selects the field type: ``int`` fields are
    published as integers, ``float`` fields as doubles.
    """

    @abstractmethod
    def set_default(self, key: str, value: Number) -> None:
        """Value subscribers see before the first :meth:`set`."""

    @abstractmethod
    def set(self, key: str, value: Number) -> None:
        ...


class ResultPublisher:
    """Pushes the three scalar outputs of every processed frame."""

    def __init__(self, sink: DataSink, table: str = "/datatable") -> None:
        self._sink = sink
        prefix = table.rstrip("/")
        self.target_count_key = f"{prefix}/{TARGET_COUNT_FIELD}"
        self.amp_center_x_key = f"{prefix}/{AMP_CENTER_X_FIELD}"
        self.amp_center_y_key = f"{prefix}/{AMP_CENTER_Y_FIELD}"
        self._defaults_set = False

    def initialize_defaults(self) -> None:
        if self._defaults_set:
            return
        self._sink.set_default(self.target_count_key, 0)
        self._sink.set_default(self.amp_center_x_key, NO_TARGET)
        self._sink.set_default(self.amp_center_y_key, NO_TARGET)
        self._defaults_set = True

    def publish(self, result: PipelineResult) -> None:
        if not self._defaults_set:
            self.initialize_defaults()
        self._sink.set(self.target_count_key, int(result.target_count))
        self._sink.set(self.amp_center_x_key, float(result.amp_center_x))
        self._sink.set(self.amp_center_y_key, float(result.amp_center_y))


__all__ = [
    "AMP_CENTER_X_FIELD",
    "AMP_CENTER_Y_FIELD",
    "DataSink",
    "ResultPublisher",
    "TARGET_COUNT_FIELD",
]
