"""NetworkTables plumbing: connection startup, result sink and key listeners."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from app.config import CoprocessorConfig
from utils.logging_utils import log_exception, log_message
from vision_pipelines.publisher import DataSink, Number

CLIENT_IDENTITY = "wpilibpi"


def default_instance() -> Any:
    from ntcore import NetworkTableInstance

    return NetworkTableInstance.getDefault()


def start_network_tables(config: CoprocessorConfig, instance: Optional[Any] = None) -> Any:
    """Start NetworkTables as a server or as a client of the team's robot."""
    inst = instance if instance is not None else default_instance()
    if config.server:
        log_message("Setting up NetworkTables server")
        inst.startServer()
    else:
        log_message(f"Setting up NetworkTables client for team {config.team}")
        inst.startClient4(CLIENT_IDENTITY)
        inst.setServerTeam(config.team)
        inst.startDSClient()
    return inst


class NetworkTablesSink(DataSink):
    """Publishes integer and double topics, one publisher per key."""

    def __init__(self, instance: Any) -> None:
        self._inst = instance
        self._publishers: Dict[str, Any] = {}

    def _publisher(self, key: str, value: Number) -> Any:
        publisher = self._publishers.get(key)
        if publisher is None:
            if isinstance(value, int) and not isinstance(value, bool):
                topic = self._inst.getIntegerTopic(key)
            else:
                topic = self._inst.getDoubleTopic(key)
            publisher = topic.publish()
            self._publishers[key] = publisher
        return publisher

    def set_default(self, key: str, value: Number) -> None:
        self._publisher(key, value).setDefault(value)

    def set(self, key: str, value: Number) -> None:
        self._publisher(key, value).set(value)

    def close(self) -> None:
        for key, publisher in self._publishers.items():
            try:
                publisher.close()
            except Exception as exc:  # pragma: no cover - best effort cleanup
                log_exception(f"NetworkTablesSink: closing '{key}' failed", exc, level="debug")
        self._publishers.clear()


def subscribe_value(instance: Any, key: str, handler: Callable[[Any], None]) -> int:
    """Call ``handler`` with the current value of ``key`` and on every change."""
    from ntcore import EventFlags

    def listener(event: Any) -> None:
        data = event.data
        if data is None or getattr(data, "value", None) is None:
            return
        handler(data.value.value())

    return instance.addListener(
        instance.getTopic(key),
        EventFlags.kImmediate | EventFlags.kValueAll,
        listener,
    )


__all__ = [
    "CLIENT_IDENTITY",
    "NetworkTablesSink",
    "default_instance",
    "start_network_tables",
    "subscribe_value",
]
