import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.config import CoprocessorConfig
from tests.fakes import FakeNetworkTables
from utils.network_tables import NetworkTablesSink, start_network_tables, subscribe_value
from vision_pipelines import ResultPublisher


def test_client_mode_connects_to_team():
    inst = FakeNetworkTables()
    start_network_tables(CoprocessorConfig(team=1234), inst)

    assert inst.calls == [
        ("startClient4", "wpilibpi"),
        ("setServerTeam", 1234),
        ("startDSClient",),
    ]


def test_server_mode_starts_server():
    inst = FakeNetworkTables()
    start_network_tables(CoprocessorConfig(team=1234, server=True), inst)
    assert inst.calls == [("startServer",)]


def test_sink_picks_topic_type_from_value():
    inst = FakeNetworkTables()
    publisher = ResultPublisher(NetworkTablesSink(inst))
    publisher.initialize_defaults()

    assert inst.topics["/datatable/num_targets_detected"].kind == "int"
    assert inst.topics["/datatable/center_of_amp_X"].kind == "double"
    assert inst.value_of("/datatable/num_targets_detected") == 0
    assert inst.value_of("/datatable/center_of_amp_Y") == -1.0


def test_sink_reuses_one_publisher_per_key():
    inst = FakeNetworkTables()
    sink = NetworkTablesSink(inst)
    sink.set_default("/datatable/num_targets_detected", 0)
    sink.set("/datatable/num_targets_detected", 4)
    sink.set("/datatable/num_targets_detected", 5)

    topic = inst.topics["/datatable/num_targets_detected"]
    assert len(topic.publishers) == 1
    assert topic.publishers[0].value == 5

    sink.close()
    assert topic.publishers[0].closed


def test_subscribe_value_unwraps_events():
    pytest.importorskip("ntcore")
    inst = FakeNetworkTables()
    received = []

    subscribe_value(inst, "/camera/select", received.append)
    topic, _flags, callback = inst.listeners[0]

    callback(SimpleNamespace(data=SimpleNamespace(value=SimpleNamespace(value=lambda: "left"))))
    callback(SimpleNamespace(data=None))
    callback(SimpleNamespace(data=SimpleNamespace(value=SimpleNamespace(value=lambda: 2.0))))

    assert topic.name == "/camera/select"
    assert received == ["left", 2.0]
