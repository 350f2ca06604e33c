import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.config import (
    ConfigError,
    SwitchedCameraConfig,
    VisionSettings,
    load_config,
    parse_config,
)

SAMPLE = {
    "team": 1234,
    "ntmode": "client",
    "cameras": [
        {
            "name": "left",
            "path": "/dev/video0",
            "pixel format": "MJPEG",
            "width": 1280,
            "height": 720,
            "fps": 30,
            "brightness": 40,
            "white balance": "auto",
            "exposure": 25,
            "properties": [{"name": "focus_auto", "value": False}],
            "stream": {"properties": [{"name": "compression", "value": 40}]},
        },
        {"name": "right", "path": "/dev/video2"},
    ],
    "switched cameras": [{"name": "driver", "key": "/camera/select"}],
}


def _write(tmp_path, payload):
    path = tmp_path / "frc.json"
    path.write_text(json.dumps(payload) if not isinstance(payload, str) else payload)
    return path


def test_load_full_document(tmp_path):
    config = load_config(_write(tmp_path, SAMPLE))

    assert config.team == 1234
    assert config.server is False
    assert [c.name for c in config.cameras] == ["left", "right"]
    left = config.cameras[0]
    assert left.path == "/dev/video0"
    assert (left.width, left.height, left.fps) == (1280, 720, 30)
    assert left.white_balance == "auto"
    assert left.exposure == 25
    assert left.properties == (("focus_auto", False),)
    assert left.raw_config == SAMPLE["cameras"][0]
    assert left.stream_config == {"properties": [{"name": "compression", "value": 40}]}
    assert config.cameras[1].stream_config is None
    assert config.switched_cameras == (SwitchedCameraConfig("driver", "/camera/select"),)
    assert config.vision == VisionSettings()


def test_ntmode_server_is_case_insensitive():
    config = parse_config(dict(SAMPLE, ntmode="SERVER"))
    assert config.server is True


def test_unknown_ntmode_is_not_fatal():
    config = parse_config(dict(SAMPLE, ntmode="peer"))
    assert config.server is False


def test_switched_cameras_are_optional():
    payload = {k: v for k, v in SAMPLE.items() if k != "switched cameras"}
    assert parse_config(payload).switched_cameras == ()


def test_vision_section_merges_over_defaults():
    config = parse_config(dict(SAMPLE, vision={"camera_index": 1, "hold_last_amp_center": True, "bogus": 1}))

    assert config.vision.camera_index == 1
    assert config.vision.hold_last_amp_center is True
    assert config.vision.stream_name == "Goal Vision Stream (Buddy)"
    assert config.vision.table == "/datatable"


@pytest.mark.parametrize(
    "payload, message",
    [
        ([], "must be JSON object"),
        ({"cameras": []}, "could not read team number"),
        ({"team": 1}, "could not read cameras"),
        ({"team": 1, "cameras": [{"path": "/dev/video0"}]}, "could not read camera name"),
        ({"team": 1, "cameras": [{"name": "a"}]}, "camera 'a': could not read path"),
        (
            {"team": 1, "cameras": [], "switched cameras": [{"key": "k"}]},
            "could not read switched camera name",
        ),
        (
            {"team": 1, "cameras": [], "switched cameras": [{"name": "s"}]},
            "switched camera 's': could not read key",
        ),
        (
            {"team": 1, "cameras": [{"name": "a", "path": "x"}, {"name": "a", "path": "y"}]},
            "duplicate camera name 'a'",
        ),
        ({"team": 1, "cameras": [{"name": "a", "path": "x", "width": "wide"}]}, "'width'"),
        ({"team": 1, "cameras": [{"name": "a", "path": "x", "fps": True}]}, "'fps'"),
        ({"team": 1, "cameras": [], "vision": {"camera_index": "0"}}, "camera_index"),
    ],
)
def test_invalid_documents_raise(payload, message):
    with pytest.raises(ConfigError) as info:
        parse_config(payload, Path("/tmp/frc.json"))
    assert message in str(info.value)
    assert "config error in '/tmp/frc.json'" in str(info.value)


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError) as info:
        load_config(tmp_path / "missing.json")
    assert "could not open" in str(info.value)


def test_invalid_json_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, "{not json"))
