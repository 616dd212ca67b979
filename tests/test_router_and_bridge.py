import sqlite3
from unittest.mock import Mock

from hostbridge.bridge import Bridge, create_bridge
from hostbridge.config import load_config
from hostbridge.errors import BridgeArgumentError, BridgeIOError
from hostbridge.log_forwarder import LogSink, Severity
from hostbridge.media_store import LegacyMediaStore, ScopedMediaStore
from hostbridge.protocol import is_not_implemented, make_method_call
from hostbridge.router import CommandRouter


class RecordingSink(LogSink):
    def __init__(self):
        self.emitted = []

    def emit(self, tag, severity, text):
        self.emitted.append((tag, severity, text))


def _make_bridge(tmp_path, scoped=True):
    config = load_config(None)
    config.media.root_dir = str(tmp_path / "media")
    config.media.scoped_storage = scoped
    sink = RecordingSink()
    return Bridge(config, sink=sink), sink


def test_router_exact_match_only():
    router = CommandRouter()
    handler = Mock(return_value="ok")
    router.register("log", handler)

    assert router.dispatch("log", {"message": "x"}) == {"msg_type": "SUCCESS", "result": "ok"}
    handler.assert_called_once_with({"message": "x"})

    for name in ("Log", "lo", "log ", "logger", "frobnicate"):
        response = router.dispatch(name, {})
        assert is_not_implemented(response)
        assert response["method"] == name
    assert handler.call_count == 1


def test_router_turns_bridge_errors_into_error_responses():
    router = CommandRouter()
    router.register("a", Mock(side_effect=BridgeArgumentError("bytes is required")))
    router.register("b", Mock(side_effect=BridgeIOError("disk full")))

    assert router.dispatch("a") == {
        "msg_type": "ERROR", "code": "ARG", "message": "bytes is required", "details": None,
    }
    response = router.dispatch("b", {})
    assert response["code"] == "IO"
    assert response["message"] == "disk full"


def test_bridge_registers_both_methods(tmp_path):
    bridge, _ = _make_bridge(tmp_path)
    assert bridge.router.methods == ["log", "saveImage"]
    assert isinstance(bridge.media_store, ScopedMediaStore)
    bridge.close()


def test_bridge_log_always_succeeds_with_null(tmp_path):
    bridge, sink = _make_bridge(tmp_path)

    response = bridge.handle_call("log", {"message": "WARNING: disk low"})
    assert response == {"msg_type": "SUCCESS", "result": None}
    response = bridge.handle_call("log", {"message": 3, "tag": None})
    assert response == {"msg_type": "SUCCESS", "result": None}

    assert sink.emitted == [
        ("FlutterLog", Severity.WARN, "WARNING: disk low"),
        ("FlutterLog", Severity.DEBUG, ""),
    ]
    bridge.close()


def test_bridge_save_image_round_trip(tmp_path):
    bridge, _ = _make_bridge(tmp_path)

    response = bridge.handle_call("saveImage", {"bytes": b"img", "name": "x.webp"})
    assert response == {"msg_type": "SUCCESS", "result": True}

    visible = bridge.registry.list_visible("Stuff")
    assert [(r["display_name"], r["mime_type"]) for r in visible] == [("x.webp", "image/webp")]
    bridge.close()


def test_bridge_save_image_without_bytes(tmp_path):
    bridge, _ = _make_bridge(tmp_path)

    response = bridge.handle_call("saveImage", {"name": "x.png"})
    assert response["msg_type"] == "ERROR"
    assert response["code"] == "ARG"
    assert bridge.registry.list_records() == []
    bridge.close()


def test_bridge_unknown_method_is_not_an_error(tmp_path):
    bridge, sink = _make_bridge(tmp_path)

    response = bridge.handle_call("frobnicate", {"bytes": b"x"})
    assert response == {"msg_type": "NOT_IMPLEMENTED", "method": "frobnicate"}
    assert sink.emitted == []
    assert bridge.registry.list_records() == []
    bridge.close()


def test_bridge_handle_message(tmp_path):
    bridge, sink = _make_bridge(tmp_path)

    response = bridge.handle_message(make_method_call("log", {"message": "INFO: up"}))
    assert response["msg_type"] == "SUCCESS"
    assert sink.emitted == [("FlutterLog", Severity.INFO, "INFO: up")]

    response = bridge.handle_message({"msg_type": "PING"})
    assert response["msg_type"] == "ERROR"
    assert response["code"] == "ARG"
    bridge.close()


def test_legacy_bridge_writes_directly(tmp_path):
    bridge, _ = _make_bridge(tmp_path, scoped=False)
    assert bridge.registry is None
    assert isinstance(bridge.media_store, LegacyMediaStore)

    response = bridge.handle_call("saveImage", {"bytes": b"img", "album": "Old"})
    assert response["result"] is True
    assert (tmp_path / "media" / "Pictures" / "Old" / "image.jpg").read_bytes() == b"img"
    assert bridge.sweep_pending() == 0
    bridge.close()


def test_bridge_database_failure_is_io_error_response(tmp_path):
    bridge, _ = _make_bridge(tmp_path)
    real_conn = bridge.registry.conn
    bridge.registry.conn = Mock()
    bridge.registry.conn.cursor.side_effect = sqlite3.OperationalError("database or disk is full")

    response = bridge.handle_call("saveImage", {"bytes": b"x"})
    assert response == {
        "msg_type": "ERROR", "code": "IO", "message": "database or disk is full", "details": None,
    }

    bridge.registry.conn = real_conn
    bridge.close()


def test_create_bridge_overrides(tmp_path):
    sink = RecordingSink()
    bridge = create_bridge(root_dir=str(tmp_path), scoped_storage=True, sink=sink)
    assert bridge.config.media.root_dir == str(tmp_path)
    assert bridge.registry.db_path == str(tmp_path / "media.db")
    bridge.close()
