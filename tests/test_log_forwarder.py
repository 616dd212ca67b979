import logging

from hostbridge.log_forwarder import (
    LogForwarder,
    LogRequest,
    LogSink,
    LoggingSink,
    Severity,
    classify_severity,
    compose_message,
)


class RecordingSink(LogSink):
    def __init__(self):
        self.emitted = []

    def emit(self, tag, severity, text):
        self.emitted.append((tag, severity, text))


def test_error_prefixes_and_error_field_win():
    """
    SEVERE:, SHOUT: or any non-null error means ERROR, whatever other
    prefix the message carries.
    """
    assert classify_severity(LogRequest("SEVERE: db gone")) is Severity.ERROR
    assert classify_severity(LogRequest("SHOUT: look here")) is Severity.ERROR
    assert classify_severity(LogRequest("WARNING: x", error="e")) is Severity.ERROR
    assert classify_severity(LogRequest("INFO: x", error="")) is Severity.ERROR
    assert classify_severity(LogRequest("plain", error="boom")) is Severity.ERROR


def test_warning_info_and_default_levels():
    assert classify_severity(LogRequest("WARNING: disk low")) is Severity.WARN
    assert classify_severity(LogRequest("INFO: started")) is Severity.INFO
    assert classify_severity(LogRequest("FINE: details")) is Severity.DEBUG
    assert classify_severity(LogRequest("")) is Severity.DEBUG
    # prefixes are matched at the start only, case-sensitively
    assert classify_severity(LogRequest("note WARNING: x")) is Severity.DEBUG
    assert classify_severity(LogRequest("info: x")) is Severity.DEBUG


def test_compose_without_sections():
    request = LogRequest("WARNING: disk low")
    assert compose_message(request) == "WARNING: disk low"
    assert classify_severity(request) is Severity.WARN


def test_compose_error_then_stack_trace():
    assert compose_message(LogRequest("hi", error="boom")) == "hi\nERROR: boom"
    assert (
        compose_message(LogRequest("hi", error="boom", stack_trace="at x"))
        == "hi\nERROR: boom\nSTACKTRACE: at x"
    )
    assert compose_message(LogRequest("hi", stack_trace="at x")) == "hi\nSTACKTRACE: at x"


def test_from_arguments_defaults_and_malformed_fields():
    request = LogRequest.from_arguments({"message": "hello"}, default_tag="AppLog")
    assert request.tag == "AppLog"
    assert request.error is None
    assert request.stack_trace is None

    request = LogRequest.from_arguments(
        {"tag": 42, "message": None, "error": ["x"], "stackTrace": "at y"}
    )
    assert request.tag == "FlutterLog"
    assert request.message == ""
    assert request.error is None
    assert request.stack_trace == "at y"

    assert LogRequest.from_arguments(None).message == ""


def test_forward_emits_every_call():
    """Identical requests are emitted twice; nothing is deduplicated."""
    sink = RecordingSink()
    forwarder = LogForwarder(sink)

    args = {"tag": "UI", "message": "hi", "error": "boom"}
    assert forwarder.handle_log(args) is None
    assert forwarder.handle_log(args) is None

    assert sink.emitted == [
        ("UI", Severity.ERROR, "hi\nERROR: boom"),
        ("UI", Severity.ERROR, "hi\nERROR: boom"),
    ]


def test_logging_sink_uses_tag_logger_and_level(caplog):
    sink = LoggingSink()
    with caplog.at_level(logging.DEBUG, logger="MyTag"):
        sink.emit("MyTag", Severity.WARN, "WARNING: disk low")
        sink.emit("MyTag", Severity.DEBUG, "fine")

    records = [r for r in caplog.records if r.name == "MyTag"]
    assert [(r.levelno, r.getMessage()) for r in records] == [
        (logging.WARNING, "WARNING: disk low"),
        (logging.DEBUG, "fine"),
    ]


def test_empty_tag_is_kept():
    """Only a missing tag falls back to the default."""
    assert LogRequest.from_arguments({"tag": "", "message": "x"}, default_tag="AppLog").tag == ""
    assert LogRequest.from_arguments({"tag": None, "message": "x"}, default_tag="AppLog").tag == "AppLog"
