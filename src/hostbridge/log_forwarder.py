import enum
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

ERROR_PREFIXES = ("SEVERE:", "SHOUT:")
WARN_PREFIX = "WARNING:"
INFO_PREFIX = "INFO:"


class Severity(enum.Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


_LOGGING_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@dataclass
class LogRequest:
    message: str
    tag: str = "FlutterLog"
    error: Optional[str] = None
    stack_trace: Optional[str] = None

    @classmethod
    def from_arguments(
        cls, args: Optional[Dict[str, Any]], default_tag: str = "FlutterLog"
    ) -> "LogRequest":
        """
        Build a request from a command argument bag.

        Malformed fields fall back to defaults rather than failing: a
        missing message becomes "", a missing or non-string tag becomes
        `default_tag`; an empty tag is kept as given.
        """
        args = args or {}
        tag = _optional_str(args.get("tag"))
        return cls(
            message=_optional_str(args.get("message")) or "",
            tag=tag if tag is not None else default_tag,
            error=_optional_str(args.get("error")),
            stack_trace=_optional_str(args.get("stackTrace")),
        )


def classify_severity(request: LogRequest) -> Severity:
    """First matching rule wins; a non-null error always means ERROR."""
    message = request.message
    if message.startswith(ERROR_PREFIXES) or request.error is not None:
        return Severity.ERROR
    if message.startswith(WARN_PREFIX):
        return Severity.WARN
    if message.startswith(INFO_PREFIX):
        return Severity.INFO
    return Severity.DEBUG


def compose_message(request: LogRequest) -> str:
    text = request.message
    if request.error is not None:
        text += "\nERROR: " + request.error
    if request.stack_trace is not None:
        text += "\nSTACKTRACE: " + request.stack_trace
    return text


class LogSink(object):
    """
    Contract for the platform logging facility.
    """

    def emit(self, tag: str, severity: Severity, text: str) -> None:
        raise NotImplementedError()


class LoggingSink(LogSink):
    """Emits through the standard logging module, one logger per tag."""

    def emit(self, tag: str, severity: Severity, text: str) -> None:
        logging.getLogger(tag).log(_LOGGING_LEVELS[severity], text)


class LogForwarder:
    """
    Classifies a log request, composes its final text and hands both to
    the sink. Each call is formatted and emitted independently.
    """

    def __init__(self, sink: LogSink, default_tag: str = "FlutterLog"):
        self.sink = sink
        self.default_tag = default_tag

    def forward(self, request: LogRequest) -> None:
        severity = classify_severity(request)
        self.sink.emit(request.tag, severity, compose_message(request))

    def handle_log(self, args: Dict[str, Any]) -> None:
        """Handler for the `log` method. The channel result is always None."""
        self.forward(LogRequest.from_arguments(args, self.default_tag))
        return None
