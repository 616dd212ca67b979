"""
Protocol helpers for HostBridge.

These functions build the in-memory message dictionaries exchanged over the
command channel. Encoding them for transport is the channel's job.
"""

from typing import Dict, Any, Optional

ARG_ERROR_CODE = "ARG"
IO_ERROR_CODE = "IO"

LOG_METHOD = "log"
SAVE_IMAGE_METHOD = "saveImage"


def make_method_call(method: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "msg_type": "METHOD_CALL",
        "method": str(method),
        "arguments": dict(arguments or {}),
    }


def make_success_response(result: Any = None) -> Dict[str, Any]:
    return {
        "msg_type": "SUCCESS",
        "result": result,
    }


def make_error_response(
    code: str, message: Optional[str], details: Any = None
) -> Dict[str, Any]:
    """
    Typed failure of a known method. `message` is the raw text of the
    failure; no stack trace travels over the channel.
    """
    return {
        "msg_type": "ERROR",
        "code": str(code),
        "message": message,
        "details": details,
    }


def make_not_implemented_response(method: str) -> Dict[str, Any]:
    """
    Answer for a method name nobody registered. This is a terminal
    response, distinct from ERROR.
    """
    return {
        "msg_type": "NOT_IMPLEMENTED",
        "method": str(method),
    }


def is_not_implemented(response: Dict[str, Any]) -> bool:
    return response.get("msg_type") == "NOT_IMPLEMENTED"
