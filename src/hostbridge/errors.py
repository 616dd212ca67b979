"""
Errors that cross a handler boundary into the CommandRouter.

Each carries the short code reported on the command channel. Expected
"could not acquire" outcomes are never raised; handlers return False for
those instead.
"""

from .protocol import ARG_ERROR_CODE, IO_ERROR_CODE


class BridgeError(Exception):
    code = "ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BridgeArgumentError(BridgeError):
    """A required argument is absent."""

    code = ARG_ERROR_CODE


class BridgeIOError(BridgeError):
    """The underlying write raised mid-operation."""

    code = IO_ERROR_CODE
