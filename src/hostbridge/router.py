import logging
from typing import Any, Callable, Dict, Optional

from .errors import BridgeError
from .protocol import (
    make_success_response,
    make_error_response,
    make_not_implemented_response,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Any]


class CommandRouter:
    """
    Routes a named command to its handler by exact method name.

    Handlers take the argument bag and return the result value. A
    BridgeError raised by a handler becomes an ERROR response; unknown
    names get NOT_IMPLEMENTED and touch nothing.
    """

    def __init__(self):
        self._handlers: Dict[str, Handler] = {}

    def register(self, method: str, handler: Handler) -> None:
        self._handlers[method] = handler

    @property
    def methods(self):
        return sorted(self._handlers)

    def dispatch(self, method: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        handler = self._handlers.get(method)
        if handler is None:
            logger.debug("No handler for method %r", method)
            return make_not_implemented_response(method)

        try:
            result = handler(args or {})
        except BridgeError as e:
            logger.warning("Method %s failed [%s]: %s", method, e.code, e.message)
            return make_error_response(e.code, e.message)

        return make_success_response(result)
