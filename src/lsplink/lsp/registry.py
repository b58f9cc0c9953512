"""
Request Registry - correlates outgoing request ids with response handlers.
"""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# handler(result, error): error is None on success, result is None on error
ResponseHandler = Callable[[Any, Optional[Dict[str, Any]]], None]


class RequestRegistry:
    """
    Maps request ids to completion handlers.

    Each handler is removed before it is called, so it runs at most once.
    Clearing the registry drops handlers without calling them.
    """

    def __init__(self):
        self._handlers: Dict[Any, ResponseHandler] = {}

    def register(self, request_id: Any, handler: ResponseHandler):
        self._handlers[request_id] = handler

    def pop(self, request_id: Any) -> Optional[ResponseHandler]:
        return self._handlers.pop(request_id, None)

    def resolve(self, response: Dict[str, Any]) -> bool:
        """
        Deliver a response envelope to its handler.

        Returns False when no handler is registered for the id (untracked
        or stale requests); that case is not an error.
        """
        request_id = response.get("id")
        handler = self.pop(request_id)
        if handler is None:
            logger.debug(f"Discarding response for untracked request {request_id!r}")
            return False

        try:
            if "error" in response:
                error = response.get("error")
                handler(None, error if isinstance(error, dict) else {})
            else:
                handler(response.get("result"), None)
        except Exception:
            logger.exception(f"Response handler for request {request_id!r} failed")
        return True

    def clear(self):
        self._handlers.clear()

    def __contains__(self, request_id: Any) -> bool:
        return request_id in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
