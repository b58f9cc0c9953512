"""
Inbound dispatch - answers server-to-client requests and routes notifications.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from lsplink.lsp.events import ClientEvents
from lsplink.lsp.protocol import LSPErrorCodes, LSPMessage, workspace_folders

logger = logging.getLogger(__name__)

# Requests the client acknowledges with a null result
NULL_RESULT_METHODS = frozenset(
    {
        "window/workDoneProgress/create",
        "client/registerCapability",
        "client/unregisterCapability",
        "window/showMessageRequest",
    }
)


class ServerRequestDispatcher:
    """
    Answers requests the server sends to the client.

    The client declares no real support for these features; the replies
    only keep servers from waiting on an unanswered call. Unknown methods
    get a MethodNotFound error.
    """

    def __init__(self, root_uri: Callable[[], str]):
        self._root_uri = root_uri

    def dispatch(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Build the response envelope for an inbound request."""
        request_id = message.get("id")
        method = message.get("method")

        if method in NULL_RESULT_METHODS:
            return LSPMessage.response(request_id, None)

        if method == "workspace/configuration":
            return LSPMessage.response(request_id, self._configuration(message.get("params")))

        if method == "workspace/workspaceFolders":
            return LSPMessage.response(request_id, workspace_folders(self._root_uri()))

        logger.debug(f"Unsupported server request: {method}")
        return LSPMessage.error_response(
            request_id, LSPErrorCodes.MethodNotFound, "Method not found"
        )

    @staticmethod
    def _configuration(params: Optional[Dict[str, Any]]) -> List[Dict]:
        # One empty settings object per requested scope
        items = params.get("items") if isinstance(params, dict) else None
        if not isinstance(items, list):
            return []
        return [{} for _ in items]


class NotificationRouter:
    """Routes server notifications to the client's event listeners."""

    def __init__(self, events: ClientEvents):
        self._events = events

    def route(self, message: Dict[str, Any]) -> bool:
        """Returns True if the notification was handled, False if ignored."""
        method = message.get("method")
        params = message.get("params")
        if not isinstance(params, dict):
            params = {}

        if method == "textDocument/publishDiagnostics":
            uri = params.get("uri")
            diagnostics = params.get("diagnostics")
            self._events.emit_diagnostics(
                uri if isinstance(uri, str) else "",
                diagnostics if isinstance(diagnostics, list) else [],
            )
            return True

        if method in ("window/logMessage", "window/showMessage"):
            text = params.get("message")
            self._events.emit_log(text if isinstance(text, str) else "")
            return True

        return False
