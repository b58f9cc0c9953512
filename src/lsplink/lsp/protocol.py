"""
LSP Protocol definitions - JSON-RPC 2.0 envelopes used by the client.

Implements the message shapes the client produces and the classification
of messages it receives. Payloads are plain dicts; feature results are
never interpreted here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


JSONRPC_VERSION = "2.0"


class MessageKind(Enum):
    """Shape of a decoded JSON-RPC envelope."""

    REQUEST = "request"
    RESPONSE = "response"
    NOTIFICATION = "notification"
    INVALID = "invalid"


def classify(message: Dict[str, Any]) -> MessageKind:
    """
    Classify a decoded message.

    A message with a method and an id is a request from the server, with
    a method and no id a notification, with an id and no method a response.
    """
    method = message.get("method")
    has_id = message.get("id") is not None

    if isinstance(method, str) and method:
        return MessageKind.REQUEST if has_id else MessageKind.NOTIFICATION
    if has_id:
        return MessageKind.RESPONSE
    return MessageKind.INVALID


@dataclass
class Position:
    """LSP Position (0-indexed line and character)."""

    line: int
    character: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass
class TextDocumentIdentifier:
    """Identifies a text document."""

    uri: str

    def to_dict(self) -> Dict[str, str]:
        return {"uri": self.uri}


@dataclass
class TextDocumentPositionParams:
    """Parameters for position-based requests."""

    text_document: TextDocumentIdentifier
    position: Position

    def to_dict(self) -> Dict:
        return {
            "textDocument": self.text_document.to_dict(),
            "position": self.position.to_dict(),
        }


class LSPMessage:
    """Builders for the envelopes the client puts on the wire."""

    @staticmethod
    def request(request_id: int, method: str, params: Any = None) -> Dict:
        message = {"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": method}
        # JSON-RPC allows params to be omitted but not null
        if params is not None:
            message["params"] = params
        return message

    @staticmethod
    def notification(method: str, params: Any = None) -> Dict:
        message = {"jsonrpc": JSONRPC_VERSION, "method": method}
        if params is not None:
            message["params"] = params
        return message

    @staticmethod
    def response(request_id: Any, result: Any) -> Dict:
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

    @staticmethod
    def error_response(request_id: Any, code: int, message: str) -> Dict:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "error": make_error(code, message),
        }

    @staticmethod
    def initialize_params(root_uri: str) -> Dict:
        """Params of the initialize request."""
        return {
            "processId": None,
            "rootUri": root_uri,
            "capabilities": {
                "textDocument": {
                    "synchronization": {
                        "didSave": True,
                        "willSave": False,
                        "willSaveWaitUntil": False,
                    }
                }
            },
        }

    @staticmethod
    def did_open_params(uri: str, language_id: str, version: int, text: str) -> Dict:
        return {
            "textDocument": {
                "uri": uri,
                "languageId": language_id,
                "version": version,
                "text": text,
            }
        }

    @staticmethod
    def did_change_params(uri: str, version: int, text: str) -> Dict:
        # Whole-document replace: a single change without a range
        return {
            "textDocument": {"uri": uri, "version": version},
            "contentChanges": [{"text": text}],
        }

    @staticmethod
    def did_close_params(uri: str) -> Dict:
        return {"textDocument": {"uri": uri}}


def make_error(code: int, message: str) -> Dict[str, Any]:
    """Build a JSON-RPC error object."""
    return {"code": code, "message": message}


def error_message(error: Optional[Dict[str, Any]]) -> str:
    """Best-effort message text of an error object."""
    if not isinstance(error, dict):
        return ""
    message = error.get("message")
    return message if isinstance(message, str) else ""


def workspace_folders(root_uri: str) -> List[Dict[str, str]]:
    if not root_uri:
        return []
    return [{"uri": root_uri, "name": "workspace"}]


# LSP Error Codes
class LSPErrorCodes:
    """Standard LSP error codes."""

    ParseError = -32700
    InvalidRequest = -32600
    MethodNotFound = -32601
    InvalidParams = -32602
    InternalError = -32603
    ServerNotInitialized = -32002
    UnknownErrorCode = -32001
    RequestCancelled = -32800
    ContentModified = -32801
