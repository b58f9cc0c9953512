"""
LSP (Language Server Protocol) client transport.

Runs a language server as a subprocess and talks JSON-RPC to it:
- Content-Length framing over stdio
- initialize/shutdown handshake
- Request/response correlation
- Replies to server requests, routing of diagnostics and log messages
- Whole-document synchronization (didOpen/didChange/didClose)

Feature payloads (hover, completion, symbols, ...) are passed through as
plain JSON values.
"""

from lsplink.lsp.client import ClientState, LSPClient
from lsplink.lsp.config import LSPConfig, LSPServerConfig, get_lsp_config
from lsplink.lsp.events import ClientEvents
from lsplink.lsp.framing import MessageFramer, encode_message
from lsplink.lsp.process import ServerProcess
from lsplink.lsp.protocol import LSPErrorCodes, LSPMessage, MessageKind

__all__ = [
    "LSPClient",
    "ClientState",
    "ClientEvents",
    "ServerProcess",
    "MessageFramer",
    "encode_message",
    "LSPMessage",
    "LSPErrorCodes",
    "MessageKind",
    "LSPConfig",
    "LSPServerConfig",
    "get_lsp_config",
]
