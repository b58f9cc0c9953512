"""
lsplink - Language Server Protocol client transport.

Spawns a language server, speaks framed JSON-RPC over its stdio and hands
diagnostics, log output and request results back to the caller.
"""

__version__ = "0.1.0"
__author__ = "lsplink Team"

from lsplink.config import Config
from lsplink.lsp.client import ClientState, LSPClient

__all__ = ["LSPClient", "ClientState", "Config", "__version__"]
