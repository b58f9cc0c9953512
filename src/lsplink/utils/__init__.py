"""Utility modules for lsplink."""

from lsplink.utils.logger import logger, LSPLinkLogger

__all__ = ["logger", "LSPLinkLogger"]
