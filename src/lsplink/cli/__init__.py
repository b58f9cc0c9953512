"""
CLI module for lsplink - command-line interface and terminal UI.
"""

from lsplink.cli import ui
from lsplink.cli.commands import main

__all__ = ["main", "ui"]
