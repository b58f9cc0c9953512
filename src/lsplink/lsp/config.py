"""
LSP Server presets - maps languages to the servers that handle them.
"""

import os
import shlex
import shutil
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from pathlib import Path


@dataclass
class LSPServerConfig:
    """How to launch a language server."""

    language_id: str  # LSP language identifier sent with didOpen
    extensions: List[str]  # File extensions this server handles
    command: str  # Executable to spawn
    args: List[str] = field(default_factory=list)

    @property
    def argv(self) -> List[str]:
        return [self.command] + list(self.args)

    def is_available(self) -> bool:
        """Check if the server command is available on PATH."""
        if not self.command:
            return False
        return shutil.which(self.command) is not None


# Default LSP server presets
DEFAULT_LSP_SERVERS: Dict[str, LSPServerConfig] = {
    "cpp": LSPServerConfig(
        language_id="cpp",
        extensions=[".cpp", ".hpp", ".cc", ".cxx", ".hxx", ".ino"],
        command="clangd",
        args=["--background-index=false"],
    ),
    "c": LSPServerConfig(
        language_id="c",
        extensions=[".c", ".h"],
        command="clangd",
    ),
    "arduino": LSPServerConfig(
        language_id="cpp",
        extensions=[".ino", ".pde"],
        command="arduino-language-server",
    ),
    "python": LSPServerConfig(
        language_id="python",
        extensions=[".py", ".pyi"],
        command="pyright-langserver",
        args=["--stdio"],
    ),
    "typescript": LSPServerConfig(
        language_id="typescript",
        extensions=[".ts", ".tsx"],
        command="typescript-language-server",
        args=["--stdio"],
    ),
    "go": LSPServerConfig(
        language_id="go",
        extensions=[".go"],
        command="gopls",
        args=["serve"],
    ),
    "rust": LSPServerConfig(
        language_id="rust",
        extensions=[".rs"],
        command="rust-analyzer",
    ),
}

INSTALL_HINTS: Dict[str, str] = {
    "cpp": "Install clangd (e.g., apt install clangd, brew install llvm)",
    "c": "Install clangd (e.g., apt install clangd, brew install llvm)",
    "arduino": "go install github.com/arduino/arduino-language-server@latest",
    "python": "pip install pyright",
    "typescript": "npm install -g typescript-language-server typescript",
    "go": "go install golang.org/x/tools/gopls@latest",
    "rust": "rustup component add rust-analyzer",
}


class LSPConfig:
    """Language server presets plus environment overrides."""

    def __init__(self):
        self._servers = {k: v for k, v in DEFAULT_LSP_SERVERS.items()}
        self._load_custom_config()

    def _load_custom_config(self):
        """Apply command overrides from the environment."""
        # LSPLINK_LSP_CPP_CMD="clangd --log=verbose"
        for lang, preset in list(self._servers.items()):
            custom_cmd = os.getenv(f"LSPLINK_LSP_{lang.upper()}_CMD")
            if not custom_cmd:
                continue
            argv = shlex.split(custom_cmd)
            if not argv:
                continue
            self._servers[lang] = LSPServerConfig(
                language_id=preset.language_id,
                extensions=preset.extensions,
                command=argv[0],
                args=argv[1:],
            )

    def get_server_for_file(self, file_path: str) -> Optional[LSPServerConfig]:
        """Get the first available server that handles the file's extension."""
        ext = Path(file_path).suffix.lower()
        for config in self._servers.values():
            if ext in config.extensions and config.is_available():
                return config
        return None

    def get_server_for_language(self, language: str) -> Optional[LSPServerConfig]:
        config = self._servers.get(language.lower())
        return config if config and config.is_available() else None

    def list_available_servers(self) -> Dict[str, bool]:
        """List all configured servers and their availability."""
        return {lang: config.is_available() for lang, config in self._servers.items()}

    def list_all_servers(self) -> Dict[str, LSPServerConfig]:
        return dict(self._servers)

    def register_server(self, language: str, config: LSPServerConfig):
        """Register a custom LSP server."""
        self._servers[language] = config

    def get_install_hint(self, language: str) -> str:
        return INSTALL_HINTS.get(language, f"Install an LSP server for {language}")


def language_id_for_file(file_path: str, default: str = "plaintext") -> str:
    """Guess the LSP language identifier from a file extension."""
    ext = Path(file_path).suffix.lower()
    for config in DEFAULT_LSP_SERVERS.values():
        if ext in config.extensions:
            return config.language_id
    return default


# Global config instance
_lsp_config: Optional[LSPConfig] = None


def get_lsp_config() -> LSPConfig:
    """Get the global LSP configuration."""
    global _lsp_config
    if _lsp_config is None:
        _lsp_config = LSPConfig()
    return _lsp_config


def reset_lsp_config():
    """Drop the global configuration so the environment is re-read."""
    global _lsp_config
    _lsp_config = None
