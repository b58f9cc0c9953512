"""
Document versions - tracks open documents for LSP synchronization.
"""

from typing import Dict, Optional, Set


class DocumentVersions:
    """
    Per-URI version counters for textDocument synchronization.

    LSP requires the client to send a version with every didOpen and
    didChange:
    - open sets the version to 1
    - each change increments it (an untracked URI counts as version 1)
    - close forgets the URI, so a reopen starts at 1 again
    """

    def __init__(self):
        self._versions: Dict[str, int] = {}

    def open(self, uri: str) -> int:
        self._versions[uri] = 1
        return 1

    def next_version(self, uri: str) -> int:
        return self._versions.get(uri, 1) + 1

    def change(self, uri: str) -> int:
        """Bump and return the version for the next didChange."""
        version = self.next_version(uri)
        self._versions[uri] = version
        return version

    def close(self, uri: str):
        self._versions.pop(uri, None)

    def version(self, uri: str) -> Optional[int]:
        return self._versions.get(uri)

    def is_open(self, uri: str) -> bool:
        return uri in self._versions

    def open_documents(self) -> Set[str]:
        return set(self._versions.keys())

    def clear(self):
        self._versions.clear()

    def __len__(self) -> int:
        return len(self._versions)
