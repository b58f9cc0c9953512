"""
Client events - subscription interface for readiness, logs and diagnostics.
"""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

ReadyListener = Callable[[bool], None]
LogListener = Callable[[str], None]
DiagnosticsListener = Callable[[str, List[Any]], None]


class ClientEvents:
    """
    Listener lists for the three event streams an LSP client produces.

    Subscribing returns a callable that removes the listener again.
    A listener that raises is logged and skipped; the remaining listeners
    still run.
    """

    def __init__(self):
        self._ready: List[ReadyListener] = []
        self._log: List[LogListener] = []
        self._diagnostics: List[DiagnosticsListener] = []

    def on_ready_changed(self, listener: ReadyListener) -> Callable[[], None]:
        return self._subscribe(self._ready, listener)

    def on_log(self, listener: LogListener) -> Callable[[], None]:
        return self._subscribe(self._log, listener)

    def on_diagnostics(self, listener: DiagnosticsListener) -> Callable[[], None]:
        return self._subscribe(self._diagnostics, listener)

    def emit_ready_changed(self, ready: bool):
        self._emit(self._ready, ready)

    def emit_log(self, message: str):
        self._emit(self._log, message)

    def emit_diagnostics(self, uri: str, diagnostics: List[Any]):
        self._emit(self._diagnostics, uri, diagnostics)

    @staticmethod
    def _subscribe(listeners: list, listener: Callable) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe():
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    @staticmethod
    def _emit(listeners: list, *args):
        for listener in list(listeners):
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Event listener {listener!r} failed")
