"""
LSP Client - owns one language server session.
"""

import logging
import queue
import threading
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from lsplink.config import Config
from lsplink.lsp.dispatcher import NotificationRouter, ServerRequestDispatcher
from lsplink.lsp.documents import DocumentVersions
from lsplink.lsp.errors import FramingError, ProcessIOError, ProcessStartError
from lsplink.lsp.events import ClientEvents
from lsplink.lsp.framing import MessageFramer, encode_message
from lsplink.lsp.process import ServerProcess
from lsplink.lsp.protocol import (
    LSPErrorCodes,
    LSPMessage,
    MessageKind,
    classify,
    error_message,
    make_error,
)
from lsplink.lsp.registry import RequestRegistry, ResponseHandler
from lsplink.utils.logger import logger as session_log

logger = logging.getLogger(__name__)

ProcessFactory = Callable[..., ServerProcess]


class ClientState(Enum):
    """Lifecycle of a client session."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class LSPClient:
    """
    Client for communicating with a Language Server.

    Manages:
    - Server process lifecycle (spawn, graceful shutdown, kill)
    - Content-Length framed JSON-RPC over the server's stdio
    - Request/response correlation via ids
    - The initialize/initialized handshake
    - Replies to server-to-client requests and routing of notifications
    - Document version tracking for didOpen/didChange/didClose

    Server output is read on background threads. Every change to session
    state happens under one re-entrant lock, and response handlers and
    event listeners run while it is held, on the reader thread.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        process_factory: ProcessFactory = ServerProcess,
    ):
        """
        Initialize LSP client.

        Args:
            config: Timeouts and grace periods (defaults to environment)
            process_factory: Callable building the ServerProcess to spawn
        """
        self.config = config or Config.from_env()
        self.events = ClientEvents()
        self._process_factory = process_factory
        self._process: Optional[ServerProcess] = None

        self._lock = threading.RLock()
        self._state_changed = threading.Condition(self._lock)
        self._idle = threading.Event()
        self._idle.set()
        self._stopping = False
        self._abort_requested = False

        self._state = ClientState.NOT_STARTED
        self._ready = False
        self._root_uri = ""
        self._next_request_id = 1
        self._initialize_request_id: Optional[int] = None

        self._framer = MessageFramer(on_log=self._emit_log)
        self._registry = RequestRegistry()
        self._documents = DocumentVersions()
        self._dispatcher = ServerRequestDispatcher(lambda: self._root_uri)
        self._router = NotificationRouter(self.events)

    # --- Event subscription ---

    def on_ready_changed(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        return self.events.on_ready_changed(listener)

    def on_log(self, listener: Callable[[str], None]) -> Callable[[], None]:
        return self.events.on_log(listener)

    def on_diagnostics(self, listener: Callable[[str, list], None]) -> Callable[[], None]:
        return self.events.on_diagnostics(listener)

    # --- Status ---

    @property
    def is_running(self) -> bool:
        """Check if the server process is alive."""
        with self._lock:
            return self._process is not None and self._process.is_running

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def root_uri(self) -> str:
        return self._root_uri

    @property
    def pid(self) -> Optional[int]:
        with self._lock:
            return self._process.pid if self._process is not None else None

    @property
    def initializing(self) -> bool:
        """True while the initialize request is awaiting its response."""
        return self._initialize_request_id is not None

    @property
    def pending_requests(self) -> int:
        with self._lock:
            return len(self._registry)

    def document_version(self, uri: str) -> Optional[int]:
        with self._lock:
            return self._documents.version(uri)

    # --- Lifecycle ---

    def start(self, command: str, args: Sequence[str] = (), root_uri: str = "") -> bool:
        """
        Start the language server and send the initialize request.

        Any running session is stopped first; the new session starts from
        scratch. Returns False if the process could not be started. The
        session becomes ready asynchronously when the server answers
        initialize; see wait_until_ready().
        """
        self.stop()
        self._idle.wait(self.config.shutdown_grace + self.config.kill_grace + 2.0)

        with self._lock:
            self._reset_session(root_uri)
            self._set_state(ClientState.STARTING)

            process = self._process_factory(
                command, list(args), start_timeout=self.config.start_timeout
            )
            self._process = process
            session_log.process_start(process.argv, root_uri)

            try:
                process.start(
                    on_stdout=partial(self._on_stdout, process),
                    on_stderr=partial(self._on_stderr, process),
                    on_exit=partial(self._on_exit, process),
                )
                failure = None
            except ProcessStartError as e:
                failure = str(e)

            if failure is None:
                try:
                    self._initialize_request_id = self._send_request(
                        "initialize",
                        LSPMessage.initialize_params(root_uri),
                        self._on_initialize_response,
                    )
                except FramingError as e:
                    self._emit_log(f"LSP initialize failed: {e}")
                    self._abort_requested = True

        if failure is not None:
            self._emit_log(f"Failed to start LSP process: {failure}")
            self.stop()
            return False

        self._stop_if_aborted()
        return self._state is not ClientState.STOPPED

    def stop(self):
        """
        Stop the language server.

        A ready session gets shutdown and exit first and a short grace
        period to exit on its own; the process is then killed if needed.
        Pending request handlers are dropped without being called.
        Safe to call repeatedly and from several threads.
        """
        self._stop()

    def _stop(self, expected: Optional[ServerProcess] = None):
        with self._lock:
            process = self._process
            if process is None or self._stopping:
                return
            # The session moved on to another process
            if expected is not None and process is not expected:
                return
            self._stopping = True
            self._idle.clear()

            graceful = self._ready and process.is_running and not self._abort_requested
            if graceful:
                self._set_state(ClientState.SHUTTING_DOWN)
                self._send_request("shutdown", None, None)
                self._send_notification("exit", None)

        try:
            if graceful:
                process.wait(self.config.shutdown_grace)
            if process.is_running:
                process.kill()
                process.wait(self.config.kill_grace)
            process.close()
        finally:
            with self._lock:
                session_log.process_exit(process.pid, process.returncode)
                self._process = None
                self._framer.clear()
                self._registry.clear()
                self._documents.clear()
                self._initialize_request_id = None
                self._abort_requested = False
                self._set_ready(False)
                self._set_state(ClientState.STOPPED)
                self._stopping = False
                self._idle.set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the session is ready or has stopped. Returns readiness."""
        with self._state_changed:
            self._state_changed.wait_for(
                lambda: self._state is not ClientState.STARTING, timeout
            )
            return self._ready

    # --- Requests ---

    def request(
        self,
        method: str,
        params: Any = None,
        handler: Optional[ResponseHandler] = None,
    ) -> int:
        """
        Send a request to the server.

        The handler receives (result, None) on success or (None, error).
        When the session cannot take requests the handler is called right
        away with a ServerNotInitialized error and -1 is returned. Params
        that cannot be encoded get an InvalidParams error the same way.

        Returns:
            The request id, or -1 if nothing was sent
        """
        with self._lock:
            error = self._unavailable_error()
            if error is None:
                try:
                    request_id = self._send_request(method, params, handler)
                except FramingError as e:
                    session_log.error("rpc", f"Cannot send {method}: {e}")
                    error = make_error(LSPErrorCodes.InvalidParams, f"Request cannot be encoded: {e}")

        if error is not None:
            if handler is not None:
                handler(None, error)
            return -1

        self._stop_if_aborted()
        return request_id

    def request_sync(
        self,
        method: str,
        params: Any = None,
        timeout: Optional[float] = None,
    ) -> Tuple[Any, Optional[Dict[str, Any]]]:
        """
        Send a request and wait for the response.

        Must not be called from a response handler or event listener.

        Returns:
            (result, error) as a handler would receive them
        """
        responses: queue.Queue = queue.Queue()
        self.request(method, params, lambda result, error: responses.put((result, error)))

        wait = self.config.request_timeout if timeout is None else timeout
        try:
            return responses.get(timeout=wait)
        except queue.Empty:
            session_log.warning("rpc", f"Request {method} timed out after {wait:.1f}s")
            return None, make_error(LSPErrorCodes.UnknownErrorCode, "Request timed out.")

    # --- Document synchronization ---

    def did_open(self, uri: str, language_id: str, text: str):
        """Notify server that a document was opened."""
        with self._lock:
            if not self._ready:
                return
            sent = self._notify(
                "textDocument/didOpen",
                LSPMessage.did_open_params(uri, language_id, 1, text),
            )
            if sent:
                self._documents.open(uri)
        self._stop_if_aborted()

    def did_change(self, uri: str, text: str):
        """Send the full new text of a document."""
        with self._lock:
            if not self._ready:
                return
            sent = self._notify(
                "textDocument/didChange",
                LSPMessage.did_change_params(uri, self._documents.next_version(uri), text),
            )
            if sent:
                self._documents.change(uri)
        self._stop_if_aborted()

    def did_close(self, uri: str):
        """Notify server that a document was closed."""
        with self._lock:
            if not self._ready:
                return
            if self._notify("textDocument/didClose", LSPMessage.did_close_params(uri)):
                self._documents.close(uri)
        self._stop_if_aborted()

    # --- Internal methods ---

    def _reset_session(self, root_uri: str):
        self._root_uri = root_uri or ""
        self._framer.clear()
        self._registry.clear()
        self._documents.clear()
        self._next_request_id = 1
        self._initialize_request_id = None
        self._abort_requested = False
        self._set_ready(False)

    def _unavailable_error(self) -> Optional[Dict[str, Any]]:
        if self._process is None or self._stopping or not self._process.is_running:
            return make_error(LSPErrorCodes.ServerNotInitialized, "LSP process not running.")
        if not self._ready:
            return make_error(LSPErrorCodes.ServerNotInitialized, "LSP server not initialized.")
        return None

    def _send_request(
        self,
        method: str,
        params: Any,
        handler: Optional[ResponseHandler],
    ) -> int:
        request_id = self._next_request_id
        message = LSPMessage.request(request_id, method, params)
        data = encode_message(message)
        self._next_request_id += 1

        if handler is not None:
            self._registry.register(request_id, handler)
        self._write(data, message)
        return request_id

    def _send_notification(self, method: str, params: Any):
        message = LSPMessage.notification(method, params)
        self._write(encode_message(message), message)

    def _notify(self, method: str, params: Any) -> bool:
        """Send a notification, dropping it if it cannot be encoded."""
        try:
            self._send_notification(method, params)
        except FramingError as e:
            session_log.error("rpc", f"Dropping {method}: {e}")
            return False
        return True

    def _write(self, data: bytes, message: Dict[str, Any]):
        process = self._process
        if process is None or not process.is_running:
            return

        try:
            process.write(data)
        except ProcessIOError as e:
            self._emit_log(f"LSP process I/O error: {e}")
            self._abort_requested = True
            return

        session_log.message_out(message, len(data))

    def _stop_if_aborted(self):
        with self._lock:
            if not self._abort_requested or self._stopping:
                return
            process = self._process
        self._stop(process)

    def _set_ready(self, ready: bool):
        if self._ready == ready:
            return
        self._ready = ready
        if ready:
            self._set_state(ClientState.READY)
        self.events.emit_ready_changed(ready)

    def _set_state(self, state: ClientState):
        if self._state is state:
            return
        session_log.state_change(self._state.value, state.value)
        self._state = state
        self._state_changed.notify_all()

    def _emit_log(self, message: str):
        session_log.session_event(message)
        self.events.emit_log(message)

    def _on_initialize_response(self, result: Any, error: Optional[Dict[str, Any]]):
        self._initialize_request_id = None
        if error:
            self._emit_log(f"LSP initialize failed: {error_message(error)}")
            self._abort_requested = True
            return

        self._send_notification("initialized", {})
        self._set_ready(True)

    # --- Reader thread callbacks ---

    def _on_stdout(self, process: ServerProcess, chunk: bytes):
        with self._lock:
            if process is not self._process or self._stopping:
                return
            for message in self._framer.feed(chunk):
                if self._abort_requested or process is not self._process:
                    break
                self._handle_message(message)
        self._stop_if_aborted()

    def _on_stderr(self, process: ServerProcess, text: str):
        with self._lock:
            if process is not self._process:
                return
            self._emit_log(text)

    def _on_exit(self, process: ServerProcess, returncode: Optional[int]):
        with self._lock:
            if process is not self._process or self._stopping:
                return
            logger.debug(f"LSP server exited with code {returncode}")
            self._emit_log("LSP process exited.")
        self._stop(process)

    def _handle_message(self, message: Dict[str, Any]):
        session_log.message_in(message)
        kind = classify(message)

        if kind is MessageKind.RESPONSE:
            self._registry.resolve(message)
        elif kind is MessageKind.REQUEST:
            response = self._dispatcher.dispatch(message)
            try:
                data = encode_message(response)
            except FramingError as e:
                session_log.error("rpc", f"Cannot answer {message.get('method')}: {e}")
                return
            self._write(data, response)
        elif kind is MessageKind.NOTIFICATION:
            self._router.route(message)
        else:
            logger.debug(f"Ignoring message without method or id: {message!r}")
