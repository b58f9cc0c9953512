"""
Server process - owns the language server subprocess and its stdio.
"""

import subprocess
import threading
import logging
from typing import Callable, List, Optional, Sequence

from lsplink.lsp.errors import ProcessIOError, ProcessStartError

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096

StdoutCallback = Callable[[bytes], None]
StderrCallback = Callable[[str], None]
ExitCallback = Callable[[Optional[int]], None]


class ServerProcess:
    """
    A spawned language server with reader threads on stdout and stderr.

    Manages:
    - Spawning the process with piped stdio
    - Pumping stdout chunks and stderr lines to callbacks
    - Reporting the end of stdout (process exit or pipe failure) once
    - Serialized writes to stdin
    - Kill, wait and release of OS resources
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[str] = None,
        start_timeout: float = 2.0,
    ):
        self.command = command
        self.args = list(args)
        self.cwd = cwd
        self.start_timeout = start_timeout
        self.process: Optional[subprocess.Popen] = None
        self._threads: List[threading.Thread] = []
        self._write_lock = threading.Lock()
        self._exit_reported = threading.Event()
        self._closed = False

    @property
    def argv(self) -> List[str]:
        return [self.command] + self.args

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    @property
    def returncode(self) -> Optional[int]:
        if self.process is None:
            return None
        return self.process.poll()

    @property
    def is_running(self) -> bool:
        """Check if the process is alive."""
        return self.process is not None and self.process.poll() is None

    def start(
        self,
        on_stdout: StdoutCallback,
        on_stderr: StderrCallback,
        on_exit: ExitCallback,
    ):
        """
        Spawn the process and start the reader threads.

        Raises:
            ProcessStartError: if the process cannot be spawned or the
                readers do not come up within start_timeout
        """
        if self.process is not None:
            raise ProcessStartError("Process already started")

        logger.info(f"Starting LSP server: {' '.join(self.argv)}")

        try:
            self.process = subprocess.Popen(
                self.argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.cwd,
            )
        except (OSError, ValueError) as e:
            raise ProcessStartError(str(e)) from e

        started = threading.Event()

        stdout_thread = threading.Thread(
            target=self._read_stdout,
            args=(on_stdout, on_exit, started),
            name=f"lsp-stdout-{self.process.pid}",
            daemon=True,
        )
        stderr_thread = threading.Thread(
            target=self._read_stderr,
            args=(on_stderr,),
            name=f"lsp-stderr-{self.process.pid}",
            daemon=True,
        )
        self._threads = [stdout_thread, stderr_thread]
        stdout_thread.start()
        stderr_thread.start()

        if not started.wait(self.start_timeout):
            raise ProcessStartError(
                f"Process did not start within {self.start_timeout:.1f}s"
            )

    def write(self, data: bytes):
        """Write one framed message to stdin."""
        process = self.process
        if process is None or process.stdin is None:
            raise ProcessIOError("Process is not running")

        with self._write_lock:
            try:
                process.stdin.write(data)
                process.stdin.flush()
            except (BrokenPipeError, OSError, ValueError) as e:
                raise ProcessIOError(str(e)) from e

    def wait(self, timeout: float) -> bool:
        """Wait for the process to exit. Returns True if it has exited."""
        if self.process is None:
            return True
        try:
            self.process.wait(timeout=timeout)
            return True
        except subprocess.TimeoutExpired:
            return False

    def kill(self):
        if self.process is None or self.process.poll() is not None:
            return
        try:
            self.process.kill()
        except OSError as e:
            logger.warning(f"Failed to kill LSP server {self.process.pid}: {e}")

    def close(self):
        """Close the pipes and join the reader threads."""
        if self._closed:
            return
        self._closed = True

        if self.process is None:
            return

        with self._write_lock:
            self._close_stream(self.process.stdin)

        # A reader blocked inside read1 holds the stream's lock, so the
        # read pipes are only closed once their thread is done with them.
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current and thread.is_alive():
                thread.join(timeout=1.0)

        stdout_thread, stderr_thread = self._threads or (None, None)
        if stdout_thread is None or not stdout_thread.is_alive() or stdout_thread is current:
            self._close_stream(self.process.stdout)
        if stderr_thread is None or not stderr_thread.is_alive():
            self._close_stream(self.process.stderr)

    @staticmethod
    def _close_stream(stream):
        if stream is None:
            return
        try:
            stream.close()
        except OSError as e:
            logger.debug(f"Error closing LSP server pipe: {e}")

    # --- Reader threads ---

    def _read_stdout(
        self,
        on_stdout: StdoutCallback,
        on_exit: ExitCallback,
        started: threading.Event,
    ):
        """Background thread pumping stdout chunks to the callback."""
        started.set()
        stream = self.process.stdout

        while True:
            try:
                chunk = stream.read1(READ_CHUNK_SIZE)
            except (OSError, ValueError) as e:
                if not self._closed:
                    logger.error(f"Error reading from LSP server: {e}")
                break

            if not chunk:
                break

            try:
                on_stdout(chunk)
            except Exception:
                logger.exception("LSP stdout handler failed")

        self._report_exit(on_exit)

    def _read_stderr(self, on_stderr: StderrCallback):
        """Background thread forwarding stderr lines."""
        stream = self.process.stderr

        while True:
            try:
                line = stream.readline()
            except (OSError, ValueError):
                break

            if not line:
                break

            text = line.decode("utf-8", errors="replace").rstrip("\r\n")
            if not text.strip():
                continue

            try:
                on_stderr(text)
            except Exception:
                logger.exception("LSP stderr handler failed")

    def _report_exit(self, on_exit: ExitCallback):
        if self._exit_reported.is_set():
            return
        self._exit_reported.set()

        # stdout closes just before the process is reaped
        returncode = self.process.poll()
        if returncode is None and self.wait(0.1):
            returncode = self.process.poll()

        try:
            on_exit(returncode)
        except Exception:
            logger.exception("LSP exit handler failed")
