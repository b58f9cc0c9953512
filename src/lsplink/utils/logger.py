"""
Logging system for lsplink.

Provides structured, readable logging of the language server conversation:
process lifecycle, framed traffic and server-side log output.

Logs are organized in date-stamped folders with separate files for each
log level:
  logs/YYYY-MM-DD/debug.log
  logs/YYYY-MM-DD/info.log
  logs/YYYY-MM-DD/warning.log
  logs/YYYY-MM-DD/error.log
"""

import logging
import json
import time
from pathlib import Path
from typing import Any, Dict, Optional
from datetime import datetime, timezone


# Module loggers under lsplink.lsp map to these component tags
_COMPONENTS = {
    "lsplink.lsp.process": "PROCESS",
    "lsplink.lsp.framing": "FRAMER",
    "lsplink.lsp.registry": "RPC",
    "lsplink.lsp.dispatcher": "RPC",
    "lsplink.lsp.client": "CLIENT",
    "lsplink.lsp.events": "EVENTS",
}


class ComponentFilter(logging.Filter):
    """Fill in the component tag for records logged without one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = _COMPONENTS.get(record.name, "SYSTEM")
        return True


class LSPLinkLogger:
    """Centralized logger for tracking language server sessions."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.logger = logging.getLogger("lsplink")
            self.json_mode = False
            self.session_start = time.time()
            self.log_dir = None
            self._initialized = True

    def _get_default_log_dir(self) -> Path:
        """Get the default log directory path with today's date."""
        today = datetime.now().strftime("%Y-%m-%d")
        return Path("logs") / today

    def configure(
        self,
        level: str = "INFO",
        log_dir: Optional[str] = None,
        json_mode: bool = False,
        enable_logging: bool = True,
    ):
        """
        Configure logging output.

        Args:
            level: DEBUG, INFO, WARNING, ERROR (minimum level to log)
            log_dir: Optional directory for logs (default: logs/YYYY-MM-DD/)
            json_mode: Use JSON format for structured parsing
            enable_logging: Enable file logging (default: True)
        """
        if not enable_logging:
            return

        self.json_mode = json_mode
        self.logger.handlers.clear()
        self.logger.setLevel(logging.DEBUG)

        if log_dir:
            self.log_dir = Path(log_dir)
        else:
            self.log_dir = self._get_default_log_dir()

        self.log_dir.mkdir(parents=True, exist_ok=True)

        if json_mode:
            formatter = JsonFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s [%(component)-8s] %(message)s',
                datefmt='%H:%M:%S'
            )

        min_level = getattr(logging, level.upper(), logging.INFO)

        log_levels = [
            (logging.DEBUG, 'debug.log'),
            (logging.INFO, 'info.log'),
            (logging.WARNING, 'warning.log'),
            (logging.ERROR, 'error.log'),
        ]

        for log_level, filename in log_levels:
            if log_level >= min_level:
                handler = logging.FileHandler(self.log_dir / filename, mode='a', encoding='utf-8')
                handler.setLevel(log_level)
                handler.setFormatter(formatter)
                handler.addFilter(ComponentFilter())

                # Each file holds exactly one level
                handler.addFilter(lambda record, level=log_level: record.levelno == level)

                self.logger.addHandler(handler)

    def _log(self, level: str, component: str, msg: str, **data):
        """Core logging with structured data."""
        extra = {'component': component, **data}
        getattr(self.logger, level)(msg, extra=extra)

    # === PROCESS LIFECYCLE ===

    def process_start(self, argv: list, root_uri: str):
        self._log('info', 'PROCESS', f"Spawning: {' '.join(argv)} (root {root_uri or '-'})",
                  argv=argv, root_uri=root_uri)

    def process_exit(self, pid: Optional[int], returncode: Optional[int]):
        self._log('info', 'PROCESS', f"Exited: pid={pid} code={returncode}",
                  pid=pid, returncode=returncode)

    def state_change(self, old: str, new: str):
        self._log('debug', 'CLIENT', f"State: {old} -> {new}", old_state=old, new_state=new)

    # === WIRE TRAFFIC ===

    def message_out(self, message: Dict[str, Any], size: int):
        self._log('debug', 'WIRE', f"--> {_describe(message)} ({size} bytes)",
                  direction="out", size=size)

    def message_in(self, message: Dict[str, Any]):
        self._log('debug', 'WIRE', f"<-- {_describe(message)}", direction="in")

    # === SESSION EVENTS ===

    def session_event(self, text: str):
        """Log events delivered to the client's log listeners (server output included)."""
        self._log('info', 'SESSION', text)

    # === ERRORS & WARNINGS ===

    def error(self, component: str, message: str, exception: Optional[Exception] = None):
        import traceback

        error_details = message
        if exception:
            tb_str = ''.join(traceback.format_exception(type(exception), exception, exception.__traceback__))
            error_details = f"{message}\n{tb_str}"

        self._log('error', component.upper(), f"ERROR: {error_details}",
                  error=str(exception) if exception else message)

    def warning(self, component: str, message: str):
        self._log('warning', component.upper(), f"WARNING: {message}")


def _describe(message: Dict[str, Any]) -> str:
    method = message.get("method")
    if "id" in message and method:
        return f"request #{message['id']} {method}"
    if method:
        return f"notification {method}"
    if "error" in message:
        return f"error response #{message.get('id')}"
    return f"response #{message.get('id')}"


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            'time': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'component': getattr(record, 'component', 'SYSTEM'),
            'message': record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k not in {'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
                        'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
                        'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
                        'thread', 'threadName', 'processName', 'process', 'message',
                        'component', 'asctime', 'taskName'}:
                data[k] = v
        return json.dumps(data, default=str)


# Global instance
logger = LSPLinkLogger()
