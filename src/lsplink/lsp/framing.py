"""
Content-Length framing for the LSP base protocol.

    Content-Length: <length>\\r\\n
    [Other-Header: <value>]\\r\\n
    \\r\\n
    <length bytes of UTF-8 JSON>

MessageFramer accumulates raw bytes from the server's stdout and yields
complete JSON objects. Bytes that do not start with a Content-Length
header are treated as stray server output: they are logged and the
buffer is cleared.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from lsplink.lsp.errors import FramingError

logger = logging.getLogger(__name__)

HEADER_SEPARATOR = b"\r\n\r\n"
CONTENT_LENGTH = "content-length"
CONTENT_ENCODING = "utf-8"


def encode_message(message: Dict[str, Any]) -> bytes:
    """
    Encode a message with its Content-Length header.

    The length is the byte length of the UTF-8 payload. Header and payload
    are returned together so they can be written in one call.
    """
    try:
        body = json.dumps(message, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise FramingError(f"Message cannot be serialized to JSON: {e}") from e

    try:
        payload = body.encode(CONTENT_ENCODING)
    except UnicodeEncodeError as e:
        raise FramingError(f"Message is not valid UTF-8: {e}") from e

    header = f"Content-Length: {len(payload)}\r\n\r\n".encode("ascii")
    return header + payload


def parse_content_length(header: bytes) -> Optional[int]:
    """
    Find the Content-Length value in a header block.

    Header names are matched case-insensitively. Returns None when no
    usable Content-Length header is present. A value that is not an
    integer counts as zero.
    """
    text = header.decode("latin-1")
    for line in text.split("\n"):
        line = line.strip()
        if not line.lower().startswith(CONTENT_LENGTH + ":"):
            continue
        value = line[len(CONTENT_LENGTH) + 1 :].strip()
        try:
            length = int(value)
        except ValueError:
            length = 0
        return length if length >= 0 else None
    return None


class MessageFramer:
    """
    Incremental decoder for a Content-Length framed byte stream.

    Feed it chunks as they are read; each call returns the messages that
    became complete. Partial headers and bodies stay buffered until the
    rest arrives.
    """

    def __init__(self, on_log: Optional[Callable[[str], None]] = None):
        self._buffer = bytearray()
        self._on_log = on_log

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet consumed."""
        return len(self._buffer)

    def clear(self):
        self._buffer.clear()

    def feed(self, data: bytes) -> List[Dict[str, Any]]:
        """Append bytes to the buffer and extract all complete messages."""
        if data:
            self._buffer.extend(data)

        messages: List[Dict[str, Any]] = []

        while True:
            header_end = self._buffer.find(HEADER_SEPARATOR)
            if header_end < 0:
                break

            content_length = parse_content_length(bytes(self._buffer[:header_end]))
            if content_length is None:
                # Not an LSP message: surface the whole buffer and resync
                text = bytes(self._buffer).decode(CONTENT_ENCODING, errors="replace")
                self._buffer.clear()
                self._emit_log(text)
                break

            payload_start = header_end + len(HEADER_SEPARATOR)
            payload_end = payload_start + content_length
            if len(self._buffer) < payload_end:
                break

            payload = bytes(self._buffer[payload_start:payload_end])
            del self._buffer[:payload_end]

            message = self._decode_payload(payload)
            if message is not None:
                messages.append(message)

        return messages

    def _decode_payload(self, payload: bytes) -> Optional[Dict[str, Any]]:
        try:
            message = json.loads(payload.decode(CONTENT_ENCODING))
        except (UnicodeDecodeError, ValueError) as e:
            logger.debug(f"Dropping malformed payload ({len(payload)} bytes): {e}")
            return None

        if not isinstance(message, dict):
            logger.debug(f"Dropping non-object payload: {type(message).__name__}")
            return None

        return message

    def _emit_log(self, text: str):
        if self._on_log is not None:
            self._on_log(text)
        else:
            logger.info(text)
