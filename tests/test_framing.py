"""
Tests for Content-Length framing.
"""

import json

import pytest

from lsplink.lsp.errors import FramingError
from lsplink.lsp.framing import MessageFramer, encode_message, parse_content_length


def frame(payload: bytes, header: bytes = b"Content-Length") -> bytes:
    return header + b": " + str(len(payload)).encode() + b"\r\n\r\n" + payload


class TestEncodeMessage:
    """Test outbound framing."""

    def test_header_and_compact_payload(self):
        data = encode_message({"jsonrpc": "2.0", "id": 1, "method": "initialize"})

        header, _, payload = data.partition(b"\r\n\r\n")
        assert header == b"Content-Length: " + str(len(payload)).encode()
        assert payload == b'{"jsonrpc":"2.0","id":1,"method":"initialize"}'

    def test_length_counts_utf8_bytes(self):
        text = "héllo ☃ \U0001f600"
        data = encode_message({"text": text})

        header, _, payload = data.partition(b"\r\n\r\n")
        length = int(header.split(b":")[1])
        assert length == len(payload)
        assert length > len(json.dumps({"text": text}, ensure_ascii=False))
        assert json.loads(payload.decode("utf-8"))["text"] == text

    def test_unserializable_message(self):
        with pytest.raises(FramingError):
            encode_message({"params": object()})

    def test_lone_surrogate_in_text(self):
        with pytest.raises(FramingError):
            encode_message({"params": {"text": "bad \udc80 text"}})


class TestParseContentLength:
    def test_case_insensitive(self):
        assert parse_content_length(b"content-length: 12") == 12
        assert parse_content_length(b"CONTENT-LENGTH:7") == 7

    def test_other_headers(self):
        header = b"Content-Type: application/vscode-jsonrpc; charset=utf-8\r\nContent-Length: 3"
        assert parse_content_length(header) == 3

    def test_missing(self):
        assert parse_content_length(b"Content-Type: application/json") is None
        assert parse_content_length(b"hello world") is None

    def test_negative_is_missing(self):
        assert parse_content_length(b"Content-Length: -5") is None

    def test_non_integer_counts_as_zero(self):
        assert parse_content_length(b"Content-Length: abc") == 0


class TestMessageFramer:
    """Test incremental decoding."""

    def test_single_message(self):
        framer = MessageFramer()
        messages = framer.feed(encode_message({"id": 1, "result": None}))

        assert messages == [{"id": 1, "result": None}]
        assert framer.pending == 0

    def test_header_and_body_in_separate_chunks(self):
        framer = MessageFramer()
        data = encode_message({"jsonrpc": "2.0", "method": "window/logMessage", "params": {"message": "hi"}})
        split = data.index(b"\r\n\r\n") + 4

        assert framer.feed(data[:split]) == []
        messages = framer.feed(data[split:])

        assert len(messages) == 1
        assert messages[0]["params"]["message"] == "hi"
        assert framer.feed(b"") == []

    def test_byte_by_byte(self):
        framer = MessageFramer()
        data = encode_message({"id": 7, "result": {"text": "über"}})

        decoded = []
        for i in range(len(data)):
            decoded.extend(framer.feed(data[i:i + 1]))

        assert decoded == [{"id": 7, "result": {"text": "über"}}]

    def test_several_messages_in_one_chunk(self):
        framer = MessageFramer()
        data = b"".join(encode_message({"id": i}) for i in range(1, 4))

        assert [m["id"] for m in framer.feed(data)] == [1, 2, 3]

    def test_partial_trailing_message_is_kept(self):
        framer = MessageFramer()
        second = encode_message({"id": 2})
        data = encode_message({"id": 1}) + second[:10]

        assert framer.feed(data) == [{"id": 1}]
        assert framer.pending == 10
        assert framer.feed(second[10:]) == [{"id": 2}]

    def test_incomplete_body_waits(self):
        framer = MessageFramer()
        data = encode_message({"id": 1, "result": "x" * 100})

        assert framer.feed(data[:-1]) == []
        assert framer.pending == len(data) - 1
        assert framer.feed(data[-1:]) == [{"id": 1, "result": "x" * 100}]

    def test_lowercase_header(self):
        framer = MessageFramer()
        payload = b'{"id":3}'
        assert framer.feed(frame(payload, header=b"content-length")) == [{"id": 3}]

    def test_missing_content_length_is_logged_and_cleared(self):
        logs = []
        framer = MessageFramer(on_log=logs.append)

        messages = framer.feed(b"clangd version 17\r\nready\r\n\r\ntrailing")

        assert messages == []
        assert logs == ["clangd version 17\r\nready\r\n\r\ntrailing"]
        assert framer.pending == 0

    def test_stray_text_without_separator_waits(self):
        logs = []
        framer = MessageFramer(on_log=logs.append)

        assert framer.feed(b"just some text") == []
        assert logs == []
        assert framer.pending == len(b"just some text")

    def test_recovers_after_stray_output(self):
        logs = []
        framer = MessageFramer(on_log=logs.append)

        framer.feed(b"banner\r\n\r\n")
        messages = framer.feed(encode_message({"id": 1}))

        assert logs == ["banner\r\n\r\n"]
        assert messages == [{"id": 1}]

    def test_malformed_json_is_dropped(self):
        logs = []
        framer = MessageFramer(on_log=logs.append)
        data = frame(b"{not json") + encode_message({"id": 2})

        assert framer.feed(data) == [{"id": 2}]
        assert logs == []

    def test_non_object_payload_is_dropped(self):
        framer = MessageFramer()
        data = frame(b"[1, 2, 3]") + frame(b'"text"') + encode_message({"id": 5})

        assert framer.feed(data) == [{"id": 5}]

    def test_invalid_utf8_is_dropped(self):
        framer = MessageFramer()
        data = frame(b'{"a": "\xff\xfe"}') + encode_message({"id": 6})

        assert framer.feed(data) == [{"id": 6}]

    def test_clear(self):
        framer = MessageFramer()
        framer.feed(b"Content-Length: 10\r\n\r\n{")
        framer.clear()

        assert framer.pending == 0
        assert framer.feed(encode_message({"id": 1})) == [{"id": 1}]
