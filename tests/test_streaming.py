# tests/test_streaming.py
"""
Tests for SSE chunk parsing.
"""

import json

from schemachat.streaming import SSEChunkParser, parse_stream_chunk


def delta(text):
    return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]}) + "\n\n"


def extract(event):
    return event["choices"][0]["delta"]["content"]


def extract_strict(event):
    try:
        return extract(event)
    except (KeyError, IndexError, TypeError) as e:
        raise RuntimeError(str(e))


class TestSSEChunkParser:
    """Tests for the incremental parser."""

    def test_emits_text_in_order(self):
        """Each data line yields its text."""
        received = []
        parser = SSEChunkParser(extract, received.append)
        parser.feed(delta("Hel") + delta("lo"))
        assert received == ["Hel", "lo"]

    def test_line_split_across_chunks(self):
        """A line split between chunks is reassembled."""
        received = []
        parser = SSEChunkParser(extract, received.append)
        line = delta("Hello")
        parser.feed(line[:10])
        assert received == []
        parser.feed(line[10:])
        assert received == ["Hello"]

    def test_done_stops_processing(self):
        """Nothing after [DONE] is delivered."""
        received = []
        parser = SSEChunkParser(extract, received.append)
        parser.feed(delta("a") + "data: [DONE]\n\n" + delta("b"))
        parser.feed(delta("c"))
        assert received == ["a"]
        assert parser.done

    def test_skips_malformed_and_textless_events(self):
        """Bad JSON and events without text are skipped silently."""
        received = []
        parser = SSEChunkParser(extract_strict, received.append)
        chunk = (
            "data: {not json}\n"
            'data: {"type": "ping"}\n'
            "event: message_start\n"
            ": keep-alive comment\n"
            + delta("ok")
        )
        parser.feed(chunk)
        assert received == ["ok"]

    def test_empty_text_not_emitted(self):
        """Empty fragments are not forwarded."""
        received = []
        parser = SSEChunkParser(extract, received.append)
        parser.feed(delta(""))
        assert received == []

    def test_crlf_lines(self):
        """CRLF line endings are accepted."""
        received = []
        parser = SSEChunkParser(extract, received.append)
        parser.feed(delta("x").replace("\n", "\r\n"))
        assert received == ["x"]

    def test_flush_handles_unterminated_line(self):
        """flush() processes a final line without newline."""
        received = []
        parser = SSEChunkParser(extract, received.append)
        parser.feed(delta("tail").rstrip("\n"))
        assert received == []
        parser.flush()
        assert received == ["tail"]


class TestParseStreamChunk:
    """Tests for the single-chunk helper."""

    def test_reports_done(self):
        """Returns True when the chunk holds [DONE]."""
        received = []
        assert parse_stream_chunk(delta("a") + "data: [DONE]", extract, received.append)
        assert received == ["a"]

    def test_without_done(self):
        """Returns False otherwise."""
        assert not parse_stream_chunk(delta("a"), extract, lambda _: None)
