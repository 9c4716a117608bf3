# src/schemachat/streaming.py
"""
Server-Sent Events chunk parsing for streaming chat responses.

Each ``data: `` line carries one JSON event; ``data: [DONE]`` ends the
stream. Text is pulled out of every event with the same extraction used for
non-streaming responses, so providers whose deltas live under a different
path simply yield nothing for those events.
"""

import json
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data: "
SSE_DONE_PAYLOAD = "[DONE]"

TextExtractor = Callable[[Any], str]


class SSEChunkParser:
    """
    Incremental SSE parser.

    Transports deliver arbitrary slices of the body, so a line can straddle
    two chunks; the unterminated tail of each chunk is held back until the
    next one arrives (or :meth:`flush` is called).

    Args:
        extract_text: Maps a parsed event to its text; may raise on events
            without text.
        on_text: Receives every non-empty text fragment.
    """

    def __init__(
        self,
        extract_text: TextExtractor,
        on_text: Callable[[str], None],
        logger: Optional[logging.Logger] = None,
    ):
        self._extract_text = extract_text
        self._on_text = on_text
        self._logger = logger or logging.getLogger(__name__)
        self._buffer = ""
        self._done = False

    @property
    def done(self) -> bool:
        """True once ``[DONE]`` has been seen; later input is ignored."""
        return self._done

    def feed(self, chunk: str) -> None:
        if self._done:
            return
        data = self._buffer + chunk
        lines = data.split("\n")
        self._buffer = lines.pop()
        for line in lines:
            self._handle_line(line)
            if self._done:
                self._buffer = ""
                return

    def flush(self) -> None:
        """Process a final line that arrived without a trailing newline."""
        if self._buffer and not self._done:
            line, self._buffer = self._buffer, ""
            self._handle_line(line)

    def _handle_line(self, line: str) -> None:
        line = line.rstrip("\r")
        if not line or not line.startswith(SSE_DATA_PREFIX):
            return

        payload = line[len(SSE_DATA_PREFIX):]
        if payload == SSE_DONE_PAYLOAD:
            self._done = True
            return

        try:
            event = json.loads(payload)
            text = self._extract_text(event)
        except (ValueError, RuntimeError) as e:
            # A malformed or text-less event must not abort the stream
            self._logger.debug(f"Skipping stream event: {e}")
            return

        if text:
            self._on_text(text)


def parse_stream_chunk(chunk: str, extract_text: TextExtractor, on_text: Callable[[str], None]) -> bool:
    """
    Parse one self-contained chunk of SSE lines.

    Returns:
        True if the chunk contained the ``[DONE]`` marker.
    """
    parser = SSEChunkParser(extract_text, on_text)
    parser.feed(chunk)
    parser.flush()
    return parser.done
