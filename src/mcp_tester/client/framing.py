# mcp-tester/src/mcp_tester/client/framing.py

"""
Line framing for the stdio transport.

Bytes read from the child's stdout are appended to a rolling buffer and split
on newline. Each complete line is decoded as UTF-8 and parsed as JSON; the
trailing fragment is kept for the next read. Lines that are not JSON, or JSON
that is neither an object nor an array of objects, are dropped and counted.
"""

import json
import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

NEWLINE = b"\n"


class LineFramer:
    """Rolling buffer turning a byte stream into JSON objects"""

    def __init__(self, max_line_bytes: int = 10 * 1024 * 1024):
        self.max_line_bytes = max_line_bytes
        self._buffer = bytearray()
        self.lines_received = 0
        self.discarded_lines = 0
        self.bytes_received = 0

    @property
    def pending_bytes(self) -> int:
        """Size of the buffered partial line"""
        return len(self._buffer)

    def feed(self, data: bytes) -> List[Dict[str, Any]]:
        """
        Append a chunk and return every complete message it finished.

        Args:
            data: Raw bytes from the stream

        Returns:
            Parsed messages in arrival order
        """
        self.bytes_received += len(data)
        self._buffer.extend(data)

        messages: List[Dict[str, Any]] = []
        while True:
            index = self._buffer.find(NEWLINE)
            if index < 0:
                break
            line = bytes(self._buffer[:index])
            del self._buffer[:index + 1]
            messages.extend(self._parse_line(line))

        if len(self._buffer) > self.max_line_bytes:
            logger.warning(f"Discarding oversized partial line ({len(self._buffer)} bytes)")
            self._buffer.clear()
            self.discarded_lines += 1

        return messages

    def flush(self) -> List[Dict[str, Any]]:
        """Parse whatever is left in the buffer (used at end of stream)"""
        if not self._buffer:
            return []
        line = bytes(self._buffer)
        self._buffer.clear()
        return self._parse_line(line)

    def _parse_line(self, line: bytes) -> List[Dict[str, Any]]:
        text = line.decode("utf-8", errors="replace").strip()
        if not text:
            return []

        self.lines_received += 1
        try:
            value = json.loads(text)
        except json.JSONDecodeError:
            self._discard(text, "not JSON")
            return []

        if isinstance(value, dict):
            return [value]
        if isinstance(value, list) and value and all(isinstance(item, dict) for item in value):
            return value

        self._discard(text, f"unexpected JSON {type(value).__name__}")
        return []

    def _discard(self, text: str, reason: str) -> None:
        self.discarded_lines += 1
        logger.debug(f"Dropped line ({reason}): {text[:200]}")
