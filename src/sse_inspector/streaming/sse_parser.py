"""
Incremental SSE frame parser for SSE Inspector.

This module turns a sequence of arbitrarily sized text chunks into complete
event payloads:
- Partial lines are carried over between chunks
- Consecutive ``data: `` lines are joined with newlines
- A blank line terminates the current payload
- Other fields (``event:``, ``id:``, ``retry:``, comments) are skipped
"""

from typing import List, Optional
from dataclasses import dataclass, field

from ..utils.logging import get_logger

logger = get_logger("sse-inspector.sse-parser")

DATA_PREFIX = "data: "


@dataclass
class ParserState:
    """Mutable state of one parser; never shared across connection attempts."""
    buffer: str = ""
    pending_data_lines: List[str] = field(default_factory=list)

    def reset(self) -> None:
        self.buffer = ""
        self.pending_data_lines.clear()

    @property
    def pending_payload(self) -> str:
        return "".join(self.pending_data_lines).strip()


class SSEFrameParser:
    """Parses an SSE text stream into raw ``data:`` payloads."""

    def __init__(self):
        self.state = ParserState()
        self._lines_seen = 0
        self._ignored_lines = 0
        self._payloads_emitted = 0

    def reset(self) -> None:
        """Forget all buffered input."""
        self.state.reset()
        self._lines_seen = 0
        self._ignored_lines = 0
        self._payloads_emitted = 0

    def feed(self, chunk: str) -> List[str]:
        """
        Feed a chunk of decoded text.

        Args:
            chunk: Text of any length, possibly ending mid-line

        Returns:
            Payloads completed by this chunk, in stream order
        """
        if not chunk:
            return []

        lines = (self.state.buffer + chunk).split("\n")
        # The last fragment has no terminating newline yet
        self.state.buffer = lines.pop()

        payloads = []
        for line in lines:
            payload = self._process_line(line)
            if payload is not None:
                payloads.append(payload)
        return payloads

    def flush(self) -> Optional[str]:
        """
        Recover a payload left open when the stream ended without a blank line.

        Returns:
            The final payload, or None if nothing was pending
        """
        if self.state.buffer:
            line, self.state.buffer = self.state.buffer, ""
            self._process_line(line)

        payload = self._take_payload()
        logger.debug(
            "sse_parser_flushed",
            lines=self._lines_seen,
            ignored_lines=self._ignored_lines,
            payloads=self._payloads_emitted,
            recovered=payload is not None,
        )
        return payload

    def _process_line(self, line: str) -> Optional[str]:
        self._lines_seen += 1
        if line.endswith("\r"):
            line = line[:-1]

        if line.startswith(DATA_PREFIX):
            self.state.pending_data_lines.append(line[len(DATA_PREFIX):] + "\n")
            return None

        if line == "":
            return self._take_payload()

        self._ignored_lines += 1
        return None

    def _take_payload(self) -> Optional[str]:
        payload = self.state.pending_payload
        if not payload:
            return None
        self.state.pending_data_lines.clear()
        self._payloads_emitted += 1
        return payload

    def get_stats(self) -> dict:
        """Get parser statistics."""
        return {
            'lines_processed': self._lines_seen,
            'ignored_lines': self._ignored_lines,
            'payloads_emitted': self._payloads_emitted,
            'buffer_size': len(self.state.buffer),
            'pending_lines': len(self.state.pending_data_lines),
        }
