"""Stream framer that reassembles ``<SEND>...</SEND>`` messages from raw chunks.

The analyzer writes each result as a single ASCII block, but the serial
driver hands it over in whatever pieces happen to be in the receive buffer.
:class:`MessageFramer` keeps one logical buffer for the lifetime of the
connection and inspects it after every character, so delimiters split across
chunk boundaries are still recognised.

State machine::

    AWAITING_START --(start delimiter seen)--> ACCUMULATING
    ACCUMULATING   --(end delimiter seen)----> AWAITING_START  (message emitted)
    any            --(buffer > ceiling)------> AWAITING_START  (buffer dropped)
"""
from __future__ import annotations

import codecs
import enum
import logging
from typing import List, Optional

from ..constants import MAX_BUFFER_CHARS, MESSAGE_END, MESSAGE_START

logger = logging.getLogger(__name__)


class FramerState(enum.Enum):
    AWAITING_START = "awaiting_start"
    ACCUMULATING = "accumulating"


class MessageFramer:
    """Turn an arbitrarily chunked byte stream into complete messages.

    Args:
        start_delimiter: Literal marking the start of a message.
        end_delimiter: Literal marking the end of a message.
        max_buffer_chars: Buffer ceiling; exceeding it discards the partial
            message and resynchronises on the next start delimiter.
        encoding: Text encoding of the byte stream.
    """

    def __init__(
        self,
        start_delimiter: str = MESSAGE_START,
        end_delimiter: str = MESSAGE_END,
        max_buffer_chars: int = MAX_BUFFER_CHARS,
        encoding: str = "utf-8",
    ) -> None:
        if not start_delimiter or not end_delimiter:
            raise ValueError("delimiters must not be empty")
        self._start = start_delimiter
        self._end = end_delimiter
        self._max_chars = max_buffer_chars
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        # Delimiter checks only need to look at the most recent characters.
        self._window = max(len(start_delimiter), len(end_delimiter))
        self._state = FramerState.AWAITING_START
        self._buffer: List[str] = []
        self._tail = ""
        self._messages = 0
        self._overflows = 0

    @classmethod
    def from_config(cls, config) -> "MessageFramer":
        return cls(
            start_delimiter=config.start_delimiter,
            end_delimiter=config.end_delimiter,
            max_buffer_chars=config.max_buffer_chars,
            encoding=config.encoding,
        )

    @property
    def state(self) -> FramerState:
        return self._state

    @property
    def buffered(self) -> str:
        return "".join(self._buffer)

    @property
    def messages(self) -> int:
        return self._messages

    @property
    def overflows(self) -> int:
        return self._overflows

    def feed(self, chunk: bytes) -> List[str]:
        """Consume *chunk* and return every message it completed, in order."""

        return self.feed_text(self._decoder.decode(bytes(chunk)))

    def feed_text(self, text: str) -> List[str]:
        completed: List[str] = []
        for char in text:
            message = self._consume(char)
            if message is not None:
                completed.append(message)
        return completed

    def reset(self) -> None:
        self._state = FramerState.AWAITING_START
        self._buffer = []
        self._tail = ""
        self._decoder.reset()

    def _consume(self, char: str) -> Optional[str]:
        self._buffer.append(char)
        self._tail = (self._tail + char)[-self._window:]

        if self._state is FramerState.AWAITING_START and self._tail.endswith(self._start):
            # Anything before the start delimiter is line noise.
            self._state = FramerState.ACCUMULATING
            self._buffer = list(self._start)
            self._tail = self._start
            return None

        if self._state is FramerState.ACCUMULATING and self._tail.endswith(self._end):
            message = "".join(self._buffer)
            self._state = FramerState.AWAITING_START
            self._buffer = []
            self._tail = ""
            self._messages += 1
            return message

        if len(self._buffer) > self._max_chars:
            logger.warning(
                "Buffer overflow protection triggered: dropped %d buffered characters",
                len(self._buffer),
            )
            self._overflows += 1
            self._state = FramerState.AWAITING_START
            self._buffer = []
            self._tail = ""
        return None
