"""Ingestion pipeline that frames raw chunks and decodes complete messages."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..config import AcquisitionConfig, DecoderConfig, FramingConfig
from ..decoding import DecodedResult, decode_message
from ..diagnostics import hex_dump, printable_ascii
from ..errors import DecodeError
from ..framing import MessageFramer

logger = logging.getLogger(__name__)

ResultCallback = Callable[[DecodedResult], None]
DecodeErrorCallback = Callable[[str, DecodeError], None]


class MessageIngestor:
    """Own one framer for one connection and dispatch decoded results.

    Every message completed by a chunk is decoded and dispatched before
    :meth:`handle_chunk` returns, so callbacks observe messages in wire order.
    """

    def __init__(
        self,
        framing: Optional[FramingConfig] = None,
        decoder: Optional[DecoderConfig] = None,
        *,
        on_result: Optional[ResultCallback] = None,
        on_decode_error: Optional[DecodeErrorCallback] = None,
        log_communications: bool = False,
        debug_mode: bool = False,
    ) -> None:
        self._framing = framing or FramingConfig()
        self._decoder = decoder or DecoderConfig()
        self._framer = MessageFramer.from_config(self._framing)
        self._on_result = on_result
        self._on_decode_error = on_decode_error
        self._log_communications = log_communications
        self._debug_mode = debug_mode
        self._chunks = 0
        self._bytes = 0
        self._results = 0
        self._decode_failures = 0

    @classmethod
    def for_acquisition(
        cls,
        framing: FramingConfig,
        decoder: DecoderConfig,
        acquisition: AcquisitionConfig,
        **callbacks,
    ) -> "MessageIngestor":
        return cls(
            framing,
            decoder,
            log_communications=acquisition.log_communications,
            debug_mode=acquisition.debug_mode,
            **callbacks,
        )

    @property
    def framer(self) -> MessageFramer:
        return self._framer

    @property
    def chunks(self) -> int:
        return self._chunks

    @property
    def bytes_received(self) -> int:
        return self._bytes

    @property
    def results(self) -> int:
        return self._results

    @property
    def decode_failures(self) -> int:
        return self._decode_failures

    def handle_chunk(self, chunk: bytes) -> List[DecodedResult]:
        """Feed *chunk* through the framer and return the records it produced."""

        self._chunks += 1
        self._bytes += len(chunk)
        self._log_chunk(chunk)
        decoded: List[DecodedResult] = []
        for message in self._framer.feed(chunk):
            result = self.handle_message(message)
            if result is not None:
                decoded.append(result)
        return decoded

    def handle_message(self, message: str) -> Optional[DecodedResult]:
        logger.info("Complete LIS message received (%d chars)", len(message))
        try:
            result = decode_message(message, unit=self._decoder.result_unit)
        except DecodeError as exc:
            self._decode_failures += 1
            logger.warning("Failed to decode message: %s", exc)
            if self._on_decode_error:
                self._on_decode_error(message, exc)
            return None
        self._results += 1
        if self._on_result:
            self._on_result(result)
        return result

    def _log_chunk(self, chunk: bytes) -> None:
        if self._debug_mode and logger.isEnabledFor(logging.DEBUG):
            for line in hex_dump(chunk):
                logger.debug("HEX %s", line)
        if self._log_communications and logger.isEnabledFor(logging.INFO):
            text = chunk.decode(self._framing.encoding, errors="replace")
            logger.info("RX %s", printable_ascii(text))
