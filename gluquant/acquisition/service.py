"""Acquisition service orchestrating the analyzer connection and ingestion."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from ..config import AppConfig
from ..decoding import DecodedResult
from ..errors import DecodeError
from ..hardware import DeviceInterface, ListedDevice, create_interface
from ..ingestion import MessageIngestor
from ..protocols.registry import ProtocolRegistry

logger = logging.getLogger(__name__)

EVENT_CONNECTED = 'connected'
EVENT_RESULTS = 'results'
EVENT_ERROR = 'error'
EVENT_DISCONNECTED = 'disconnected'


@dataclass(slots=True)
class AnalyzerEvent:
    """A notification relayed to the application.

    ``results`` events carry the :class:`DecodedResult` under ``payload['result']``;
    ``error`` events carry ``payload['source']`` (``decode`` or ``transport``)
    and ``payload['error']``.
    """

    kind: str
    occurred_at: datetime
    payload: Optional[Dict[str, Any]] = None


EventCallback = Callable[[AnalyzerEvent], None]


@dataclass(slots=True)
class ServiceStats:
    chunks: int = 0
    bytes_read: int = 0
    messages: int = 0
    results: int = 0
    decode_failures: int = 0
    overflows: int = 0
    connections: int = 0
    transport_errors: int = 0
    last_window_bytes: int = 0
    last_window_started: Optional[datetime] = None
    last_chunk_at: Optional[datetime] = None
    last_result_at: Optional[datetime] = None


class AcquisitionService:
    """Keep one analyzer connection alive and relay its results as events."""

    def __init__(
        self,
        config: AppConfig,
        interface_factory: Optional[Callable[[], DeviceInterface]] = None,
        protocol_registry: Optional[ProtocolRegistry] = None,
        *,
        on_event: Optional[EventCallback] = None,
    ) -> None:
        self._config = config
        if protocol_registry is not None:
            profile = protocol_registry.apply_to_device(config.device)
            profile.apply_framing(config.framing, use_profile_defaults=config.device.use_profile_defaults)
        self._interface_factory = interface_factory or (lambda: create_interface(config.device))
        self._on_event = on_event
        self._stop_requested = False
        self._stats = ServiceStats()

    @property
    def stats(self) -> ServiceStats:
        return self._stats

    @property
    def config(self) -> AppConfig:
        return self._config

    def request_stop(self) -> None:
        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def _emit(self, kind: str, payload: Optional[Dict[str, Any]] = None) -> None:
        if not self._on_event:
            return
        self._on_event(AnalyzerEvent(kind=kind, occurred_at=datetime.now(timezone.utc), payload=payload))

    def _new_ingestor(self) -> MessageIngestor:
        # A fresh framer per connection keeps a dropped link from leaking a partial message.
        return MessageIngestor.for_acquisition(
            self._config.framing,
            self._config.decoder,
            self._config.acquisition,
            on_result=self._handle_result,
            on_decode_error=self._handle_decode_error,
        )

    def _handle_result(self, result: DecodedResult) -> None:
        self._stats.messages += 1
        self._stats.results += 1
        self._stats.last_result_at = result.received_at
        self._emit(EVENT_RESULTS, {'result': result})

    def _handle_decode_error(self, message: str, exc: DecodeError) -> None:
        self._stats.messages += 1
        self._stats.decode_failures += 1
        self._emit(
            EVENT_ERROR,
            {
                'source': 'decode',
                'error': str(exc),
                'message_chars': len(message),
            },
        )

    def _close(self, interface: DeviceInterface, listed: Optional[ListedDevice]) -> None:
        interface.close()
        if listed is not None:
            self._emit(EVENT_DISCONNECTED, {'port': listed.port})

    def run(self) -> None:
        acquisition_cfg = self._config.acquisition
        interface = self._interface_factory()
        listed: Optional[ListedDevice] = None
        ingestor: Optional[MessageIngestor] = None
        overflow_base = 0
        start_time = time.time()
        next_status: Optional[float] = (
            time.time() + acquisition_cfg.status_interval_s
            if acquisition_cfg.status_interval_s > 0
            else None
        )
        try:
            while not self._stop_requested:
                if acquisition_cfg.max_runtime_s > 0 and (time.time() - start_time) >= acquisition_cfg.max_runtime_s:
                    break
                if listed is None:
                    try:
                        listed = interface.open()
                    except Exception as exc:  # pylint: disable=broad-except
                        listed = None
                        interface.close()
                        self._stats.transport_errors += 1
                        self._emit(EVENT_ERROR, {'source': 'transport', 'error': str(exc)})
                        if not acquisition_cfg.quiet:
                            print(
                                f"Warning: device open failed: {exc}. Retrying after {acquisition_cfg.restart_delay_s}s",
                            )
                        time.sleep(max(acquisition_cfg.restart_delay_s, 0.05))
                        continue
                    ingestor = self._new_ingestor()
                    overflow_base = self._stats.overflows
                    self._stats.connections += 1
                    self._emit(
                        EVENT_CONNECTED,
                        {
                            'port': listed.port,
                            'description': listed.description,
                            'profile': self._config.device.profile,
                        },
                    )
                assert ingestor is not None
                self._stats.last_window_started = datetime.now(timezone.utc)

                def _handle(chunk: bytes, ingestor: MessageIngestor = ingestor) -> None:
                    self._stats.chunks += 1
                    self._stats.last_chunk_at = datetime.now(timezone.utc)
                    ingestor.handle_chunk(chunk)

                try:
                    bytes_read = interface.run_window(acquisition_cfg.window_s, chunk_handler=_handle)
                except KeyboardInterrupt:
                    self.request_stop()
                    break
                except Exception as exc:  # pylint: disable=broad-except
                    self._stats.overflows = overflow_base + ingestor.framer.overflows
                    self._stats.transport_errors += 1
                    self._emit(EVENT_ERROR, {'source': 'transport', 'error': str(exc)})
                    self._close(interface, listed)
                    listed = None
                    ingestor = None
                    if not acquisition_cfg.quiet:
                        print(
                            f"Warning: capture window failed: {exc}. Retrying after {acquisition_cfg.restart_delay_s}s",
                        )
                    time.sleep(max(acquisition_cfg.restart_delay_s, 0.05))
                    continue
                self._stats.overflows = overflow_base + ingestor.framer.overflows
                self._stats.bytes_read += bytes_read
                self._stats.last_window_bytes = bytes_read
                if next_status and time.time() >= next_status and not acquisition_cfg.quiet:
                    print(
                        f"Results: {self._stats.results}, Decode failures: {self._stats.decode_failures}, "
                        f"Bytes: {self._stats.bytes_read}",
                    )
                    next_status = time.time() + acquisition_cfg.status_interval_s
        finally:
            self._close(interface, listed)
