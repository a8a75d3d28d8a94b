"""Watchdog utilities for monitoring the acquisition service."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from ..acquisition.service import AcquisitionService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WatchdogEvent:
    """Represents a lifecycle event emitted by a watchdog."""

    kind: str
    message: str
    occurred_at: datetime
    payload: Optional[dict[str, Any]] = None


class CaptureWatchdog:
    """Warn when the analyzer link stays silent for longer than *timeout_s*."""

    def __init__(
        self,
        service: 'AcquisitionService',
        timeout_s: float = 60.0,
        poll_interval_s: float = 2.0,
        on_event: Optional[Callable[[WatchdogEvent], None]] = None,
    ) -> None:
        if timeout_s <= 0:
            raise ValueError('timeout_s must be positive')
        if poll_interval_s <= 0:
            raise ValueError('poll_interval_s must be positive')
        self._service = service
        self._timeout_s = timeout_s
        self._poll_interval_s = poll_interval_s
        self._on_event = on_event
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._alert_active = False
        self._last_chunk_count = 0
        self._first_window_at: Optional[datetime] = None

    @property
    def alert_active(self) -> bool:
        return self._alert_active

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='capture-watchdog', daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)

    def _emit(self, kind: str, message: str, payload: Optional[dict[str, Any]] = None) -> None:
        if not self._on_event:
            return
        event = WatchdogEvent(kind=kind, message=message, occurred_at=datetime.now(timezone.utc), payload=payload)
        try:
            self._on_event(event)
        except Exception:  # pylint: disable=broad-except
            logger.exception('Watchdog event handler failed')

    def check(self, now: Optional[datetime] = None) -> None:
        """Evaluate the service statistics once."""

        stats = self._service.stats
        now = now or datetime.now(timezone.utc)
        if self._first_window_at is None:
            self._first_window_at = stats.last_window_started

        if stats.chunks > self._last_chunk_count:
            self._last_chunk_count = stats.chunks
            if self._alert_active:
                self._alert_active = False
                self._emit(
                    'recovery',
                    'Data received after watchdog timeout',
                    {
                        'chunks': stats.chunks,
                        'results': stats.results,
                    },
                )
            return

        # Windows restart every few seconds, so silence is measured from the first one.
        reference = stats.last_chunk_at or self._first_window_at
        if reference is None:
            return
        elapsed = (now - reference).total_seconds()

        if elapsed >= self._timeout_s and not self._alert_active:
            self._alert_active = True
            self._emit(
                'timeout',
                'No data received within watchdog timeout',
                {
                    'elapsed_s': elapsed,
                    'chunks': stats.chunks,
                    'results': stats.results,
                },
            )

    def _run(self) -> None:
        while not self._stop.wait(self._poll_interval_s):
            self.check()
