"""Service supervisor coordinating acquisition, watchdogs and shutdown signals."""
from __future__ import annotations

import logging
import signal
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from ..acquisition.service import AcquisitionService
from .watchdog import CaptureWatchdog, WatchdogEvent

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SupervisorOptions:
    """Configuration options for the service supervisor."""

    start_watchdogs: bool = True
    handle_signals: bool = False


class ServiceSupervisor:
    """Run an :class:`AcquisitionService` with watchdogs and graceful shutdown."""

    def __init__(
        self,
        service: AcquisitionService,
        watchdogs: Optional[Iterable[CaptureWatchdog]] = None,
        options: Optional[SupervisorOptions] = None,
        *,
        on_shutdown_signal: Optional[Callable[[int], None]] = None,
    ) -> None:
        self._service = service
        self._watchdogs: List[CaptureWatchdog] = list(watchdogs or [])
        self._options = options or SupervisorOptions()
        self._on_shutdown_signal = on_shutdown_signal
        self._shutdown_signal: Optional[int] = None

    @property
    def service(self) -> AcquisitionService:
        return self._service

    @property
    def shutdown_signal(self) -> Optional[int]:
        return self._shutdown_signal

    def add_watchdog(self, watchdog: CaptureWatchdog) -> None:
        self._watchdogs.append(watchdog)

    def handle_signal(self, signum: int, frame=None) -> None:
        """Request a graceful stop; repeated signals are ignored."""

        _ = frame
        if self._shutdown_signal is not None:
            return
        self._shutdown_signal = signum
        logger.info("Received shutdown signal %s, stopping acquisition", signum)
        if self._on_shutdown_signal:
            self._on_shutdown_signal(signum)
        self._service.request_stop()

    def run(self) -> None:
        """Run the acquisition service while managing watchdog lifecycle."""

        with ExitStack() as stack:
            if self._options.handle_signals:
                self._install_signal_handlers(stack)
            if self._options.start_watchdogs:
                for watchdog in self._watchdogs:
                    watchdog.start()
                    stack.callback(watchdog.stop)
            self._service.run()

    def _install_signal_handlers(self, stack: ExitStack) -> None:
        signums = [signal.SIGINT, signal.SIGTERM]
        if hasattr(signal, 'SIGHUP'):
            signums.append(signal.SIGHUP)
        for signum in signums:
            previous = signal.signal(signum, self.handle_signal)
            stack.callback(signal.signal, signum, previous)

    @staticmethod
    def default_watchdog_handler(event: WatchdogEvent) -> None:
        """Basic handler that prints the watchdog event."""

        timestamp = event.occurred_at.isoformat()
        payload = f" payload={event.payload}" if event.payload else ""
        print(f"[watchdog] {timestamp} {event.kind}: {event.message}{payload}")
