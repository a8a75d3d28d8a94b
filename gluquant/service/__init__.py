"""Service lifecycle helpers."""
from __future__ import annotations

from .supervisor import ServiceSupervisor, SupervisorOptions
from .watchdog import CaptureWatchdog, WatchdogEvent

__all__ = [
    "CaptureWatchdog",
    "ServiceSupervisor",
    "SupervisorOptions",
    "WatchdogEvent",
]
