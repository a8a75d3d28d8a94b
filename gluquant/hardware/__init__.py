"""Hardware abstraction helpers."""
from __future__ import annotations

from .device_manager import (
    DeviceInterface,
    ListedDevice,
    SerialInterface,
    SimulatedInterface,
    create_interface,
    list_devices,
)

__all__ = [
    "DeviceInterface",
    "ListedDevice",
    "SerialInterface",
    "SimulatedInterface",
    "create_interface",
    "list_devices",
]
