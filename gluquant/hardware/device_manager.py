"""Transport layer for GLUQUANT analyzers."""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, Sequence

import serial
from serial.tools import list_ports

from ..config import DeviceConfig
from ..errors import TransportError

logger = logging.getLogger(__name__)

ChunkHandler = Callable[[bytes], None]

SUPPORTED_TRANSPORTS = {"serial", "sim"}

_BYTESIZES = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}

_STOPBITS = {
    1.0: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2.0: serial.STOPBITS_TWO,
}


class DeviceInterface(Protocol):
    """Common interface for transport adapters."""

    def open(self) -> "ListedDevice":  # pragma: no cover - protocol signature
        ...

    def close(self) -> None:  # pragma: no cover - protocol signature
        ...

    def run_window(
        self,
        duration_s: float,
        chunk_handler: Optional[ChunkHandler],
    ) -> int:  # pragma: no cover - protocol signature
        ...

    def __enter__(self) -> "DeviceInterface":  # pragma: no cover - protocol signature
        ...

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - protocol signature
        ...


@dataclass(slots=True)
class ListedDevice:
    """Metadata describing a visible serial port."""

    index: int
    port: str
    description: Optional[str] = None
    manufacturer: Optional[str] = None
    serial: Optional[str] = None
    transport: str = "serial"


def list_devices(transport: str = "serial") -> list[ListedDevice]:
    """Enumerate visible devices for *transport*."""

    transport = transport.lower()
    if transport == "sim":
        return [
            ListedDevice(
                index=0,
                port="sim://gluquant",
                description="Simulated GLUQUANT analyzer",
                serial="SIM-DEVICE",
                transport="sim",
            )
        ]
    if transport != "serial":
        raise ValueError(f"Device enumeration is not implemented for transport '{transport}'")
    devices: list[ListedDevice] = []
    for index, info in enumerate(sorted(list_ports.comports(), key=lambda entry: entry.device)):
        devices.append(
            ListedDevice(
                index=index,
                port=info.device,
                description=info.description,
                manufacturer=info.manufacturer,
                serial=info.serial_number,
            )
        )
    return devices


class SerialInterface(DeviceInterface):
    """Manage an RS-232 connection to the analyzer through pyserial."""

    def __init__(
        self,
        config: DeviceConfig,
        serial_factory: Optional[Callable[..., serial.Serial]] = None,
    ) -> None:
        self._config = config
        self._serial_factory = serial_factory or serial.Serial
        self._port: Optional[serial.Serial] = None
        self._device: Optional[ListedDevice] = None

    @property
    def device(self) -> Optional[ListedDevice]:
        return self._device

    @property
    def is_open(self) -> bool:
        return self._port is not None and self._port.is_open

    def open(self) -> ListedDevice:
        if self._port is not None:
            assert self._device is not None
            return self._device
        config = self._config
        last_error: Optional[Exception] = None
        for attempt in range(1, config.open_retry_attempts + 1):
            try:
                port = self._serial_factory(
                    port=config.port,
                    baudrate=config.baud,
                    bytesize=_BYTESIZES[config.data_bits],
                    parity=config.parity,
                    stopbits=_STOPBITS[config.stop_bits],
                    timeout=config.read_timeout_s,
                    rtscts=config.rtscts,
                )
            except (serial.SerialException, OSError) as exc:
                last_error = exc
                logger.debug("Open attempt %d on %s failed: %s", attempt, config.port, exc)
                if attempt < config.open_retry_attempts:
                    time.sleep(config.open_retry_backoff_s * attempt)
                continue
            self._port = port
            self._device = ListedDevice(index=0, port=config.port, description=config.describe())
            logger.info("Connected on %s (%s, RTS/CTS %s)", config.port, config.describe(), "on" if config.rtscts else "off")
            return self._device
        raise TransportError(f"Failed to open {config.port}: {last_error}", port=config.port) from last_error

    def close(self) -> None:
        if self._port is not None:
            try:
                self._port.close()
            finally:
                self._port = None
                self._device = None

    def run_window(
        self,
        duration_s: float,
        chunk_handler: Optional[ChunkHandler],
    ) -> int:
        if self._port is None:
            self.open()
        assert self._port is not None
        total = 0
        deadline = time.monotonic() + max(duration_s, 0.0)
        while time.monotonic() < deadline:
            try:
                waiting = self._port.in_waiting
                data = self._port.read(min(max(waiting, 1), self._config.chunk_size))
            except (serial.SerialException, OSError) as exc:
                raise TransportError(f"Read from {self._config.port} failed: {exc}", port=self._config.port) from exc
            if not data:
                continue
            total += len(data)
            if chunk_handler:
                chunk_handler(data)
        return total

    def __enter__(self) -> "SerialInterface":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()


SIMULATED_MODELS = ("GQ-1000",)


class SimulatedInterface(DeviceInterface):
    """In-memory analyzer replaying result blocks in randomly sized chunks."""

    def __init__(
        self,
        config: DeviceConfig,
        messages: Optional[Sequence[str]] = None,
        *,
        seed: Optional[int] = None,
        max_chunk: int = 16,
    ) -> None:
        self._config = config
        self._device = ListedDevice(
            index=0,
            port="sim://gluquant",
            description="Simulated GLUQUANT analyzer",
            serial="SIM-DEVICE",
            transport="sim",
        )
        self._messages = list(messages) if messages is not None else None
        self._random = random.Random(seed)
        self._max_chunk = max(max_chunk, 1)
        self._opened = False
        self._sample_counter = 0

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> ListedDevice:
        self._opened = True
        return self._device

    def close(self) -> None:
        self._opened = False

    def run_window(
        self,
        duration_s: float,
        chunk_handler: Optional[ChunkHandler],
    ) -> int:
        self.open()
        if self._messages is not None:
            if not self._messages:
                time.sleep(min(max(duration_s, 0.0), 0.05))
                return 0
            message = self._messages.pop(0)
        else:
            # One result per window paces the stream like a real upload.
            time.sleep(max(duration_s, 0.0))
            message = self._generate_message()
        total = 0
        for chunk in self.split(message.encode("utf-8")):
            total += len(chunk)
            if chunk_handler:
                chunk_handler(chunk)
        return total

    def split(self, payload: bytes) -> Iterable[bytes]:
        offset = 0
        while offset < len(payload):
            size = self._random.randint(1, self._max_chunk)
            yield payload[offset:offset + size]
            offset += size

    def __enter__(self) -> "SimulatedInterface":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def _generate_message(self) -> str:
        self._sample_counter += 1
        value = round(self._random.uniform(4.5, 8.5), 1)
        code = self._sample_counter % 5
        timestamp = time.strftime("%Y-%m-%dT%H:%M")
        return (
            "<SEND>\r\n"
            f"<M>{SIMULATED_MODELS[0]}|{self._device.serial}</M>\r\n"
            "<I>\r\n"
            f"0|{timestamp}|S{self._sample_counter:04d}|A{self._sample_counter % 10}|{code}\r\n"
            "</I>\r\n"
            "<R>\r\n"
            f"HbA1c|{value}\r\n"
            "</R>\r\n"
            "</SEND>\r\n"
        )


def create_interface(config: DeviceConfig) -> DeviceInterface:
    """Create an interface instance based on *config.transport*."""

    transport = (config.transport or "serial").lower()
    if transport == "serial":
        return SerialInterface(config)
    if transport == "sim":
        return SimulatedInterface(config)
    raise ValueError(f"Unsupported transport '{config.transport}'")
