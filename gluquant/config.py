"""Configuration management for the GLUQUANT LIS bridge."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

from .constants import (
    DEFAULT_RESULT_UNIT,
    DEFAULT_SERIAL_PORT,
    MAX_BUFFER_CHARS,
    MESSAGE_END,
    MESSAGE_START,
)

PARITY_CHOICES = {'N', 'E', 'O', 'M', 'S'}
DATA_BITS_CHOICES = {5, 6, 7, 8}
STOP_BITS_CHOICES = {1.0, 1.5, 2.0}

if TYPE_CHECKING:
    from .protocols.registry import ProtocolProfile


@dataclass(slots=True)
class DeviceConfig:
    """Serial transport parameters for the analyzer connection."""

    profile: Optional[str] = None
    use_profile_defaults: bool = True
    transport: str = "serial"
    port: str = DEFAULT_SERIAL_PORT
    baud: int = 9600
    data_bits: int = 8
    stop_bits: float = 1.0
    parity: str = "N"
    rtscts: bool = False
    read_timeout_s: float = 0.5
    chunk_size: int = 1024
    open_retry_attempts: int = 5
    open_retry_backoff_s: float = 0.5

    def __post_init__(self) -> None:
        self.parity = self._normalise_parity(self.parity)
        self.data_bits = self._normalise_data_bits(self.data_bits)
        self.stop_bits = self._normalise_stop_bits(self.stop_bits)
        self.transport = (self.transport or "serial").lower()
        try:
            attempts = int(self.open_retry_attempts)
        except (TypeError, ValueError):
            attempts = 1
        self.open_retry_attempts = max(attempts, 1)
        try:
            backoff = float(self.open_retry_backoff_s)
        except (TypeError, ValueError):
            backoff = 0.5
        if backoff < 0:
            backoff = 0.0
        self.open_retry_backoff_s = backoff
        if self.chunk_size < 1:
            self.chunk_size = 1
        if self.read_timeout_s < 0:
            self.read_timeout_s = 0.0

    @staticmethod
    def _normalise_parity(value: Optional[str]) -> str:
        candidate = (value or "N").strip().upper()[:1]
        if candidate not in PARITY_CHOICES:
            allowed = ", ".join(sorted(PARITY_CHOICES))
            raise ValueError(f"parity must be one of {allowed}")
        return candidate

    @staticmethod
    def _normalise_data_bits(value: Any) -> int:
        bits = int(value)
        if bits not in DATA_BITS_CHOICES:
            raise ValueError("data_bits must be one of 5, 6, 7, 8")
        return bits

    @staticmethod
    def _normalise_stop_bits(value: Any) -> float:
        bits = float(value)
        if bits not in STOP_BITS_CHOICES:
            raise ValueError("stop_bits must be one of 1, 1.5, 2")
        return bits

    def apply_profile(self, profile: "ProtocolProfile") -> None:
        if profile.transport:
            self.transport = profile.transport
        if not self.use_profile_defaults:
            return
        if profile.baud is not None:
            self.baud = int(profile.baud)
        if profile.data_bits is not None:
            self.data_bits = self._normalise_data_bits(profile.data_bits)
        if profile.stop_bits is not None:
            self.stop_bits = self._normalise_stop_bits(profile.stop_bits)
        if profile.parity is not None:
            self.parity = self._normalise_parity(profile.parity)
        if profile.rtscts is not None:
            self.rtscts = bool(profile.rtscts)
        if profile.read_timeout_s is not None:
            self.read_timeout_s = float(profile.read_timeout_s)
        if profile.chunk_size is not None:
            self.chunk_size = int(profile.chunk_size)

    def describe(self) -> str:
        """Return the usual ``9600-8-N-1`` shorthand for the line settings."""

        stop = int(self.stop_bits) if float(self.stop_bits).is_integer() else self.stop_bits
        return f"{self.baud}-{self.data_bits}-{self.parity}-{stop}"


@dataclass(slots=True)
class FramingConfig:
    """Message delimiters and overflow ceiling for the stream framer."""

    start_delimiter: str = MESSAGE_START
    end_delimiter: str = MESSAGE_END
    max_buffer_chars: int = MAX_BUFFER_CHARS
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not self.start_delimiter or not self.end_delimiter:
            raise ValueError("framing delimiters must not be empty")
        if self.start_delimiter == self.end_delimiter:
            raise ValueError("start and end delimiters must differ")
        try:
            ceiling = int(self.max_buffer_chars)
        except (TypeError, ValueError):
            ceiling = MAX_BUFFER_CHARS
        longest = max(len(self.start_delimiter), len(self.end_delimiter))
        if ceiling < longest:
            raise ValueError("max_buffer_chars must be able to hold a delimiter")
        self.max_buffer_chars = ceiling


@dataclass(slots=True)
class DecoderConfig:
    """Controls how decoded records are labelled and serialised."""

    result_unit: str = DEFAULT_RESULT_UNIT
    emit_raw: bool = True


@dataclass(slots=True)
class AcquisitionConfig:
    '''Runtime behaviour of the acquisition service.'''

    window_s: float = 1.0
    restart_delay_s: float = 2.0
    status_interval_s: float = 0.0
    max_runtime_s: float = 0.0
    quiet: bool = False
    log_communications: bool = True
    debug_mode: bool = False

    def __post_init__(self) -> None:
        if self.window_s <= 0:
            self.window_s = 1.0
        if self.restart_delay_s < 0:
            self.restart_delay_s = 0.0
        if self.status_interval_s < 0:
            self.status_interval_s = 0.0
        if self.max_runtime_s < 0:
            self.max_runtime_s = 0.0


@dataclass(slots=True)
class AppConfig:
    """Top-level application configuration bundle."""

    device: DeviceConfig = field(default_factory=DeviceConfig)
    framing: FramingConfig = field(default_factory=FramingConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        """Create a configuration instance from a nested dictionary."""

        def _section(name: str, factory: Any) -> Any:
            data = payload.get(name, {}) if payload else {}
            if isinstance(data, dict):
                return factory(**data)
            raise TypeError(f"Expected mapping for section '{name}', got {type(data).__name__}")

        return cls(
            device=_section("device", DeviceConfig),
            framing=_section("framing", FramingConfig),
            decoder=_section("decoder", DecoderConfig),
            acquisition=_section("acquisition", AcquisitionConfig),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return a serialisable representation of the configuration."""

        def _asdict(obj: Any) -> Dict[str, Any]:
            return {field: getattr(obj, field) for field in obj.__dataclass_fields__}  # type: ignore[attr-defined]

        return {
            'device': _asdict(self.device),
            'framing': _asdict(self.framing),
            'decoder': _asdict(self.decoder),
            'acquisition': _asdict(self.acquisition),
        }


def load_config(path: Optional[Path]) -> AppConfig:
    """Load configuration from *path* if provided, otherwise return defaults."""

    if path is None:
        return AppConfig()
    resolved = path.expanduser()
    if not resolved.exists():
        return AppConfig()
    payload: Dict[str, Any]
    suffix = resolved.suffix.lower()
    if suffix in {".json", ".jsn"}:
        payload = _load_json(resolved)
    elif suffix in {".toml", ".tml"}:
        payload = _load_toml(resolved)
    elif suffix in {".yaml", ".yml"}:
        payload = _load_yaml(resolved)
    else:
        raise ValueError(f"Unsupported configuration format: {resolved.suffix}")
    return AppConfig.from_dict(payload)


def _load_json(path: Path) -> Dict[str, Any]:
    import json

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _load_toml(path: Path) -> Dict[str, Any]:
    import tomllib

    with path.open("rb") as handle:
        return tomllib.load(handle)


def _load_yaml(path: Path) -> Dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}
