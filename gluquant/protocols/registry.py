"""Protocol registry utilities for GLUQUANT analyzers."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import DeviceConfig, FramingConfig

DEFAULT_PROFILE_NAME = "gluquant_hplc"


@dataclass(slots=True)
class ProtocolProfile:
    """Represents a single analyzer link definition."""

    name: str
    description: Optional[str] = None
    transport: Optional[str] = None
    baud: Optional[int] = None
    data_bits: Optional[int] = None
    stop_bits: Optional[float] = None
    parity: Optional[str] = None
    rtscts: Optional[bool] = None
    read_timeout_s: Optional[float] = None
    chunk_size: Optional[int] = None
    start_delimiter: Optional[str] = None
    end_delimiter: Optional[str] = None

    def apply_framing(self, framing: FramingConfig, *, use_profile_defaults: bool = True) -> None:
        """Copy delimiters the profile names explicitly into *framing*."""

        if not use_profile_defaults:
            return
        if self.start_delimiter is not None:
            framing.start_delimiter = self.start_delimiter
        if self.end_delimiter is not None:
            framing.end_delimiter = self.end_delimiter
        framing.validate()


class ProtocolRegistry:
    """Container that maps profile names to analyzer link descriptions."""

    def __init__(self, profiles: Dict[str, ProtocolProfile]):
        self._profiles = profiles

    def get(self, name: str) -> Optional[ProtocolProfile]:
        return self._profiles.get(name.lower())

    def names(self) -> list[str]:
        return sorted(self._profiles)

    def apply_to_device(self, device: DeviceConfig) -> ProtocolProfile:
        """Apply the profile referenced by *device* to the device config."""

        requested = (device.profile or DEFAULT_PROFILE_NAME).lower()
        profile = self.get(requested)
        if profile is None and requested != DEFAULT_PROFILE_NAME:
            profile = self.get(DEFAULT_PROFILE_NAME)
        if profile is None:
            raise KeyError(f"Protocol profile '{requested}' not found")
        device.apply_profile(profile)
        # Downstream consumers see the resolved profile name.
        device.profile = profile.name
        return profile

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ProtocolRegistry":
        profiles: Dict[str, ProtocolProfile] = {}
        for name, data in payload.items():
            if not isinstance(data, dict):
                continue
            read_timeout = data.get("read_timeout_s")
            if read_timeout is not None:
                try:
                    read_timeout = float(read_timeout)
                except (TypeError, ValueError):
                    read_timeout = None
            rtscts = data.get("rtscts")
            profile = ProtocolProfile(
                name=name,
                description=data.get("description"),
                transport=data.get("transport"),
                baud=data.get("baud"),
                data_bits=data.get("data_bits"),
                stop_bits=data.get("stop_bits"),
                parity=data.get("parity"),
                rtscts=bool(rtscts) if rtscts is not None else None,
                read_timeout_s=read_timeout,
                chunk_size=data.get("chunk_size"),
                start_delimiter=data.get("start_delimiter"),
                end_delimiter=data.get("end_delimiter"),
            )
            profiles[name.lower()] = profile
        return cls(profiles)


DEFAULT_PROFILES: Dict[str, Dict[str, Any]] = {
    "gluquant_hplc": {
        "description": "GLUQUANT HbA1c HPLC LIS upload as configured in the field (9600 8-N-1).",
        "transport": "serial",
        "baud": 9600,
        "data_bits": 8,
        "stop_bits": 1.0,
        "parity": "N",
        "rtscts": False,
        "read_timeout_s": 0.5,
        "chunk_size": 1024,
    },
    "gluquant_factory": {
        "description": "GLUQUANT factory default line settings from the service manual (115200 8-N-1).",
        "transport": "serial",
        "baud": 115200,
        "data_bits": 8,
        "stop_bits": 1.0,
        "parity": "N",
        "rtscts": False,
        "read_timeout_s": 0.2,
        "chunk_size": 4096,
    },
    "gluquant_sim": {
        "description": "Simulated analyzer replaying canned result blocks.",
        "transport": "sim",
    },
}


def load_registry(path: Optional[Path]) -> ProtocolRegistry:
    """Load protocol profiles from *path* or use built-in defaults."""

    if path is None:
        return ProtocolRegistry.from_dict(DEFAULT_PROFILES)
    resolved = path.expanduser()
    if not resolved.exists():
        raise FileNotFoundError(f"Protocol registry '{resolved}' not found")
    suffix = resolved.suffix.lower()
    if suffix in {".toml", ".tml"}:
        payload = _load_toml(resolved)
    elif suffix in {".json", ".jsn"}:
        payload = _load_json(resolved)
    elif suffix in {".yaml", ".yml"}:
        payload = _load_yaml(resolved)
    else:
        raise ValueError(f"Unsupported protocol registry format: {resolved.suffix}")
    profiles = payload.get("profiles") if isinstance(payload, dict) else None
    if not isinstance(profiles, dict):
        raise ValueError("Protocol registry must contain a 'profiles' mapping")
    return ProtocolRegistry.from_dict(profiles)


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
