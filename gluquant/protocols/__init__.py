"""Protocol registry exports."""
from __future__ import annotations

from .registry import DEFAULT_PROFILES, DEFAULT_PROFILE_NAME, ProtocolProfile, ProtocolRegistry, load_registry

__all__ = [
    "DEFAULT_PROFILES",
    "DEFAULT_PROFILE_NAME",
    "ProtocolProfile",
    "ProtocolRegistry",
    "load_registry",
]
