"""Top-level package for the GLUQUANT HbA1c analyzer LIS bridge."""
from __future__ import annotations

from .config import AppConfig, load_config
from .decoding import DecodedResult, decode_message
from .framing import FramerState, MessageFramer

__all__ = [
    "AppConfig",
    "DecodedResult",
    "FramerState",
    "MessageFramer",
    "decode_message",
    "load_config",
]
