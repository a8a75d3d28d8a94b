"""Byte stream framing."""
from __future__ import annotations

from .framer import FramerState, MessageFramer

__all__ = ["FramerState", "MessageFramer"]
