"""Exception types raised across component boundaries."""
from __future__ import annotations

from typing import Optional


class GluquantError(RuntimeError):
    """Base class for errors surfaced by the LIS bridge."""


class DecodeError(GluquantError):
    """Raised when a complete message cannot be turned into a result record."""

    def __init__(self, message: str, raw: str, original: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.raw = raw
        self.original = original


class TransportError(GluquantError):
    """Raised when the analyzer connection cannot be opened or read."""

    def __init__(self, message: str, port: Optional[str] = None) -> None:
        super().__init__(message)
        self.port = port
