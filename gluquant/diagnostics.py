"""Human-readable views of raw serial traffic."""
from __future__ import annotations

import re
from typing import List

_LOG_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_ALL_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_CONTROL_NAMES = {0x0D: "[CR]", 0x0A: "[LF]", 0x09: "[TAB]"}


def hex_dump(data: bytes, width: int = 16) -> List[str]:
    """Return offset-prefixed hex lines, *width* bytes per line."""

    lines: List[str] = []
    for offset in range(0, len(data), width):
        chunk = data[offset:offset + width]
        lines.append(f"{offset:04x}:  {chunk.hex(' ')}")
    return lines


def printable_ascii(text: str) -> str:
    """Escape control characters other than TAB, LF and CR as ``[0xNN]``."""

    return _LOG_CONTROL_RE.sub(lambda match: f"[0x{ord(match.group(0)):x}]", text)


def visible_controls(text: str) -> str:
    """Render every control character visibly, naming CR, LF and TAB."""

    def _replace(match: re.Match[str]) -> str:
        code = ord(match.group(0))
        return _CONTROL_NAMES.get(code, f"[0x{code:02X}]")

    return _ALL_CONTROL_RE.sub(_replace, text)


def decimal_bytes(data: bytes) -> str:
    return ", ".join(str(byte) for byte in data)
