"""Message decoding for GLUQUANT result blocks."""
from __future__ import annotations

from .decoder import (
    AnalyteResult,
    DecodedResult,
    MachineInfo,
    SampleInfo,
    decode_message,
    interpret_hba1c,
    parse_result_value,
    sample_type_label,
)

__all__ = [
    "AnalyteResult",
    "DecodedResult",
    "MachineInfo",
    "SampleInfo",
    "decode_message",
    "interpret_hba1c",
    "parse_result_value",
    "sample_type_label",
]
