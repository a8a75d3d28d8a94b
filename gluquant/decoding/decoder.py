"""Decoder for the GLUQUANT tagged-section result message.

A complete message looks like::

    <SEND>
    <M>GQ-1000|SN123</M>
    <I>
    0|2024-01-01T10:00|S1|A1|0
    </I>
    <R>
    HbA1c|5.4
    </R>
    </SEND>

Sections may appear in any order or be missing entirely; a missing or
malformed section degrades the record instead of failing the decode.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..constants import (
    DEFAULT_RESULT_UNIT,
    FIELD_SEPARATOR,
    HBA1C_ANALYTE,
    HBA1C_DIABETES_FROM,
    HBA1C_PREDIABETES_FROM,
    SAMPLE_TYPE_LABELS,
    UNKNOWN_SAMPLE_TYPE,
)
from ..errors import DecodeError

INTERPRETATION_NORMAL = "Normal"
INTERPRETATION_PREDIABETES = "Prediabetes"
INTERPRETATION_DIABETES = "Diabetes"

_MACHINE_RE = re.compile(r"<M>(.*?)</M>")
_SAMPLE_RE = re.compile(r"<I>\s*(.*?)\s*</I>", re.DOTALL)
_RESULTS_RE = re.compile(r"<R>\s*(.*?)\s*</R>", re.DOTALL)
_NUMBER_PREFIX_RE = re.compile(r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass(frozen=True, slots=True)
class MachineInfo:
    model: Optional[str] = None
    serial_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({'model': self.model, 'serial_number': self.serial_number})


@dataclass(frozen=True, slots=True)
class SampleInfo:
    """Sample record; every field is ``None`` when the message had no ``<I>`` section."""

    record_type: Optional[str] = None
    analysis_time: Optional[str] = None
    sample_id: Optional[str] = None
    sample_position: Optional[str] = None
    sample_type_code: Optional[int] = None
    sample_type: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self == SampleInfo()

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                'record_type': self.record_type,
                'analysis_time': self.analysis_time,
                'sample_id': self.sample_id,
                'sample_position': self.sample_position,
                'sample_type_code': self.sample_type_code,
                'sample_type': self.sample_type,
            }
        )


@dataclass(frozen=True, slots=True)
class AnalyteResult:
    value: float
    unit: str = DEFAULT_RESULT_UNIT
    interpretation: Optional[str] = None

    @property
    def is_numeric(self) -> bool:
        return not math.isnan(self.value)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'value': self.value if self.is_numeric else None,
            'unit': self.unit,
        }
        if self.interpretation is not None:
            payload['interpretation'] = self.interpretation
        return payload


@dataclass(frozen=True, slots=True)
class DecodedResult:
    """Structured record produced from one complete analyzer message."""

    machine_info: MachineInfo
    sample_info: SampleInfo
    results: Mapping[str, AnalyteResult]
    raw: str
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self, *, include_raw: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'machine_info': self.machine_info.to_dict(),
            'sample_info': self.sample_info.to_dict(),
            'results': {name: result.to_dict() for name, result in self.results.items()},
            'received_at': self.received_at.isoformat(timespec='milliseconds'),
        }
        if include_raw:
            payload['raw'] = self.raw
        return payload


def interpret_hba1c(value: float) -> Optional[str]:
    """Classify an HbA1c percentage; NaN matches none of the ranges."""

    if value < HBA1C_PREDIABETES_FROM:
        return INTERPRETATION_NORMAL
    if HBA1C_PREDIABETES_FROM <= value < HBA1C_DIABETES_FROM:
        return INTERPRETATION_PREDIABETES
    if value >= HBA1C_DIABETES_FROM:
        return INTERPRETATION_DIABETES
    return None


def sample_type_label(code: Optional[int]) -> str:
    if code is None:
        return UNKNOWN_SAMPLE_TYPE
    return SAMPLE_TYPE_LABELS.get(code, UNKNOWN_SAMPLE_TYPE)


def parse_result_value(text: str) -> float:
    """Parse the leading decimal literal of *text*, or return NaN."""

    match = _NUMBER_PREFIX_RE.match(text.strip())
    if match is None:
        return math.nan
    return float(match.group(0))


def decode_message(
    raw: str,
    *,
    unit: str = DEFAULT_RESULT_UNIT,
    received_at: Optional[datetime] = None,
) -> DecodedResult:
    """Decode one complete message into a :class:`DecodedResult`.

    Raises:
        DecodeError: if extraction fails unexpectedly. Missing or malformed
            sections never raise.
    """

    try:
        clean = raw.replace("\r\n", "\n").replace("\r", "\n")
        machine = _parse_machine(clean)
        sample = _parse_sample(clean)
        results = _parse_results(clean, unit)
    except Exception as exc:  # pylint: disable=broad-except
        raise DecodeError(f"Failed to decode message: {exc}", raw=str(raw), original=exc) from exc
    return DecodedResult(
        machine_info=machine,
        sample_info=sample,
        results=MappingProxyType(results),
        raw=raw,
        received_at=received_at or datetime.now(timezone.utc),
    )


def _parse_machine(text: str) -> MachineInfo:
    match = _MACHINE_RE.search(text)
    if match is None:
        return MachineInfo()
    parts = [part.strip() for part in match.group(1).split(FIELD_SEPARATOR)]
    return MachineInfo(
        model=_field(parts, 0),
        serial_number=_field(parts, 1),
    )


def _parse_sample(text: str) -> SampleInfo:
    match = _SAMPLE_RE.search(text)
    if match is None:
        return SampleInfo()
    parts = [part.strip() for part in match.group(1).strip().split(FIELD_SEPARATOR)]
    code = _parse_code(_field(parts, 4))
    return SampleInfo(
        record_type=_field(parts, 0),
        analysis_time=_field(parts, 1),
        sample_id=_field(parts, 2),
        sample_position=_field(parts, 3),
        sample_type_code=code,
        sample_type=sample_type_label(code),
    )


def _parse_results(text: str, unit: str) -> Dict[str, AnalyteResult]:
    match = _RESULTS_RE.search(text)
    results: Dict[str, AnalyteResult] = {}
    if match is None:
        return results
    for line in match.group(1).split("\n"):
        line = line.strip()
        if not line:
            continue
        parts = [part.strip() for part in line.split(FIELD_SEPARATOR)]
        key = _field(parts, 0)
        value_text = _field(parts, 1)
        if not key or not value_text:
            continue
        value = parse_result_value(value_text)
        interpretation = interpret_hba1c(value) if key == HBA1C_ANALYTE else None
        results[key] = AnalyteResult(value=value, unit=unit, interpretation=interpretation)
    return results


def _field(parts: list[str], index: int) -> Optional[str]:
    if index < len(parts):
        return parts[index]
    return None


def _parse_code(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if number.is_integer():
        return int(number)
    return None


def _drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}
