"""Console rendering of analyzer events for the operator scripts."""
from __future__ import annotations

import json
from typing import Callable, List

from ..acquisition.service import (
    EVENT_CONNECTED,
    EVENT_DISCONNECTED,
    EVENT_ERROR,
    EVENT_RESULTS,
    AnalyzerEvent,
)
from ..config import AppConfig
from ..decoding import DecodedResult

RULE = "=" * 70


def banner(title: str) -> List[str]:
    return [RULE, f"  {title}", RULE]


def describe_config(config: AppConfig) -> List[str]:
    device = config.device
    return [
        "Configuration:",
        f"   Port: {device.port}",
        f"   Profile: {device.profile}",
        f"   Baud Rate: {device.baud}",
        f"   Data Bits: {device.data_bits}",
        f"   Stop Bits: {device.describe().rsplit('-', 1)[-1]}",
        f"   Parity: {device.parity}",
        f"   RTS/CTS: {'ON' if device.rtscts else 'OFF'}",
        f"   Debug Mode: {'ON' if config.acquisition.debug_mode else 'OFF'}",
    ]


def format_value(value: float) -> str:
    if value != value:
        return "NaN"
    return f"{value:g}"


def render_result(result: DecodedResult, *, include_json: bool = True, include_raw: bool = True) -> List[str]:
    """Return the operator-facing report for one decoded result."""

    machine = result.machine_info
    sample = result.sample_info
    lines = [
        "",
        RULE,
        "RESULT RECEIVED",
        RULE,
        "",
        "Machine Information:",
        f"   Model: {machine.model}",
        f"   Serial: {machine.serial_number}",
        "",
        "Sample Information:",
        f"   Sample ID: {sample.sample_id}",
        f"   Analysis Time: {sample.analysis_time}",
        f"   Sample Type: {sample.sample_type}",
        f"   Position: {sample.sample_position}",
        "",
        "Results:",
    ]
    if not result.results:
        lines.append("   (none)")
    for name, analyte in result.results.items():
        interpretation = f" ({analyte.interpretation})" if analyte.interpretation else ""
        lines.append(f"   {name}: {format_value(analyte.value)}{analyte.unit}{interpretation}")
    if include_json:
        lines.extend(["", "Full JSON:", json.dumps(result.to_dict(include_raw=include_raw), indent=2)])
    lines.extend(["", "Waiting for next sample...", RULE])
    return lines


def make_event_printer(
    *,
    include_json: bool = True,
    include_raw: bool = True,
    write: Callable[[str], None] = print,
) -> Callable[[AnalyzerEvent], None]:
    """Build an ``on_event`` callback that prints each event for the operator."""

    def _print(event: AnalyzerEvent) -> None:
        payload = event.payload or {}
        if event.kind == EVENT_CONNECTED:
            write(f"Connected to analyzer on {payload.get('port')}")
            write("Waiting for LIS upload from analyzer...")
            write("Accept result on analyzer and press UPLOAD / LIS")
            write(RULE)
        elif event.kind == EVENT_RESULTS:
            for line in render_result(payload['result'], include_json=include_json, include_raw=include_raw):
                write(line)
        elif event.kind == EVENT_ERROR:
            write("")
            write(f"ERROR ({payload.get('source', 'unknown')}): {payload.get('error')}")
            write(RULE)
        elif event.kind == EVENT_DISCONNECTED:
            write("")
            write("Disconnected from analyzer")
            write(RULE)

    return _print
