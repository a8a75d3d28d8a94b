"""Shared constants used across the GLUQUANT LIS bridge."""
from __future__ import annotations

MESSAGE_START = "<SEND>"
MESSAGE_END = "</SEND>"

MACHINE_TAGS = ("<M>", "</M>")
SAMPLE_TAGS = ("<I>", "</I>")
RESULTS_TAGS = ("<R>", "</R>")

FIELD_SEPARATOR = "|"

MAX_BUFFER_CHARS = 100_000

DEFAULT_RESULT_UNIT = "%"

SAMPLE_TYPE_LABELS = {
    0: "whole_blood",
    1: "quality_control",
    2: "calibration",
    3: "diluted",
}
UNKNOWN_SAMPLE_TYPE = "unknown"

HBA1C_ANALYTE = "HbA1c"
HBA1C_PREDIABETES_FROM = 5.7
HBA1C_DIABETES_FROM = 6.5

DEFAULT_SERIAL_PORT = "/dev/ttyUSB1"
