from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from gluquant.decoding import (
    DecodedResult,
    MachineInfo,
    SampleInfo,
    decode_message,
    interpret_hba1c,
    parse_result_value,
)
from gluquant.errors import DecodeError

SCENARIO = (
    "<SEND>\n<M>GQ-1000|SN123</M>\n<I>\n0|2024-01-01T10:00|S1|A1|0\n</I>\n"
    "<R>\nHbA1c|5.4\n</R>\n</SEND>"
)


def _message(sample: str = "0|2024-01-01T10:00|S1|A1|0", results: str = "HbA1c|5.4") -> str:
    return (
        "<SEND>\r\n<M>GQ-1000|SN123</M>\r\n"
        f"<I>\r\n{sample}\r\n</I>\r\n"
        f"<R>\r\n{results}\r\n</R>\r\n</SEND>"
    )


def test_end_to_end_scenario() -> None:
    result = decode_message(SCENARIO)

    assert result.machine_info == MachineInfo(model="GQ-1000", serial_number="SN123")
    assert result.sample_info.sample_type == "whole_blood"
    assert result.sample_info.record_type == "0"
    assert result.sample_info.analysis_time == "2024-01-01T10:00"
    assert result.sample_info.sample_id == "S1"
    assert result.sample_info.sample_position == "A1"
    assert result.sample_info.sample_type_code == 0
    hba1c = result.results["HbA1c"]
    assert hba1c.value == pytest.approx(5.4)
    assert hba1c.unit == "%"
    assert hba1c.interpretation == "Normal"
    assert result.raw == SCENARIO


@pytest.mark.parametrize(
    ("code", "label"),
    [
        ("0", "whole_blood"),
        ("1", "quality_control"),
        ("2", "calibration"),
        ("3", "diluted"),
        ("7", "unknown"),
        ("x", "unknown"),
        ("", "unknown"),
    ],
)
def test_sample_type_lookup(code: str, label: str) -> None:
    result = decode_message(_message(sample=f"0|2024-01-01T10:00|S1|A1|{code}"))

    assert result.sample_info.sample_type == label


def test_missing_sample_section_yields_empty_sample_info() -> None:
    message = "<SEND>\n<M>GQ-1000|SN123</M>\n<R>\nHbA1c|6.0\n</R>\n</SEND>"

    result = decode_message(message)

    assert result.sample_info == SampleInfo()
    assert result.sample_info.is_empty
    assert result.sample_info.to_dict() == {}
    assert result.results["HbA1c"].interpretation == "Prediabetes"


def test_message_without_sections_decodes_to_defaults() -> None:
    result = decode_message("<SEND></SEND>")

    assert result.machine_info == MachineInfo()
    assert result.sample_info.is_empty
    assert dict(result.results) == {}


def test_missing_trailing_sample_fields_are_absent() -> None:
    result = decode_message(_message(sample="0|2024-01-01T10:00|S9"))

    assert result.sample_info.sample_id == "S9"
    assert result.sample_info.sample_position is None
    assert result.sample_info.sample_type_code is None
    assert result.sample_info.sample_type == "unknown"


def test_machine_section_with_single_field() -> None:
    result = decode_message("<SEND><M> GQ-1000 </M></SEND>")

    assert result.machine_info.model == "GQ-1000"
    assert result.machine_info.serial_number is None


@pytest.mark.parametrize(
    ("value", "interpretation"),
    [
        ("5.6", "Normal"),
        ("6.0", "Prediabetes"),
        ("7.0", "Diabetes"),
        ("5.7", "Prediabetes"),
        ("6.5", "Diabetes"),
    ],
)
def test_hba1c_interpretation(value: str, interpretation: str) -> None:
    result = decode_message(_message(results=f"HbA1c|{value}"))

    assert result.results["HbA1c"].interpretation == interpretation


def test_non_numeric_value_kept_as_nan() -> None:
    result = decode_message(_message(results="HbA1c|ERR\nHbF|abc"))

    hba1c = result.results["HbA1c"]
    assert math.isnan(hba1c.value)
    assert hba1c.unit == "%"
    assert hba1c.interpretation is None
    assert math.isnan(result.results["HbF"].value)
    assert result.results["HbF"].unit == "%"


def test_interpretation_only_for_hba1c() -> None:
    result = decode_message(_message(results="HbA1c|7.2\nHbF|8.0\nHbA0|80.1"))

    assert result.results["HbF"].interpretation is None
    assert result.results["HbA0"].interpretation is None
    assert list(result.results) == ["HbA1c", "HbF", "HbA0"]


def test_result_lines_without_key_or_value_are_skipped() -> None:
    results = "HbA1c|5.9\n\n   \n|4.0\nHbF|\nlonely\nA1c|6.1|extra"

    result = decode_message(_message(results=results))

    assert list(result.results) == ["HbA1c", "A1c"]
    assert result.results["A1c"].value == pytest.approx(6.1)


def test_line_endings_are_normalised() -> None:
    crlf = decode_message(SCENARIO.replace("\n", "\r\n"))
    cr = decode_message(SCENARIO.replace("\n", "\r"))

    for result in (crlf, cr):
        assert result.sample_info.sample_id == "S1"
        assert result.results["HbA1c"].value == pytest.approx(5.4)


def test_sections_in_any_order() -> None:
    message = "<SEND><R>HbA1c|6.7</R><I>1|t|S2|B4|1</I><M>GQ-1000|SN9</M></SEND>"

    result = decode_message(message)

    assert result.machine_info.serial_number == "SN9"
    assert result.sample_info.sample_type == "quality_control"
    assert result.results["HbA1c"].interpretation == "Diabetes"


def test_results_mapping_is_read_only() -> None:
    result = decode_message(SCENARIO)

    with pytest.raises(TypeError):
        result.results["HbA1c"] = None  # type: ignore[index]


def test_custom_unit_and_timestamp() -> None:
    stamp = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)

    result = decode_message(SCENARIO, unit="mmol/mol", received_at=stamp)

    assert result.results["HbA1c"].unit == "mmol/mol"
    assert result.received_at == stamp


def test_to_dict_is_json_friendly() -> None:
    stamp = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    result = decode_message(_message(results="HbA1c|5.4\nHbF|bad"), received_at=stamp)

    payload = result.to_dict(include_raw=False)

    assert payload["machine_info"] == {"model": "GQ-1000", "serial_number": "SN123"}
    assert payload["sample_info"]["sample_type"] == "whole_blood"
    assert payload["results"]["HbA1c"] == {"value": 5.4, "unit": "%", "interpretation": "Normal"}
    assert payload["results"]["HbF"] == {"value": None, "unit": "%"}
    assert payload["received_at"] == "2024-01-01T10:00:00.000+00:00"
    assert "raw" not in payload


def test_non_text_input_raises_decode_error() -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode_message(None)  # type: ignore[arg-type]

    assert excinfo.value.original is not None


@pytest.mark.parametrize(
    ("text", "expected"),
    [("5.4", 5.4), (" 6 ", 6.0), ("6.1%", 6.1), ("-1e2", -100.0), (".5", 0.5)],
)
def test_parse_result_value_reads_leading_number(text: str, expected: float) -> None:
    assert parse_result_value(text) == pytest.approx(expected)


@pytest.mark.parametrize(
    ("text", "expected"),
    [("Infinity", math.inf), ("-Infinity", -math.inf), ("+Infinity mg", math.inf), ("Infinitye5", math.inf)],
)
def test_parse_result_value_reads_infinity(text: str, expected: float) -> None:
    assert parse_result_value(text) == expected


def test_parse_result_value_infinity_is_case_sensitive() -> None:
    assert math.isnan(parse_result_value("infinity"))


def test_infinite_hba1c_is_interpreted() -> None:
    hba1c = decode_message(_message(results="HbA1c|Infinity")).results["HbA1c"]

    assert hba1c.value == math.inf
    assert hba1c.interpretation == "Diabetes"


def test_interpret_hba1c_nan_is_uninterpreted() -> None:
    assert interpret_hba1c(float("nan")) is None


def test_decoded_result_is_frozen() -> None:
    result = decode_message(SCENARIO)

    assert isinstance(result, DecodedResult)
    with pytest.raises(AttributeError):
        result.raw = "changed"  # type: ignore[misc]
