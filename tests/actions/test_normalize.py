from __future__ import annotations

from pydantic import Field
import pytest

from sheetact.actions.models import ActionDescriptor, ActionPayload, RawPayload
from sheetact.actions.normalize import (
    coerce_descriptor,
    decode_payload,
    parse_data,
    parse_descriptor_json,
)
from sheetact.errors import ActionValidationError


class _ChartPayload(ActionPayload):
    chart_type: str | None = None
    title: str | None = None
    series_names: list[str] = Field(default_factory=list)


def test_coerce_descriptor_accepts_mapping_and_model() -> None:
    descriptor = coerce_descriptor({"type": "values", "target": " A1 ", "extra": 1})
    assert descriptor.kind == "values"
    assert descriptor.target == "A1"
    assert coerce_descriptor(descriptor) is descriptor


def test_coerce_descriptor_blank_target_becomes_none() -> None:
    assert coerce_descriptor({"type": "sheet", "target": "  "}).target is None


def test_coerce_descriptor_rejects_empty_kind() -> None:
    with pytest.raises(ActionValidationError, match="Invalid action descriptor"):
        coerce_descriptor({"type": "  "})


def test_parse_descriptor_json_rejects_non_objects() -> None:
    with pytest.raises(ActionValidationError, match="JSON value must be an object"):
        parse_descriptor_json('["values"]')
    with pytest.raises(ActionValidationError, match="empty string"):
        parse_descriptor_json("   ")


def test_parse_data_keeps_plain_text() -> None:
    assert parse_data('{"a": 1}') == {"a": 1}
    assert parse_data("[1, 2]") == [1, 2]
    assert parse_data("Total") == "Total"
    assert parse_data("  ") is None
    assert parse_data(5) == 5


def test_decode_payload_reads_camel_case_keys() -> None:
    descriptor = ActionDescriptor.model_validate(
        {"type": "chart", "target": "A1:B5", "data": '{"seriesNames": ["x", "y"]}'}
    )
    payload = decode_payload(_ChartPayload, descriptor)
    assert payload.series_names == ["x", "y"]
    assert payload.raw == {"seriesNames": ["x", "y"]}


def test_decode_payload_merges_descriptor_chart_fields() -> None:
    descriptor = ActionDescriptor.model_validate(
        {
            "type": "chart",
            "target": "A1:B5",
            "chartType": "pie",
            "title": "Top",
            "data": {"title": "Inner"},
        }
    )
    payload = decode_payload(_ChartPayload, descriptor)
    assert payload.chart_type == "pie"
    assert payload.title == "Inner"


def test_decode_payload_keeps_text_for_non_object_data() -> None:
    descriptor = ActionDescriptor.model_validate(
        {"type": "formula", "target": "A1", "data": "=SUM(A1:A3)"}
    )
    payload = decode_payload(RawPayload, descriptor)
    assert payload.raw == "=SUM(A1:A3)"
    assert payload.data_text == "=SUM(A1:A3)"


def test_decode_payload_drops_invalid_optional_fields() -> None:
    descriptor = ActionDescriptor.model_validate(
        {
            "type": "chart",
            "target": "A1",
            "data": {"seriesNames": "oops", "title": "Sales"},
        }
    )
    payload = decode_payload(_ChartPayload, descriptor)
    assert payload.series_names == []
    assert payload.title == "Sales"
    assert len(payload.skipped) == 1
    assert payload.skipped[0].startswith("Ignored invalid seriesNames:")


def test_decode_payload_rejects_invalid_required_fields() -> None:
    descriptor = ActionDescriptor.model_validate(
        {"type": "chart", "target": "A1", "data": {"seriesNames": "oops"}}
    )
    with pytest.raises(ActionValidationError, match="Invalid data for chart"):
        decode_payload(_ChartPayload, descriptor, required=("series_names",))


def test_decode_payload_valid_data_has_no_skipped_notes() -> None:
    descriptor = ActionDescriptor.model_validate(
        {"type": "chart", "target": "A1", "data": {"title": "Sales"}}
    )
    assert decode_payload(_ChartPayload, descriptor).skipped == []
