from __future__ import annotations

from sheetact.actions import handlers
from sheetact.actions.capabilities import HostCapabilities, detect_capabilities
from sheetact.actions.diagnostics import DiagnosticSink
from sheetact.actions.specs import (
    BAND_KINDS,
    KNOWN_KINDS,
    SYMBOLIC_TARGET_KINDS,
    get_action_spec,
    target_mode_for,
)
from sheetact.host import RequestContext


def test_every_known_kind_has_a_handler() -> None:
    missing = sorted(kind for kind in KNOWN_KINDS if kind not in handlers.DEFAULT_REGISTRY)
    assert missing == []


def test_target_modes() -> None:
    assert target_mode_for("values") == "range"
    assert target_mode_for("insertRows") == "band"
    assert target_mode_for("styleTable") == "symbolic"
    assert target_mode_for("sheet") == "none"
    assert target_mode_for("somethingNew") == "range"
    assert "deleteColumns" in BAND_KINDS


def test_symbolic_kinds_name_their_namespace() -> None:
    spec = get_action_spec("configureSlicer")
    assert spec is not None
    assert spec.namespace == "slicer"
    create = get_action_spec("createSlicer")
    assert create is not None
    assert create.namespace is None
    assert "renameSheet" in SYMBOLIC_TARGET_KINDS
    assert get_action_spec("unknown") is None


def test_detect_capabilities_from_host() -> None:
    full = detect_capabilities(RequestContext.new())
    assert full == HostCapabilities()
    partial = detect_capabilities(RequestContext.new(capabilities=["charts"]))
    assert partial.charts is True
    assert partial.native_autofill is False
    assert HostCapabilities.none().slicers is False


def test_diagnostic_sink_keeps_recent_entries() -> None:
    received: list[str] = []
    sink = DiagnosticSink(received.append, max_entries=2)
    sink.info("one")
    sink.warning("two")
    sink.error("three")
    assert received == ["one", "two", "three"]
    assert sink.messages() == ["two", "three"]
    assert [entry.level for entry in sink.snapshot()] == ["warning", "error"]
    sink.clear()
    assert sink.messages() == []


def test_diagnostic_sink_survives_failing_callback() -> None:
    def _broken(message: str) -> None:
        raise RuntimeError("sink down")

    sink = DiagnosticSink(_broken)
    sink.info("still recorded")
    assert sink.messages() == ["still recorded"]
    sink.set_callback(None)
    assert sink.callback is None
