from __future__ import annotations

import pytest

from sheetact.shared.colors import from_argb, is_hex_rgb, normalize_hex_input, to_argb


def test_normalize_hex_input_adds_hash_and_uppercases() -> None:
    assert normalize_hex_input("ff0000", field_name="fill") == "#FF0000"
    assert normalize_hex_input("#80ff0000", field_name="fill") == "#80FF0000"


def test_normalize_hex_input_rejects_names() -> None:
    with pytest.raises(ValueError, match="Invalid fill format"):
        normalize_hex_input("red", field_name="fill")


def test_to_argb_and_back() -> None:
    assert to_argb("#00FF00") == "FF00FF00"
    assert to_argb("8000FF00") == "8000FF00"
    assert from_argb("FF00FF00") == "#00FF00"
    assert from_argb(None) is None


def test_is_hex_rgb_is_strict() -> None:
    assert is_hex_rgb("#A1B2C3")
    assert not is_hex_rgb("A1B2C3")
    assert not is_hex_rgb(123)
