from __future__ import annotations

import re

_HEX_RGB_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
_HEX_COLOR_PATTERN = re.compile(r"^#?(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")


def is_hex_rgb(value: object) -> bool:
    """Return True when value is strict ``#RRGGBB`` text."""
    return isinstance(value, str) and bool(_HEX_RGB_PATTERN.match(value.strip()))


def normalize_hex_input(value: str, *, field_name: str) -> str:
    """Normalize HEX input into #RRGGBB or #AARRGGBB form.

    Args:
        value: Raw user input value.
        field_name: Field name used in validation messages.

    Returns:
        Normalized uppercase HEX string with '#'.

    Raises:
        ValueError: If the value is not valid HEX color text.
    """
    text = value.strip().upper()
    if not _HEX_COLOR_PATTERN.match(text):
        raise ValueError(
            f"Invalid {field_name} format. Use 'RRGGBB', 'AARRGGBB', "
            "'#RRGGBB', or '#AARRGGBB'."
        )
    return text if text.startswith("#") else f"#{text}"


def to_argb(value: str) -> str:
    """Normalize HEX input into AARRGGBB form for workbook internals."""
    normalized = normalize_hex_input(value, field_name="color")
    raw = normalized[1:]
    return raw if len(raw) == 8 else f"FF{raw}"


def from_argb(value: object) -> str | None:
    """Convert an openpyxl ARGB string back into ``#RRGGBB``."""
    if not isinstance(value, str) or len(value) not in (6, 8):
        return None
    return f"#{value[-6:].upper()}"


__all__ = ["from_argb", "is_hex_rgb", "normalize_hex_input", "to_argb"]
