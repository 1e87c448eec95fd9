from __future__ import annotations

import re

_A1_PATTERN = re.compile(r"^\$?[A-Za-z]{1,3}\$?[1-9][0-9]*$")
_A1_RANGE_PATTERN = re.compile(
    r"^\$?[A-Za-z]{1,3}\$?[1-9][0-9]*(?::\$?[A-Za-z]{1,3}\$?[1-9][0-9]*)?$"
)
_COLUMN_LABEL_PATTERN = re.compile(r"^[A-Za-z]{1,3}$")
_ROW_BAND_PATTERN = re.compile(r"^(\d+)(?::(\d+))?$")
_COLUMN_BAND_PATTERN = re.compile(r"^([A-Za-z]+)(?::([A-Za-z]+))?$")
_SHEET_QUALIFIED_PATTERN = re.compile(
    r"^(?:'(?P<quoted>(?:[^']|'')+)'|(?P<plain>[^!']+))!(?P<ref>.+)$"
)
_CELL_LIKE_NAME_PATTERN = re.compile(r"^(?:[A-Za-z]{1,3}\d+|[RrCc]\d*|[Rr]\d*[Cc]\d*)$")


def split_a1(value: str) -> tuple[str, int]:
    """Split A1 notation into normalized (column_label, row_index)."""
    if not _A1_PATTERN.match(value):
        raise ValueError(f"Invalid cell reference: {value}")
    text = value.replace("$", "")
    idx = 0
    for index, char in enumerate(text):
        if char.isdigit():
            idx = index
            break
    column = text[:idx].upper()
    row = int(text[idx:])
    return column, row


def column_label_to_index(label: str) -> int:
    """Convert Excel-style column label (A/AA) to 1-based index."""
    normalized = label.strip().upper()
    if not _COLUMN_LABEL_PATTERN.match(normalized):
        raise ValueError(f"Invalid column label: {label}")
    index = 0
    for char in normalized:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def column_index_to_label(index: int) -> str:
    """Convert 1-based column index to Excel-style column label."""
    if index < 1:
        raise ValueError("Column index must be positive.")
    chunks: list[str] = []
    current = index
    while current > 0:
        current -= 1
        chunks.append(chr(ord("A") + (current % 26)))
        current //= 26
    return "".join(reversed(chunks))


def column_letter_to_offset(label: str) -> int:
    """Convert a column label to a 0-based column offset (A -> 0, AA -> 26)."""
    index = 0
    for char in label.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def column_offset_to_letter(offset: int) -> str:
    """Convert a 0-based column offset to its label (0 -> A, 26 -> AA)."""
    if offset < 0:
        raise ValueError("Column offset must not be negative.")
    letters = ""
    current = offset
    while current >= 0:
        letters = chr(current % 26 + ord("A")) + letters
        current = current // 26 - 1
    return letters


def range_cell_count(range_ref: str) -> int:
    """Return the number of cells represented by an A1 range."""
    _, rows, cols = parse_range_geometry(range_ref)
    return rows * cols


def normalize_range(value: str) -> str:
    """Validate and normalize an A1 range string (single cells become ``A1:A1``)."""
    candidate = value.strip().replace("$", "")
    if not _A1_RANGE_PATTERN.match(candidate):
        raise ValueError(f"Invalid range reference: {value}")
    if ":" not in candidate:
        candidate = f"{candidate}:{candidate}"
    start, end = candidate.split(":", maxsplit=1)
    return f"{start.upper()}:{end.upper()}"


def is_range_address(value: str) -> bool:
    """Return True when text is an A1 cell or rectangular range address."""
    return bool(_A1_RANGE_PATTERN.match(value.strip()))


def range_bounds(range_ref: str) -> tuple[int, int, int, int]:
    """Return 1-based (min_row, min_col, max_row, max_col) of an A1 range."""
    start_ref, end_ref = normalize_range(range_ref).split(":", maxsplit=1)
    start_col, start_row = split_a1(start_ref)
    end_col, end_row = split_a1(end_ref)
    min_col = min(column_label_to_index(start_col), column_label_to_index(end_col))
    max_col = max(column_label_to_index(start_col), column_label_to_index(end_col))
    return min(start_row, end_row), min_col, max(start_row, end_row), max_col


def parse_range_geometry(range_ref: str) -> tuple[str, int, int]:
    """Parse A1 range and return top-left cell + (rows, cols)."""
    min_row, min_col, max_row, max_col = range_bounds(range_ref)
    return (
        f"{column_index_to_label(min_col)}{min_row}",
        max_row - min_row + 1,
        max_col - min_col + 1,
    )


def build_range_address(row: int, col: int, row_count: int, col_count: int) -> str:
    """Build an A1 address from 0-based origin and size."""
    if row_count < 1 or col_count < 1:
        raise ValueError("Range size must be positive.")
    start = f"{column_offset_to_letter(col)}{row + 1}"
    if row_count == 1 and col_count == 1:
        return start
    end = f"{column_offset_to_letter(col + col_count - 1)}{row + row_count}"
    return f"{start}:{end}"


def ranges_overlap(left: str, right: str) -> bool:
    """Return True when two A1 ranges share at least one cell."""
    l_min_row, l_min_col, l_max_row, l_max_col = range_bounds(left)
    r_min_row, r_min_col, r_max_row, r_max_col = range_bounds(right)
    return not (
        l_max_row < r_min_row
        or r_max_row < l_min_row
        or l_max_col < r_min_col
        or r_max_col < l_min_col
    )


def split_sheet_qualifier(address: str) -> tuple[str | None, str]:
    """Split ``Sheet!A1`` / ``'My Sheet'!A1`` into (sheet, reference)."""
    candidate = address.strip()
    match = _SHEET_QUALIFIED_PATTERN.match(candidate)
    if match is None:
        return None, candidate
    sheet = match.group("quoted")
    if sheet is not None:
        sheet = sheet.replace("''", "'")
    else:
        sheet = match.group("plain").strip()
    return sheet, match.group("ref").strip()


def looks_like_cell_reference(name: str) -> bool:
    """Return True for names Excel would read as a cell (A1, R1C1, R, C)."""
    return bool(_CELL_LIKE_NAME_PATTERN.match(name))


def quote_sheet_name(name: str) -> str:
    """Quote a sheet name for use in a formula reference when needed."""
    if re.fullmatch(r"[A-Za-z_][A-Za-z0-9_.]*", name):
        return name
    escaped = name.replace("'", "''")
    return f"'{escaped}'"


def parse_row_band(value: str) -> tuple[int, int] | None:
    """Parse ``5`` or ``5:7`` into 1-based (first_row, last_row)."""
    match = _ROW_BAND_PATTERN.match(value.strip())
    if match is None:
        return None
    first = int(match.group(1))
    last = int(match.group(2) or match.group(1))
    if first < 1 or last < 1:
        return None
    return min(first, last), max(first, last)


def parse_column_band(value: str) -> tuple[int, int] | None:
    """Parse ``C`` or ``C:E`` into 1-based (first_col, last_col)."""
    match = _COLUMN_BAND_PATTERN.match(value.strip())
    if match is None:
        return None
    first = column_letter_to_offset(match.group(1)) + 1
    last = column_letter_to_offset(match.group(2) or match.group(1)) + 1
    return min(first, last), max(first, last)


__all__ = [
    "build_range_address",
    "column_index_to_label",
    "column_label_to_index",
    "column_letter_to_offset",
    "column_offset_to_letter",
    "is_range_address",
    "looks_like_cell_reference",
    "normalize_range",
    "parse_column_band",
    "parse_range_geometry",
    "parse_row_band",
    "quote_sheet_name",
    "range_bounds",
    "range_cell_count",
    "ranges_overlap",
    "split_a1",
    "split_sheet_qualifier",
]
