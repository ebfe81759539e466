"""Decoder for the comma-delimited text tables inside a GTFS feed.

Decoding is deliberately lossy: a data line whose field count differs from the
header is skipped rather than failing the whole table, so one truncated or
malformed line never blocks the rest of a feed. Pass `on_drop` to observe
skipped lines.
"""

from collections.abc import Callable

DropHook = Callable[[int, str], None]

BOM = "\ufeff"


def split_fields(line: str) -> list[str]:
    """Split one line on commas, honoring double-quoted literals.

    A double quote toggles literal mode, inside which commas are kept as text.
    Quote characters are removed and each field is trimmed.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def decode_table(text: str, on_drop: DropHook | None = None) -> list[dict[str, str]]:
    """Decode delimited text into rows keyed by the header's column names.

    Args:
        text: Raw table text. The first non-blank line is the header.
        on_drop: Optional callback invoked with (line_number, line) for every
                 data line skipped because of a field-count mismatch.

    Returns:
        List of row dicts in file order. Empty list for empty or blank input.
    """
    lines = [
        (number, line)
        for number, line in enumerate(text.split("\n"), start=1)
        if line.strip()
    ]
    if not lines:
        return []

    header_line = lines[0][1]
    if header_line.startswith(BOM):
        header_line = header_line[len(BOM):]
    header = split_fields(header_line)

    rows: list[dict[str, str]] = []
    for number, line in lines[1:]:
        values = split_fields(line)
        if len(values) != len(header):
            if on_drop is not None:
                on_drop(number, line)
            continue
        rows.append(dict(zip(header, values)))
    return rows
