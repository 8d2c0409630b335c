"""Delimited-text parsing for Google Sheets CSV exports.

Rows are split on newlines and cells on commas. A double quote toggles the
"inside quotes" state and is dropped from the cell; commas inside quotes are
literal. Doubled ("escaped") quotes are not special: each one just toggles the
state again, which is good enough for the sheets we read.
"""


def parse_delimited_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one line into trimmed cells.

    Args:
        line: A single line of delimited text (no newline).
        delimiter: Cell separator.

    Returns:
        Ordered list of cells. A line always yields at least one cell.
    """
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    cells.append("".join(current).strip())
    return cells


def parse_delimited_text(text: str, delimiter: str = ",") -> list[list[str]]:
    """Parse a raw CSV blob into rows of cells.

    Example:
        >>> parse_delimited_text('A,"B, C",D')
        [['A', 'B, C', 'D']]

    Args:
        text: Raw export text (rows separated by "\\n").
        delimiter: Cell separator.

    Returns:
        Ordered rows. Empty input yields no rows; a blank line yields a single
        empty cell, which row classification skips.
    """
    if not text:
        return []
    return [parse_delimited_line(line, delimiter) for line in text.split("\n")]
