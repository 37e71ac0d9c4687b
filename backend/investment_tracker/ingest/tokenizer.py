"""Quote-aware CSV tokenizer with comma/semicolon auto-detection."""
from __future__ import annotations

import re
from typing import List, Sequence

_LINE_BREAK = re.compile(r"\r?\n")


def detect_delimiter(text: str) -> str:
    """Return ``;`` when the first line has strictly more semicolons than commas."""

    first_line = _LINE_BREAK.split(text, maxsplit=1)[0]
    if first_line.count(";") > first_line.count(","):
        return ";"
    return ","


def is_blank_row(row: Sequence[str]) -> bool:
    return all(not cell.strip() for cell in row)


def tokenize(text: str) -> List[List[str]]:
    """Split ``text`` into rows of string cells.

    Double quotes toggle quoting and ``""`` inside a quoted field yields one
    literal quote. Delimiters and line breaks only count outside quotes. Rows
    whose cells are all blank are dropped.
    """

    delimiter = detect_delimiter(text)
    rows: List[List[str]] = []
    row: List[str] = []
    cell: List[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    def end_row() -> None:
        row.append("".join(cell))
        cell.clear()
        if not is_blank_row(row):
            rows.append(list(row))
        row.clear()

    while i < length:
        char = text[i]
        if char == '"':
            if in_quotes and i + 1 < length and text[i + 1] == '"':
                cell.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            row.append("".join(cell))
            cell.clear()
        elif char in "\r\n" and not in_quotes:
            if char == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
            end_row()
        else:
            cell.append(char)
        i += 1

    end_row()
    return rows


__all__ = ["detect_delimiter", "is_blank_row", "tokenize"]
