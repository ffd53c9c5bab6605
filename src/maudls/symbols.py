"""Extraction of the identifier under an editor cursor."""

from __future__ import annotations

WORD_SEPARATOR = "_"
_QUOTE = '"'


def _is_quote(line: str, index: int) -> bool:
    return line[index] == _QUOTE and (index == 0 or line[index - 1] != "\\")


def _quote_before(line: str, column: int) -> int | None:
    for index in range(column - 1, -1, -1):
        if _is_quote(line, index):
            return index
    return None


def _quote_after(line: str, column: int) -> int | None:
    for index in range(column, len(line)):
        if _is_quote(line, index):
            return index
    return None


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == WORD_SEPARATOR


def _sub_word_at(line: str, column: int) -> str | None:
    start = column
    while start > 0 and _is_word_char(line[start - 1]):
        start -= 1
    end = column
    while end < len(line) and _is_word_char(line[end]):
        end += 1
    consumed = start
    for word in line[start:end].split(WORD_SEPARATOR):
        consumed += len(word)
        if word and consumed > column:
            return word
        consumed += len(WORD_SEPARATOR)
    return None


def extract_symbol(line: str, column: int) -> str | None:
    """Return the identifier touching ``column`` in ``line``.

    A quoted string around the cursor wins as a whole. Otherwise the bare word
    around the cursor is split on ``_`` and the piece under the cursor is
    returned, so ``g6p`` resolves from ``g6p_c`` in a stoichiometry table.
    """
    column = max(0, min(column, len(line)))
    left = _quote_before(line, column)
    right = _quote_after(line, column)
    if left is not None and right is not None:
        return line[left + 1 : right] or None
    return _sub_word_at(line, column)
