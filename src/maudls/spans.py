"""Source spans of declared keys in TOML documents.

``tomllib`` returns plain values, so the offsets of declarations are
recovered from the raw text: every ``[[name]]`` header opens a new entry,
and each ``key = value`` line below it records the span of its value token.
The n-th entry of ``name`` lines up with the n-th record tomllib returns for
the same array of tables.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence, TypeAlias, TypeVar

from pydantic import BaseModel

ROOT_TABLE = ""

_NAME = r"[A-Za-z_][A-Za-z0-9_.-]*"
_ARRAY_HEADER_RE = re.compile(rf"^\s*\[\[\s*(?P<name>{_NAME})\s*\]\]\s*(#.*)?$")
_TABLE_HEADER_RE = re.compile(rf"^\s*\[\s*(?P<name>{_NAME})\s*\]\s*(#.*)?$")
_KEY_VALUE_RE = re.compile(r"^\s*(?P<key>[A-Za-z0-9_-]+)\s*=\s*")

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class Span:
    """Half-open offset range ``[start, end)`` into a document's text."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


TableSpans: TypeAlias = dict[str, Span]


@dataclass
class SpanIndex:
    text: str
    tables: dict[str, list[TableSpans]] = field(default_factory=dict)

    def entry(self, table: str, index: int) -> TableSpans:
        entries = self.tables.get(table, [])
        if 0 <= index < len(entries):
            return entries[index]
        return {}

    def span_of(
        self, table: str, index: int, key: str, value: str | None = None
    ) -> Span | None:
        """Span of ``key`` in the ``index``-th ``table`` entry.

        When ``value`` is given the token found by position must spell it;
        otherwise the first ``key = "value"`` occurrence in the text is used.
        """
        span = self.entry(table, index).get(key)
        if value is None:
            return span
        if span is not None and _unquote(self.text[span.start : span.end]) == value:
            return span
        return find_value_span(self.text, key, value)


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"'":
        return token[1:-1]
    return token


def _string_end(line: str, start: int) -> int:
    quote = line[start]
    if line.startswith(quote * 3, start):
        return len(line)
    position = start + 1
    while position < len(line):
        char = line[position]
        if char == "\\" and quote == '"':
            position += 2
            continue
        if char == quote:
            return position + 1
        position += 1
    return len(line)


def _value_token(line: str, start: int) -> tuple[int, int]:
    if start >= len(line):
        return start, start
    if line[start] in "\"'":
        return start, _string_end(line, start)
    end = line.find("#", start)
    if end < 0:
        end = len(line)
    return start, start + len(line[start:end].rstrip())


def scan_spans(text: str) -> SpanIndex:
    index = SpanIndex(text=text)
    current: TableSpans = {}
    index.tables[ROOT_TABLE] = [current]
    offset = 0
    for raw_line in text.splitlines(keepends=True):
        line = raw_line.rstrip("\r\n")
        array_header = _ARRAY_HEADER_RE.match(line)
        table_header = None if array_header else _TABLE_HEADER_RE.match(line)
        if array_header is not None:
            current = {}
            name = array_header.group("name")
            # dotted headers are sub-tables; their keys are not declarations
            if "." not in name:
                index.tables.setdefault(name, []).append(current)
        elif table_header is not None:
            current = {}
            name = table_header.group("name")
            if "." not in name:
                index.tables[name] = [current]
        else:
            key_value = _KEY_VALUE_RE.match(line)
            if key_value is not None and key_value.group("key") not in current:
                start, end = _value_token(line, key_value.end())
                current[key_value.group("key")] = Span(offset + start, offset + end)
        offset += len(raw_line)
    return index


def find_value_span(text: str, key: str, value: str) -> Span | None:
    pattern = re.compile(
        rf"(?<![A-Za-z0-9_-]){re.escape(key)}\s*=\s*(?P<token>([\"']){re.escape(value)}\2)"
    )
    match = pattern.search(text)
    if match is None:
        return None
    return Span(match.start("token"), match.end("token"))


def _declared_span(
    spans: SpanIndex, table: str, index: int, keys: Iterable[str], value: str
) -> Span | None:
    for key in keys:
        span = spans.span_of(table, index, key, value)
        if span is not None:
            return span
    return None


def attach_spans(
    records: Sequence[RecordT],
    spans: SpanIndex,
    table: str,
    keys: Sequence[str],
    attribute: str,
) -> tuple[RecordT, ...]:
    """Copy each parsed record with the span of its declared identifier."""
    return tuple(
        record.model_copy(
            update={
                "span": _declared_span(
                    spans, table, index, keys, str(getattr(record, attribute))
                )
            }
        )
        for index, record in enumerate(records)
    )
