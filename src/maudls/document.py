from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generic, TypeVar

from pydantic import ValidationError

from maudls.exceptions import DocumentLoadError
from maudls.spans import Span

ModelT = TypeVar("ModelT")


@dataclass(frozen=True)
class Document(Generic[ModelT]):
    """Raw text of one Maud document together with its parsed model.

    Parsed entities keep owned strings plus :class:`Span` offsets into
    ``text``; both share the lifetime of this object.
    """

    path: Path
    text: str
    model: ModelT

    @property
    def uri(self) -> str:
        return self.path.resolve().as_uri()

    def offset_to_line(self, offset: int) -> int:
        """1-based number of the line containing ``offset``."""
        return self.text.count("\n", 0, offset) + 1

    def editor_line(self, span: Span) -> int:
        return self.offset_to_line(span.start) - 1

    def slice(self, span: Span) -> str:
        return self.text[span.start : span.end]


def load(path: Path, parser: Callable[[str], ModelT]) -> Document[ModelT]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentLoadError.from_exception(path, exc) from exc
    try:
        model = parser(text)
    except (tomllib.TOMLDecodeError, ValidationError) as exc:
        raise DocumentLoadError.from_exception(path, exc) from exc
    return Document(path=path, text=text, model=model)


def try_load(
    path: Path, parser: Callable[[str], ModelT]
) -> Document[ModelT] | DocumentLoadError:
    try:
        return load(path, parser)
    except DocumentLoadError as exc:
        return exc
