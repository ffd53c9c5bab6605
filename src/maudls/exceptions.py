"""Error taxonomy for the Maud language server."""

from __future__ import annotations

import re
from pathlib import Path

from pygls.exceptions import JsonRpcException

_TOML_LOCATION_RE = re.compile(r"at line (?P<line>\d+), column (?P<col>\d+)")


class MaudlsError(RuntimeError):
    pass


class DocumentLoadError(MaudlsError):
    """A Maud document could not be read or parsed.

    Fatal when raised during the first load of a workspace; recoverable on a
    reload, where the previous valid document stays in place.
    """

    def __init__(self, path: Path, reason: str, *, line: int | None = None):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
        self.line = line

    @classmethod
    def from_exception(cls, path: Path, exc: BaseException) -> "DocumentLoadError":
        reason = str(exc).strip() or type(exc).__name__
        line = None
        match = _TOML_LOCATION_RE.search(reason)
        if match is not None:
            line = int(match.group("line"))
        return cls(path, reason, line=line)


class SymbolNotFound(JsonRpcException):
    """No declared identifier under the cursor, or no entity for it."""

    CODE = -32803
    MESSAGE = "Symbol not found"
