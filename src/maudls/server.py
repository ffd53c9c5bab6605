from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlparse

from lsprotocol.types import (
    INITIALIZED,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_SAVE,
    TEXT_DOCUMENT_HOVER,
    DefinitionParams,
    Diagnostic,
    DiagnosticSeverity,
    DidSaveTextDocumentParams,
    Hover,
    HoverParams,
    InitializedParams,
    Location,
    LogMessageParams,
    MarkupContent,
    MarkupKind,
    MessageType,
    Position,
    PublishDiagnosticsParams,
    Range,
)
from pygls.lsp.server import LanguageServer

from maudls import __version__
from maudls.diagnostics import SOURCE, DiagnosticCode
from maudls.exceptions import DocumentLoadError, SymbolNotFound
from maudls.state import DocumentKind, WorkspaceState
from maudls.symbols import extract_symbol

logger = logging.getLogger(__name__)


class MaudLanguageServer(LanguageServer):
    """Language server over the documents of one Maud workspace."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.state: WorkspaceState | None = None


server = MaudLanguageServer("maudls", __version__)


def _uri_to_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)


def _require_state(ls: MaudLanguageServer) -> WorkspaceState:
    if ls.state is None:
        raise SymbolNotFound(message="Maud workspace is not loaded")
    return ls.state


def _line_at(ls: MaudLanguageServer, uri: str, line: int) -> str:
    lines = ls.workspace.get_text_document(uri).lines
    if line < 0 or line >= len(lines):
        raise SymbolNotFound(message=f"Line {line} is outside of {uri}")
    return lines[line].rstrip("\r\n")


def _symbol_at(ls: MaudLanguageServer, uri: str, position: Position) -> str:
    line = _line_at(ls, uri, position.line)
    symbol = extract_symbol(line, position.character)
    if symbol is None:
        raise SymbolNotFound(
            message=f"Valid symbol at {line!r},{position.character} not found"
        )
    return symbol


def _parse_error_diagnostic(error: DocumentLoadError) -> Diagnostic:
    line = max((error.line or 1) - 1, 0)
    return Diagnostic(
        range=Range(
            start=Position(line=line, character=0),
            end=Position(line=line, character=0),
        ),
        severity=DiagnosticSeverity.Error,
        code=DiagnosticCode.PARSE_ERROR.value,
        source=SOURCE,
        message=f"Document could not be parsed; using the last valid version. {error.reason}",
    )


def publish_diagnostics(ls: MaudLanguageServer, state: WorkspaceState) -> None:
    report = state.diagnostics()
    by_kind: dict[DocumentKind, list[Diagnostic]] = {
        DocumentKind.KINETIC_MODEL: list(report.model),
        DocumentKind.PRIORS: list(report.priors),
        DocumentKind.EXPERIMENTS: [],
    }
    # a document that still fails to parse keeps its parse error
    if state.settings.report_parse_errors:
        for kind, error in state.last_errors.items():
            by_kind[kind].append(_parse_error_diagnostic(error))
    for kind, diagnostics in by_kind.items():
        uri = state.uri(kind)
        logger.debug("publishing %d diagnostics for %s", len(diagnostics), uri)
        ls.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )


def _report_load_error(
    ls: MaudLanguageServer,
    state: WorkspaceState,
    kind: DocumentKind,
    error: DocumentLoadError,
) -> None:
    ls.window_log_message(
        LogMessageParams(
            type=MessageType.Warning,
            message=f"maudls: keeping previous {kind.value} document: {error}",
        )
    )
    if state.settings.report_parse_errors:
        publish_diagnostics(ls, state)


@server.feature(TEXT_DOCUMENT_DEFINITION)
def definition(ls: MaudLanguageServer, params: DefinitionParams) -> Location:
    state = _require_state(ls)
    symbol = _symbol_at(ls, params.text_document.uri, params.position)
    line = state.find_symbol_line(symbol)
    if line is None:
        raise SymbolNotFound(message=f"Symbol {symbol} not found in kinetic model")
    return Location(
        uri=state.uri(DocumentKind.KINETIC_MODEL),
        range=Range(
            start=Position(line=line, character=0),
            end=Position(line=line, character=0),
        ),
    )


@server.feature(TEXT_DOCUMENT_HOVER)
def hover(ls: MaudLanguageServer, params: HoverParams) -> Hover:
    state = _require_state(ls)
    symbol = _symbol_at(ls, params.text_document.uri, params.position)
    rendered = state.find_rendered_symbol(symbol)
    if not rendered:
        raise SymbolNotFound(message=f"Symbol {symbol} not found in kinetic model")
    return Hover(
        contents=MarkupContent(
            kind=MarkupKind.Markdown, value=f"```toml\n{rendered}\n```"
        )
    )


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: MaudLanguageServer, params: DidSaveTextDocumentParams) -> None:
    state = ls.state
    if state is None:
        return
    kind = state.kind_for_path(_uri_to_path(params.text_document.uri))
    if kind is None:
        return
    error = state.reload(kind)
    if error is not None:
        _report_load_error(ls, state, kind, error)
        return
    publish_diagnostics(ls, state)


@server.feature(INITIALIZED)
def initialized(ls: MaudLanguageServer, params: InitializedParams) -> None:
    if ls.state is not None:
        publish_diagnostics(ls, ls.state)


def start(
    state: WorkspaceState, start_fn: Callable[[], None] | None = None
) -> None:
    server.state = state
    (start_fn or server.start_io)()
