from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from lsprotocol.types import (
    DefinitionParams,
    DidSaveTextDocumentParams,
    HoverParams,
    InitializedParams,
    MarkupKind,
    MessageType,
    Position,
    TextDocumentIdentifier,
)

from maudls import server
from maudls.exceptions import SymbolNotFound
from maudls.state import DocumentKind, WorkspaceState
from tests.maud_helpers import CONFIG_TOML, KINETIC_MODEL_TOML, PRIORS_TOML, write_workspace


def _fake_server(state: WorkspaceState | None) -> SimpleNamespace:
    def get_text_document(uri: str) -> SimpleNamespace:
        text = server._uri_to_path(uri).read_text(encoding="utf-8")
        return SimpleNamespace(lines=text.splitlines(keepends=True))

    published: list = []
    logged: list = []
    return SimpleNamespace(
        state=state,
        workspace=SimpleNamespace(get_text_document=get_text_document),
        text_document_publish_diagnostics=published.append,
        window_log_message=logged.append,
        published=published,
        logged=logged,
    )


def _position(text: str, line_text: str, token: str, shift: int = 1) -> Position:
    line = text.splitlines().index(line_text)
    return Position(line=line, character=line_text.index(token) + shift)


def _by_uri(published: list) -> dict[str, list]:
    return {params.uri: params.diagnostics for params in published}


def test_uri_to_path() -> None:
    path = Path("/tmp/maud/kinetic_model.toml")
    assert server._uri_to_path(path.as_uri()) == path
    assert server._uri_to_path("relative/priors.toml") == Path("relative/priors.toml")


def test_definition_jumps_to_declaration(workspace_state: WorkspaceState) -> None:
    ls = _fake_server(workspace_state)
    uri = workspace_state.uri(DocumentKind.KINETIC_MODEL)
    position = _position(
        KINETIC_MODEL_TOML, "stoichiometry = { g3p_c = -1 }", "g3p"
    )
    location = server.definition(
        ls,
        DefinitionParams(text_document=TextDocumentIdentifier(uri=uri), position=position),
    )
    assert location.uri == uri
    assert location.range.start.line == 8
    assert location.range.start.character == 0
    assert location.range.end == location.range.start


def test_definition_from_priors_document(workspace_state: WorkspaceState) -> None:
    ls = _fake_server(workspace_state)
    position = _position(PRIORS_TOML, 'metabolite = "f6p"', '"f6p"')
    location = server.definition(
        ls,
        DefinitionParams(
            text_document=TextDocumentIdentifier(
                uri=workspace_state.uri(DocumentKind.PRIORS)
            ),
            position=position,
        ),
    )
    assert location.uri == workspace_state.uri(DocumentKind.KINETIC_MODEL)
    assert location.range.start.line == 4


def test_hover_renders_entity_as_toml(workspace_state: WorkspaceState) -> None:
    ls = _fake_server(workspace_state)
    position = _position(PRIORS_TOML, 'metabolite = "g6p"', '"g6p"')
    hover = server.hover(
        ls,
        HoverParams(
            text_document=TextDocumentIdentifier(
                uri=workspace_state.uri(DocumentKind.PRIORS)
            ),
            position=position,
        ),
    )
    assert hover.contents.kind == MarkupKind.Markdown
    assert hover.contents.value.startswith("```toml\nmetabolite = g6p\n")
    assert hover.contents.value.endswith("\n```")


def test_hover_on_unknown_symbol_is_request_error(
    workspace_state: WorkspaceState,
) -> None:
    ls = _fake_server(workspace_state)
    position = _position(PRIORS_TOML, 'experiment = "batch1"', '"batch1"')
    params = HoverParams(
        text_document=TextDocumentIdentifier(uri=workspace_state.uri(DocumentKind.PRIORS)),
        position=position,
    )
    with pytest.raises(SymbolNotFound) as excinfo:
        server.hover(ls, params)
    assert excinfo.value.code == -32803


def test_query_misses_raise_symbol_not_found(workspace_state: WorkspaceState) -> None:
    ls = _fake_server(workspace_state)
    uri = workspace_state.uri(DocumentKind.KINETIC_MODEL)
    blank = KINETIC_MODEL_TOML.splitlines().index("")
    for position in (Position(line=blank, character=0), Position(line=10_000, character=0)):
        with pytest.raises(SymbolNotFound):
            server.definition(
                ls,
                DefinitionParams(
                    text_document=TextDocumentIdentifier(uri=uri), position=position
                ),
            )


def test_queries_without_state_fail_softly() -> None:
    ls = _fake_server(None)
    params = HoverParams(
        text_document=TextDocumentIdentifier(uri="file:///nowhere.toml"),
        position=Position(line=0, character=0),
    )
    with pytest.raises(SymbolNotFound):
        server.hover(ls, params)


def test_initialized_publishes_every_document(workspace_state: WorkspaceState) -> None:
    ls = _fake_server(workspace_state)
    server.initialized(ls, InitializedParams())
    published = _by_uri(ls.published)
    assert set(published) == {workspace_state.uri(kind) for kind in DocumentKind}
    assert [d.code for d in published[workspace_state.uri(DocumentKind.KINETIC_MODEL)]] == [
        "missing-drain-prior"
    ]
    assert published[workspace_state.uri(DocumentKind.PRIORS)] == []


def _save(ls: SimpleNamespace, uri: str) -> None:
    server.did_save(
        ls, DidSaveTextDocumentParams(text_document=TextDocumentIdentifier(uri=uri))
    )


def test_save_reloads_and_republishes(
    workspace_state: WorkspaceState, maud_workspace: Path
) -> None:
    ls = _fake_server(workspace_state)
    priors_path = maud_workspace / "priors.toml"
    priors_path.write_text("[[km]]" + PRIORS_TOML.split("[[km]]", 1)[1], encoding="utf-8")
    _save(ls, priors_path.resolve().as_uri())
    published = _by_uri(ls.published)
    model_codes = [
        d.code for d in published[workspace_state.uri(DocumentKind.KINETIC_MODEL)]
    ]
    assert model_codes == ["missing-kcat", "missing-drain-prior"]
    assert ls.logged == []


def test_failed_save_keeps_state_and_reports(
    workspace_state: WorkspaceState, maud_workspace: Path
) -> None:
    ls = _fake_server(workspace_state)
    previous = workspace_state.kinetic_model
    model_path = maud_workspace / "kinetic_model.toml"
    model_path.write_text('[[metabolite]]\nid = "g6p"\nname = \n', encoding="utf-8")
    _save(ls, model_path.resolve().as_uri())
    assert workspace_state.kinetic_model is previous
    (message,) = ls.logged
    assert message.type == MessageType.Warning
    assert "kinetic_model" in message.message
    published = _by_uri(ls.published)
    model_diagnostics = published[workspace_state.uri(DocumentKind.KINETIC_MODEL)]
    assert [d.code for d in model_diagnostics] == ["missing-drain-prior", "parse-error"]
    assert model_diagnostics[-1].range.start.line == 2


def test_parse_error_survives_saves_of_other_documents(
    workspace_state: WorkspaceState, maud_workspace: Path
) -> None:
    ls = _fake_server(workspace_state)
    priors_uri = workspace_state.uri(DocumentKind.PRIORS)
    (maud_workspace / "priors.toml").write_text("[[kcat]\n", encoding="utf-8")
    _save(ls, priors_uri)
    ls.published.clear()
    _save(ls, workspace_state.uri(DocumentKind.KINETIC_MODEL))
    published = _by_uri(ls.published)
    assert [d.code for d in published[priors_uri]] == ["parse-error"]
    assert [
        d.code for d in published[workspace_state.uri(DocumentKind.KINETIC_MODEL)]
    ] == ["missing-drain-prior"]

    (maud_workspace / "priors.toml").write_text(PRIORS_TOML, encoding="utf-8")
    ls.published.clear()
    _save(ls, priors_uri)
    assert _by_uri(ls.published)[priors_uri] == []


def test_parse_error_diagnostic_can_be_disabled(tmp_path: Path) -> None:
    root = write_workspace(
        tmp_path, config=CONFIG_TOML + "\n[maudls]\nreport_parse_errors = false\n"
    )
    state = WorkspaceState.load(root)
    ls = _fake_server(state)
    (root / "priors.toml").write_text("[[kcat]\n", encoding="utf-8")
    _save(ls, state.uri(DocumentKind.PRIORS))
    assert len(ls.logged) == 1
    assert ls.published == []


def test_save_of_unrelated_file_is_ignored(
    workspace_state: WorkspaceState, maud_workspace: Path
) -> None:
    ls = _fake_server(workspace_state)
    _save(ls, (maud_workspace / "config.toml").resolve().as_uri())
    assert ls.published == []
    assert ls.logged == []


def test_start_installs_state(workspace_state: WorkspaceState) -> None:
    calls: list[str] = []
    server.start(workspace_state, start_fn=lambda: calls.append("started"))
    assert server.server.state is workspace_state
    assert calls == ["started"]
    server.server.state = None
