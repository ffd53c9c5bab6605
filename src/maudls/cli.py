from __future__ import annotations

import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Optional

import typer
from lsprotocol.types import Diagnostic

from maudls.config import load_config, server_settings
from maudls.exceptions import DocumentLoadError
from maudls.schema import (
    CheckResponse,
    DescribeResponse,
    DiagnosticDTO,
    LoadErrorDTO,
)
from maudls.state import DocumentKind, WorkspaceState

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(root: Path, config: Optional[Path]) -> None:
    settings = server_settings(load_config(root=root, config_path=config))
    # stdout carries the LSP stream
    logging.basicConfig(stream=sys.stderr, level=settings.log_level, format=_LOG_FORMAT)


def _diagnostic_dto(document: str, diagnostic: Diagnostic) -> DiagnosticDTO:
    severity = diagnostic.severity
    return DiagnosticDTO(
        document=document,
        line=diagnostic.range.start.line,
        start_character=diagnostic.range.start.character,
        end_character=diagnostic.range.end.character,
        severity=severity.name if severity is not None else "Error",
        code=str(diagnostic.code or ""),
        message=diagnostic.message,
    )


def build_check_response(state: WorkspaceState) -> CheckResponse:
    report = state.diagnostics()
    diagnostics = [
        _diagnostic_dto(DocumentKind.KINETIC_MODEL.value, item) for item in report.model
    ] + [_diagnostic_dto(DocumentKind.PRIORS.value, item) for item in report.priors]
    counts = Counter(item.severity for item in diagnostics)
    return CheckResponse(
        root=str(state.root),
        diagnostics=diagnostics,
        counts=dict(sorted(counts.items())),
    )


def _write_payload(payload: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(payload)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(payload + "\n", encoding="utf-8")


@app.command()
def serve(
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Load the workspace and serve LSP over stdio."""
    from maudls import server

    _configure_logging(root, config)
    try:
        state = WorkspaceState.load(root, config)
    except DocumentLoadError as exc:
        logger.error("cannot start maudls: %s", exc)
        raise typer.Exit(code=1)
    server.start(state)


@app.command()
def check(
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    output: Optional[Path] = typer.Option(None, "--output"),
) -> None:
    """Print every diagnostic of the workspace as JSON."""
    try:
        state = WorkspaceState.load(root, config)
    except DocumentLoadError as exc:
        response = CheckResponse(
            root=str(root),
            errors=[LoadErrorDTO(path=str(exc.path), reason=exc.reason, line=exc.line)],
        )
        _write_payload(json.dumps(response.model_dump(), indent=2), output)
        raise typer.Exit(code=2)
    response = build_check_response(state)
    _write_payload(json.dumps(response.model_dump(), indent=2), output)
    if response.counts.get("Error", 0):
        raise typer.Exit(code=1)


@app.command()
def describe(
    symbol: str = typer.Argument(...),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    json_output: bool = typer.Option(False, "--json"),
) -> None:
    """Render the kinetic model entity named SYMBOL."""
    try:
        state = WorkspaceState.load(root, config)
    except DocumentLoadError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    rendered = state.find_rendered_symbol(symbol)
    line = state.find_symbol_line(symbol)
    response = DescribeResponse(
        symbol=symbol,
        found=bool(rendered),
        uri=state.uri(DocumentKind.KINETIC_MODEL) if rendered else None,
        line=line if rendered else None,
        rendered=rendered,
    )
    if json_output:
        typer.echo(json.dumps(response.model_dump(), indent=2))
    elif response.found:
        typer.echo(response.rendered)
        if response.line is not None:
            typer.echo(f"# defined at {response.uri}:{response.line + 1}")
    else:
        typer.echo(f"Symbol {symbol} not found in kinetic model", err=True)
    if not response.found:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
