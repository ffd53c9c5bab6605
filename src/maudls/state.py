"""Currently valid documents of a Maud workspace."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Callable

from maudls.config import (
    MaudConfig,
    ServerSettings,
    load_config,
    maud_config,
    server_settings,
)
from maudls.diagnostics import DiagnosticReport, gather_diagnostics
from maudls.document import Document, load, try_load
from maudls.exceptions import DocumentLoadError
from maudls.experiments import ExperimentData, parse_experiments
from maudls.kinetic_model import KineticModel, parse_kinetic_model
from maudls.priors import Priors, parse_priors
from maudls.resolver import find_rendered_symbol, find_symbol_line

logger = logging.getLogger(__name__)


class DocumentKind(StrEnum):
    KINETIC_MODEL = "kinetic_model"
    PRIORS = "priors"
    EXPERIMENTS = "experiments"


_PARSERS: dict[DocumentKind, Callable[[str], object]] = {
    DocumentKind.KINETIC_MODEL: parse_kinetic_model,
    DocumentKind.PRIORS: parse_priors,
    DocumentKind.EXPERIMENTS: parse_experiments,
}


def document_paths(root: Path, config: MaudConfig) -> dict[DocumentKind, Path]:
    return {
        DocumentKind.KINETIC_MODEL: root / config.kinetic_model_file,
        DocumentKind.PRIORS: root / config.priors_file,
        DocumentKind.EXPERIMENTS: root / config.experiments_file,
    }


@dataclass
class WorkspaceState:
    """One loaded document per kind, swapped whole on a successful reload.

    A failed reload leaves the previous document in place and records the
    error in ``last_errors`` until the next successful load of that kind.
    Documents are never unloaded.
    """

    root: Path
    config: MaudConfig
    settings: ServerSettings
    kinetic_model: Document[KineticModel]
    priors: Document[Priors]
    experiments: Document[ExperimentData]
    last_errors: dict[DocumentKind, DocumentLoadError] = field(default_factory=dict)

    @classmethod
    def load(cls, root: Path, config_path: Path | None = None) -> "WorkspaceState":
        """First load of a workspace; raises :class:`DocumentLoadError`."""
        root = root.resolve()
        data = load_config(root=root, config_path=config_path)
        config = maud_config(data)
        paths = document_paths(root, config)
        state = cls(
            root=root,
            config=config,
            settings=server_settings(data),
            kinetic_model=load(
                paths[DocumentKind.KINETIC_MODEL], parse_kinetic_model
            ),
            priors=load(paths[DocumentKind.PRIORS], parse_priors),
            experiments=load(paths[DocumentKind.EXPERIMENTS], parse_experiments),
        )
        logger.info("loaded Maud workspace at %s", root)
        return state

    def document(self, kind: DocumentKind) -> Document:
        return getattr(self, kind.value)

    def uri(self, kind: DocumentKind) -> str:
        return self.document(kind).uri

    def kind_for_path(self, path: Path) -> DocumentKind | None:
        resolved = path.resolve()
        for kind in DocumentKind:
            if self.document(kind).path.resolve() == resolved:
                return kind
        return None

    def reload(self, kind: DocumentKind) -> DocumentLoadError | None:
        outcome = try_load(self.document(kind).path, _PARSERS[kind])
        if isinstance(outcome, DocumentLoadError):
            self.last_errors[kind] = outcome
            logger.warning(
                "keeping previous %s document after failed reload: %s",
                kind.value,
                outcome,
            )
            return outcome
        setattr(self, kind.value, outcome)
        self.last_errors.pop(kind, None)
        logger.info("reloaded %s", outcome.path)
        return None

    def experiment_ids(self) -> list[str]:
        return self.experiments.model.experiment_ids()

    def diagnostics(self) -> DiagnosticReport:
        return gather_diagnostics(
            self.kinetic_model, self.priors, self.experiment_ids()
        )

    def find_symbol_line(self, symbol: str) -> int | None:
        return find_symbol_line(self.kinetic_model, symbol)

    def find_rendered_symbol(self, symbol: str) -> str:
        return find_rendered_symbol(self.kinetic_model.model, symbol)
